"""
Observability for the HexForge editor.

The RunLog records structured events (rolls, table lookups, tool changes,
history operations, party moves, generation requests). The ActivityLog is
the user-facing message feed.
"""

from hexforge.observability.run_log import (
    RunLog,
    LogEvent,
    EventType,
    RollEvent,
    TableLookupEvent,
    TransitionEvent,
    HistoryEvent,
    MoveEvent,
    GenerationEvent,
    get_run_log,
    reset_run_log,
)
from hexforge.observability.activity_log import ActivityLog, LogEntry, LogSeverity

__all__ = [
    "RunLog",
    "LogEvent",
    "EventType",
    "RollEvent",
    "TableLookupEvent",
    "TransitionEvent",
    "HistoryEvent",
    "MoveEvent",
    "GenerationEvent",
    "get_run_log",
    "reset_run_log",
    "ActivityLog",
    "LogEntry",
    "LogSeverity",
]
