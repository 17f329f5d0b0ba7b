"""
Editor layer: selection, tools, history, party movement and the session
that owns them.
"""

from hexforge.editor.selection import SelectionModel
from hexforge.editor.history import HistoryEntry, HistoryManager
from hexforge.editor.context import EditorConfig, EditorContext
from hexforge.editor.tool_engine import Modifiers, NO_MODIFIERS, ToolEngine
from hexforge.editor.movement import (
    MOVE_KEYS,
    AsyncioScheduler,
    ManualScheduler,
    MovementLoop,
    PartyController,
    Scheduler,
)
from hexforge.editor.session import EditorSession

__all__ = [
    "SelectionModel",
    "HistoryEntry",
    "HistoryManager",
    "EditorConfig",
    "EditorContext",
    "Modifiers",
    "NO_MODIFIERS",
    "ToolEngine",
    "MOVE_KEYS",
    "AsyncioScheduler",
    "ManualScheduler",
    "MovementLoop",
    "PartyController",
    "Scheduler",
    "EditorSession",
]
