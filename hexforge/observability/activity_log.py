"""
User-visible activity feed.

Messages are kept newest first. Alerts, warnings and errors are also
surfaced as toasts that expire after a few seconds; presentation is left to
whatever front end is attached.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional
import itertools
import logging

logger = logging.getLogger(__name__)


class LogSeverity(str, Enum):
    """Severity of an activity message."""
    INFO = "info"
    ALERT = "alert"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


# Severities that also raise a toast
TOAST_SEVERITIES = frozenset({LogSeverity.ALERT, LogSeverity.WARNING, LogSeverity.ERROR})

TOAST_DURATION = timedelta(seconds=4)

_LOGGING_LEVELS = {
    LogSeverity.INFO: logging.INFO,
    LogSeverity.SUCCESS: logging.INFO,
    LogSeverity.ALERT: logging.WARNING,
    LogSeverity.WARNING: logging.WARNING,
    LogSeverity.ERROR: logging.ERROR,
}


@dataclass
class LogEntry:
    """A single activity message."""
    entry_id: int
    text: str
    severity: LogSeverity = LogSeverity.INFO
    time: datetime = field(default_factory=datetime.now)

    @property
    def is_important(self) -> bool:
        return self.severity in TOAST_SEVERITIES


class ActivityLog:
    """Newest-first message feed with transient toasts."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or datetime.now
        self._ids = itertools.count(1)
        self._entries: list[LogEntry] = []
        self._toasts: list[LogEntry] = []

    def add(self, text: str, severity: LogSeverity = LogSeverity.INFO) -> LogEntry:
        """Record a message; important severities also raise a toast."""
        entry = LogEntry(
            entry_id=next(self._ids),
            text=text,
            severity=severity,
            time=self._clock(),
        )
        self._entries.insert(0, entry)
        if entry.is_important:
            self._toasts.insert(0, entry)
        logger.log(_LOGGING_LEVELS[severity], text)
        return entry

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    @property
    def latest(self) -> Optional[LogEntry]:
        return self._entries[0] if self._entries else None

    def texts(self) -> list[str]:
        return [entry.text for entry in self._entries]

    def active_toasts(self) -> list[LogEntry]:
        """Toasts younger than TOAST_DURATION; expired ones are dropped."""
        now = self._clock()
        self._toasts = [t for t in self._toasts if now - t.time < TOAST_DURATION]
        return list(self._toasts)

    def dismiss_toast(self, entry_id: int) -> None:
        self._toasts = [t for t in self._toasts if t.entry_id != entry_id]

    def clear(self) -> None:
        self._entries = []
        self._toasts = []

    def __len__(self) -> int:
        return len(self._entries)
