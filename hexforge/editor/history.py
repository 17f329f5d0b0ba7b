"""
Undo/redo history for the HexForge editor.

A linear list of full-state snapshots with a cursor. The entry under the
cursor always equals the visible state. Committing after an undo discards
everything that could have been redone; there is no branching.
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Optional
import logging

from hexforge.data_models import Region, TerrainConfig
from hexforge.hex_grid.grid_store import GridSnapshot
from hexforge.observability.run_log import get_run_log

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryEntry:
    """
    Immutable snapshot of grid, regions and terrain palette.

    Cells, regions and terrain configs are themselves immutable, so the
    mappings only need a shallow copy to be fully independent.
    """
    grid: GridSnapshot
    regions: Mapping[str, Region]
    terrains: Mapping[str, TerrainConfig]
    created_at: datetime = field(default_factory=datetime.now, compare=False)

    @classmethod
    def capture(
        cls,
        grid: GridSnapshot,
        regions: Mapping[str, Region],
        terrains: Mapping[str, TerrainConfig],
    ) -> "HistoryEntry":
        return cls(
            grid=grid,
            regions=MappingProxyType(dict(regions)),
            terrains=MappingProxyType(dict(terrains)),
        )


class HistoryManager:
    """
    Linear undo/redo log.

    Usage:
        history = HistoryManager(initial_entry)
        history.commit(entry)
        previous = history.undo()   # None when nothing to undo
        following = history.redo()  # None when nothing to redo
    """

    def __init__(self, initial: Optional[HistoryEntry] = None):
        self._entries: list[HistoryEntry] = []
        self._cursor: int = -1
        if initial is not None:
            self.reset(initial)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> Optional[HistoryEntry]:
        if self._cursor < 0:
            return None
        return self._entries[self._cursor]

    def __len__(self) -> int:
        return len(self._entries)

    def can_undo(self) -> bool:
        return self._cursor > 0

    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    def reset(self, entry: HistoryEntry) -> None:
        """Drop all history and start over from a single entry."""
        self._entries = [entry]
        self._cursor = 0
        self._log("reset", "history reset")

    def commit(self, entry: HistoryEntry, reason: str = "") -> None:
        """
        Append a new entry after the cursor, discarding any redo branch.

        Args:
            entry: Snapshot of the state that is now current
            reason: Short description for the run log
        """
        discarded = len(self._entries) - (self._cursor + 1)
        del self._entries[self._cursor + 1:]
        self._entries.append(entry)
        self._cursor = len(self._entries) - 1
        if discarded:
            logger.debug(f"Commit discarded {discarded} redo entr{'y' if discarded == 1 else 'ies'}")
        self._log("commit", reason)

    def undo(self) -> Optional[HistoryEntry]:
        """Step back one entry. Returns the entry now current, or None."""
        if not self.can_undo():
            return None
        self._cursor -= 1
        self._log("undo")
        return self._entries[self._cursor]

    def redo(self) -> Optional[HistoryEntry]:
        """Step forward one entry. Returns the entry now current, or None."""
        if not self.can_redo():
            return None
        self._cursor += 1
        self._log("redo")
        return self._entries[self._cursor]

    def _log(self, action: str, reason: str = "") -> None:
        get_run_log().log_history(
            action=action,
            cursor=self._cursor,
            length=len(self._entries),
            reason=reason,
        )
