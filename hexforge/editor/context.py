"""
Editor context: the single owner of all mutable editor state.

The tool engine, the movement loop and the session facade all receive the
same EditorContext by reference and read the latest values from it, so
timer callbacks never act on stale copies of the state.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from hexforge.data_models import (
    DEFAULT_PARTY_POSITION,
    HEX_SIZE,
    INITIAL_ICONS,
    MAP_HEIGHT,
    MAP_WIDTH,
    ActiveTool,
    HexCoord,
    IconDef,
    PartyState,
    Region,
    TerrainConfig,
    default_terrains,
)
from hexforge.editor.history import HistoryEntry, HistoryManager
from hexforge.editor.selection import SelectionModel
from hexforge.hex_grid.grid_store import GridStore
from hexforge.hex_grid.hex_coords import in_bounds
from hexforge.observability.activity_log import ActivityLog, LogSeverity

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass
class EditorConfig:
    """Configuration for an editing session."""

    # Grid
    width: int = MAP_WIDTH
    height: int = MAP_HEIGHT
    hex_size: int = HEX_SIZE
    party_start: tuple[int, int] = DEFAULT_PARTY_POSITION

    # Party movement timing, in seconds
    move_buffer_delay: float = 0.07
    move_repeat_interval: float = 0.15

    # LLM Configuration
    llm_provider: str = "mock"  # mock, anthropic, openai, gemini
    llm_model: Optional[str] = None
    llm_api_key: Optional[str] = None

    # Runtime options
    seed: Optional[int] = None
    verbose: bool = False

    def __post_init__(self):
        if self.width < 1 or self.height < 1:
            raise ValueError(f"Grid must be at least 1x1, got {self.width}x{self.height}")
        if isinstance(self.party_start, list):
            self.party_start = tuple(self.party_start)
        q, r = self.party_start
        if not in_bounds(q, r, self.width, self.height):
            raise ValueError(
                f"Party start {q},{r} is outside the {self.width}x{self.height} grid"
            )


# =============================================================================
# CONTEXT
# =============================================================================


@dataclass
class EditorContext:
    """
    Everything the editor mutates, in one place.

    The dirty flag marks uncommitted pointer edits; path_anchor is the last
    cell of a road being drag-drawn.
    """
    config: EditorConfig = field(default_factory=EditorConfig)
    grid: Optional[GridStore] = None
    regions: dict[str, Region] = field(default_factory=dict)
    terrains: dict[str, TerrainConfig] = field(default_factory=default_terrains)
    available_icons: list[IconDef] = field(default_factory=lambda: list(INITIAL_ICONS))
    selection: SelectionModel = field(default_factory=SelectionModel)
    party: Optional[PartyState] = None
    history: HistoryManager = field(default_factory=HistoryManager)
    activity: ActivityLog = field(default_factory=ActivityLog)

    active_tool: ActiveTool = ActiveTool.PAINT
    active_terrain: str = "grass"
    active_icon: str = "village"

    dirty: bool = False
    pointer_down: bool = False
    path_anchor: Optional[HexCoord] = None

    def __post_init__(self):
        if self.grid is None:
            self.grid = GridStore(self.config.width, self.config.height)
        if self.party is None:
            self.party = PartyState(position=HexCoord(*self.config.party_start))
        if self.history.current is None:
            self.history.reset(self.capture())

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def capture(self) -> HistoryEntry:
        """Snapshot grid, regions and terrains as they are now."""
        return HistoryEntry.capture(self.grid.snapshot(), self.regions, self.terrains)

    def commit(self, reason: str = "") -> None:
        """Push the current state onto the history and clear the dirty flag."""
        self.history.commit(self.capture(), reason)
        self.dirty = False

    def apply_entry(self, entry: HistoryEntry) -> None:
        """Make a history entry the visible state."""
        self.grid.restore(entry.grid)
        self.regions = dict(entry.regions)
        self.terrains = dict(entry.terrains)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def log(self, text: str, severity: LogSeverity = LogSeverity.INFO) -> None:
        self.activity.add(text, severity)

    def in_bounds(self, coord: HexCoord) -> bool:
        return 0 <= coord.q < self.grid.width and 0 <= coord.r < self.grid.height

    def region_at(self, coord: HexCoord) -> tuple[Optional[str], Optional[Region]]:
        """Region id and definition of the cell at coord, if any."""
        cell = self.grid.get_at(coord.q, coord.r)
        if cell is None or cell.region_id is None:
            return None, None
        region = self.regions.get(cell.region_id)
        if region is None:
            return None, None
        return cell.region_id, region
