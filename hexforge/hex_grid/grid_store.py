"""
Grid Store for the HexForge editor.

Holds every HexCell of the finite WIDTH x HEIGHT grid, keyed by hex id.

Storage is split into one dict per row. Taking a snapshot marks all rows as
shared; the next write to a shared row copies just that row first. A
snapshot therefore costs O(HEIGHT) and an edit copies at most one row, while
every snapshot still behaves like a full, independent copy of the grid.
"""

from collections.abc import Mapping
from typing import Iterable, Iterator, Optional
import logging

from hexforge.data_models import (
    MAP_HEIGHT,
    MAP_WIDTH,
    NO_ICON,
    VOID_TERRAIN,
    HexCell,
    HexCoord,
)
from hexforge.hex_grid.hex_coords import hex_id, in_bounds, is_neighbor, try_parse_hex_id

logger = logging.getLogger(__name__)


class GridSnapshot(Mapping):
    """Read-only view of the grid at one point in time."""

    def __init__(self, rows: tuple[dict[str, HexCell], ...], width: int):
        self._rows = rows
        self._width = width

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return len(self._rows)

    def _row_for(self, key: object) -> Optional[dict[str, HexCell]]:
        coord = try_parse_hex_id(key)
        if coord is None or not in_bounds(coord.q, coord.r, self._width, len(self._rows)):
            return None
        return self._rows[coord.r]

    def __getitem__(self, key: str) -> HexCell:
        row = self._row_for(key)
        if row is None or key not in row:
            raise KeyError(key)
        return row[key]

    def __contains__(self, key: object) -> bool:
        row = self._row_for(key)
        return row is not None and key in row

    def __iter__(self) -> Iterator[str]:
        for row in self._rows:
            yield from row

    def __len__(self) -> int:
        return sum(len(row) for row in self._rows)

    def to_dict(self) -> dict[str, dict]:
        return {key: cell.to_dict() for key, cell in self.items()}


class GridStore:
    """
    Mutable cell mapping with copy-on-write rows.

    All writes validate coordinates against the grid bounds and silently
    ignore anything outside; no out-of-bounds id is ever stored.
    """

    def __init__(self, width: int = MAP_WIDTH, height: int = MAP_HEIGHT):
        self.width = width
        self.height = height
        self._rows: list[dict[str, HexCell]] = []
        self._shared: list[bool] = []
        self.reset()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def reset(self, background: str = VOID_TERRAIN) -> None:
        """Fill every coordinate with a fresh default cell."""
        blank = HexCell(terrain=background)
        self._rows = [
            {hex_id(q, r): blank.with_changes(roads={}) for q in range(self.width)}
            for r in range(self.height)
        ]
        self._shared = [False] * self.height

    def snapshot(self) -> GridSnapshot:
        """Freeze the current state. Later writes never affect the snapshot."""
        self._shared = [True] * self.height
        return GridSnapshot(tuple(self._rows), self.width)

    def restore(self, snapshot: Mapping) -> None:
        """
        Replace the grid contents with a snapshot (or any id -> cell mapping).

        GridSnapshots of the same dimensions are adopted without copying;
        other mappings are loaded cell by cell, skipping out-of-bounds ids.
        """
        if (
            isinstance(snapshot, GridSnapshot)
            and snapshot.width == self.width
            and snapshot.height == self.height
        ):
            self._rows = list(snapshot._rows)
            self._shared = [True] * self.height
            return

        self.reset()
        for key, cell in snapshot.items():
            if isinstance(cell, HexCell):
                self.set_cell(key, cell)

    def clone(self) -> "GridStore":
        """An independent store sharing rows with this one until either writes."""
        other = GridStore.__new__(GridStore)
        other.width = self.width
        other.height = self.height
        other._rows = list(self._rows)
        other._shared = [True] * self.height
        self._shared = [True] * self.height
        return other

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def contains(self, key: str) -> bool:
        return self._locate(key) is not None

    __contains__ = contains

    def get(self, key: str) -> Optional[HexCell]:
        coord = self._locate(key)
        if coord is None:
            return None
        return self._rows[coord.r].get(coord.hex_id)

    def get_at(self, q: int, r: int) -> Optional[HexCell]:
        if not in_bounds(q, r, self.width, self.height):
            return None
        return self._rows[r].get(hex_id(q, r))

    def __iter__(self) -> Iterator[str]:
        for row in self._rows:
            yield from row

    def __len__(self) -> int:
        return sum(len(row) for row in self._rows)

    def items(self) -> Iterator[tuple[str, HexCell]]:
        for row in self._rows:
            yield from row.items()

    def count_terrain(self, terrain_id: str) -> int:
        return sum(1 for _, cell in self.items() if cell.terrain == terrain_id)

    def cells_in_region(self, region_id: str) -> list[str]:
        return [key for key, cell in self.items() if cell.region_id == region_id]

    def to_dict(self) -> dict[str, dict]:
        return {key: cell.to_dict() for key, cell in self.items()}

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _locate(self, key: object) -> Optional[HexCoord]:
        coord = try_parse_hex_id(key)
        if coord is None or not in_bounds(coord.q, coord.r, self.width, self.height):
            return None
        return coord

    def _writable_row(self, r: int) -> dict[str, HexCell]:
        if self._shared[r]:
            self._rows[r] = dict(self._rows[r])
            self._shared[r] = False
        return self._rows[r]

    def set_cell(self, key: str, cell: HexCell) -> bool:
        """Store a cell record. Returns False (and stores nothing) when out of bounds."""
        coord = self._locate(key)
        if coord is None:
            logger.debug(f"Ignoring write to out-of-bounds hex {key!r}")
            return False
        self._writable_row(coord.r)[coord.hex_id] = cell
        return True

    def update(self, key: str, **changes) -> bool:
        """
        Replace fields of a cell.

        Returns:
            True if the cell exists and actually changed
        """
        cell = self.get(key)
        if cell is None:
            return False
        updated = cell.with_changes(**changes)
        if updated == cell:
            return False
        return self.set_cell(key, updated)

    def set_terrain(self, key: str, terrain_id: str) -> bool:
        return self.update(key, terrain=terrain_id)

    def set_icon(self, key: str, icon_id: str) -> bool:
        return self.update(key, icon=icon_id)

    def set_region(self, key: str, region_id: Optional[str]) -> bool:
        return self.update(key, region_id=region_id)

    def set_lore(self, key: str, lore: str) -> bool:
        return self.update(key, lore=lore)

    def set_road(self, a: str, b: str, road_type: str) -> bool:
        """
        Connect two adjacent cells with a road, written on both endpoints.

        Returns:
            True if the connection was written; False for identical,
            non-adjacent or out-of-bounds endpoints
        """
        ends = self._road_endpoints(a, b)
        if ends is None:
            return False
        cell_a, cell_b = ends
        if cell_a.roads.get(b) == road_type and cell_b.roads.get(a) == road_type:
            return False
        self.set_cell(a, cell_a.with_changes(roads={**cell_a.roads, b: road_type}))
        self.set_cell(b, cell_b.with_changes(roads={**cell_b.roads, a: road_type}))
        return True

    def remove_road(self, a: str, b: str) -> bool:
        """Remove the road between two adjacent cells from both endpoints."""
        ends = self._road_endpoints(a, b)
        if ends is None:
            return False
        cell_a, cell_b = ends
        if b not in cell_a.roads and a not in cell_b.roads:
            return False
        self.set_cell(a, cell_a.with_changes(roads={k: v for k, v in cell_a.roads.items() if k != b}))
        self.set_cell(b, cell_b.with_changes(roads={k: v for k, v in cell_b.roads.items() if k != a}))
        return True

    def _road_endpoints(self, a: str, b: str) -> Optional[tuple[HexCell, HexCell]]:
        coord_a, coord_b = self._locate(a), self._locate(b)
        if coord_a is None or coord_b is None or coord_a == coord_b:
            return None
        if not is_neighbor(coord_a, coord_b):
            return None
        return self._rows[coord_a.r][coord_a.hex_id], self._rows[coord_b.r][coord_b.hex_id]

    def clear_cell(self, key: str) -> bool:
        """
        Bulldoze every road touching the cell, then reset it to defaults.

        Returns:
            True if the cell exists
        """
        cell = self.get(key)
        if cell is None:
            return False
        for neighbor_id in list(cell.roads):
            neighbor = self.get(neighbor_id)
            if neighbor is not None and key in neighbor.roads:
                self.set_cell(
                    neighbor_id,
                    neighbor.with_changes(roads={k: v for k, v in neighbor.roads.items() if k != key}),
                )
        self.set_cell(key, HexCell(terrain=VOID_TERRAIN, icon=NO_ICON, roads={}, region_id=None, lore=""))
        return True

    def replace_terrain(self, old_terrain: str, new_terrain: str) -> int:
        """Repaint every cell of one terrain with another. Returns the count."""
        changed = 0
        for key, cell in list(self.items()):
            if cell.terrain == old_terrain:
                self.set_cell(key, cell.with_changes(terrain=new_terrain))
                changed += 1
        return changed

    def detach_region(self, region_id: str) -> int:
        """Set region_id to None on every cell of a region. Returns the count."""
        changed = 0
        for key, cell in list(self.items()):
            if cell.region_id == region_id:
                self.set_cell(key, cell.with_changes(region_id=None))
                changed += 1
        return changed

    def assign_region(self, keys: Iterable[str], region_id: Optional[str]) -> int:
        """Assign (or detach, with None) a region on the given cells. Returns the count."""
        changed = 0
        for key in keys:
            if self.contains(key):
                self.update(key, region_id=region_id)
                changed += 1
        return changed

    def repair_road_symmetry(self) -> int:
        """
        Drop road entries that are not mirrored on the other endpoint or
        that point at a non-adjacent or missing cell. Returns entries dropped.
        """
        dropped = 0
        for key, cell in list(self.items()):
            coord = self._locate(key)
            kept = {}
            for neighbor_id, road_type in cell.roads.items():
                other = self.get(neighbor_id)
                other_coord = self._locate(neighbor_id)
                if (
                    other is not None
                    and other_coord is not None
                    and is_neighbor(coord, other_coord)
                    and other.roads.get(key) == road_type
                ):
                    kept[neighbor_id] = road_type
                else:
                    dropped += 1
            if len(kept) != len(cell.roads):
                self.set_cell(key, cell.with_changes(roads=kept))
        return dropped
