"""
Structured edit operations proposed by the content generator.

Model replies are untrusted. Parsing is strict about shape: a reply that
is not the expected JSON structure raises ContentGenerationError and
nothing is applied. Within a well-formed reply, individual edits that name
unknown ids, fall outside the grid, or fall outside the selection are
dropped quietly.

Application always targets a scratch GridStore and a copy of the regions,
so the caller can commit the whole batch as one history entry.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Union
import logging
import uuid

from hexforge.data_models import (
    HEX_SIZE,
    VOID_TERRAIN,
    DiceConfig,
    FreqConfig,
    HexCoord,
    Region,
    TableEntry,
)
from hexforge.encounters.region_engine import recalculate_ranges
from hexforge.errors import ContentGenerationError
from hexforge.hex_grid.grid_store import GridStore
from hexforge.hex_grid.hex_coords import (
    hex_line,
    hexes_within_radius,
    in_bounds,
    is_neighbor,
)

logger = logging.getLogger(__name__)


DEFAULT_BACKGROUND = "grass"
GENERATED_TABLE_MIN_ROWS = 6
GENERATED_TABLE_FILLER = "Quiet."
GENERATED_ENCOUNTER_FALLBACK = "Something happens..."
GENERATED_REGION_NAME = "New Area"
GENERATED_REGION_COLOR = "#ff00ff"


# =============================================================================
# OPERATION TYPES
# =============================================================================


@dataclass(frozen=True)
class FillCircle:
    terrain: str
    center: HexCoord
    radius: float


@dataclass(frozen=True)
class FillRect:
    """Fills q in [origin.q, origin.q + width) and r in [origin.r, origin.r + height)."""
    terrain: str
    origin: HexCoord
    width: int
    height: int


@dataclass(frozen=True)
class RoadPath:
    road: str
    points: tuple[HexCoord, ...]


@dataclass(frozen=True)
class IconPlacement:
    icon: str
    at: HexCoord


MapOperation = Union[FillCircle, FillRect, RoadPath, IconPlacement]


@dataclass
class MapPlan:
    """A whole-map generation reply."""
    background: str
    operations: list[MapOperation] = field(default_factory=list)
    dropped: int = 0


@dataclass(frozen=True)
class TerrainEdit:
    at: HexCoord
    terrain: str


@dataclass(frozen=True)
class RoadEdit:
    a: HexCoord
    b: HexCoord
    road: str


@dataclass
class RegionProposal:
    name: str
    color: str
    lore: str
    encounters: list[str]
    hexes: list[HexCoord]


@dataclass
class AreaPlan:
    """An area generation reply."""
    terrains: list[TerrainEdit] = field(default_factory=list)
    icons: list[IconPlacement] = field(default_factory=list)
    roads: list[RoadEdit] = field(default_factory=list)
    regions: list[RegionProposal] = field(default_factory=list)
    dropped: int = 0


@dataclass
class ApplyReport:
    """What a batch actually changed."""
    operations_applied: int = 0
    cells_changed: int = 0
    regions_created: list[str] = field(default_factory=list)


# =============================================================================
# PARSING HELPERS
# =============================================================================


def _require_dict(value: Any, what: str) -> dict:
    if not isinstance(value, dict):
        raise ContentGenerationError(f"{what} must be a JSON object")
    return value


def _optional_list(data: dict, key: str) -> list:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ContentGenerationError(f"'{key}' must be a list")
    return value


def _int(value: Any, what: str) -> int:
    if isinstance(value, bool):
        raise ContentGenerationError(f"{what} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise ContentGenerationError(f"{what} must be an integer, got {value!r}")


def _number(value: Any, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ContentGenerationError(f"{what} must be a number, got {value!r}")
    return float(value)


def _coord(data: dict, q_key: str = "q", r_key: str = "r") -> HexCoord:
    return HexCoord(_int(data.get(q_key), q_key), _int(data.get(r_key), r_key))


def _text(value: Any, default: str = "") -> str:
    return value.strip() if isinstance(value, str) and value.strip() else default


# =============================================================================
# PARSERS
# =============================================================================


def parse_map_plan(
    data: Any,
    terrains: Iterable[str],
    icons: Iterable[str],
    road_types: Iterable[str],
) -> MapPlan:
    """
    Validate a whole-map reply.

    Raises:
        ContentGenerationError: If the reply does not have the expected shape
    """
    data = _require_dict(data, "Map generation reply")
    terrains, icons, road_types = set(terrains), set(icons), set(road_types)

    background = _text(data.get("background"), DEFAULT_BACKGROUND)
    if background not in terrains:
        logger.debug(f"Unknown background terrain {background!r}")
        background = DEFAULT_BACKGROUND if DEFAULT_BACKGROUND in terrains else VOID_TERRAIN

    plan = MapPlan(background=background)
    for raw in _optional_list(data, "operations"):
        raw = _require_dict(raw, "Operation")
        op_type = raw.get("type")

        if op_type == "fill_circle":
            op = FillCircle(
                terrain=_text(raw.get("terrain")),
                center=_coord(raw),
                radius=_number(raw.get("radius"), "radius"),
            )
            known = op.terrain in terrains
        elif op_type == "fill_rect":
            op = FillRect(
                terrain=_text(raw.get("terrain")),
                origin=_coord(raw),
                width=_int(raw.get("width"), "width"),
                height=_int(raw.get("height"), "height"),
            )
            known = op.terrain in terrains
        elif op_type == "path":
            points = raw.get("points")
            if not isinstance(points, list):
                raise ContentGenerationError("'points' must be a list of {q, r} objects")
            op = RoadPath(
                road=_text(raw.get("road")),
                points=tuple(_coord(_require_dict(p, "Path point")) for p in points),
            )
            known = op.road in road_types
        elif op_type == "icon":
            op = IconPlacement(icon=_text(raw.get("icon")), at=_coord(raw))
            known = op.icon in icons
        else:
            logger.debug(f"Dropping operation of unknown type {op_type!r}")
            plan.dropped += 1
            continue

        if not known:
            logger.debug(f"Dropping {op_type} operation with unknown id")
            plan.dropped += 1
            continue
        plan.operations.append(op)

    return plan


def parse_area_plan(
    data: Any,
    terrains: Iterable[str],
    icons: Iterable[str],
    road_types: Iterable[str],
) -> AreaPlan:
    """
    Validate an area-generation reply.

    Raises:
        ContentGenerationError: If the reply does not have the expected shape
    """
    data = _require_dict(data, "Area generation reply")
    terrains, icons, road_types = set(terrains), set(icons), set(road_types)
    plan = AreaPlan()

    for raw in _optional_list(data, "terrains"):
        raw = _require_dict(raw, "Terrain edit")
        edit = TerrainEdit(at=_coord(raw), terrain=_text(raw.get("type")))
        if edit.terrain in terrains:
            plan.terrains.append(edit)
        else:
            plan.dropped += 1

    for raw in _optional_list(data, "icons"):
        raw = _require_dict(raw, "Icon edit")
        placement = IconPlacement(icon=_text(raw.get("id")), at=_coord(raw))
        if placement.icon in icons:
            plan.icons.append(placement)
        else:
            plan.dropped += 1

    for raw in _optional_list(data, "roads"):
        raw = _require_dict(raw, "Road edit")
        edit = RoadEdit(
            a=_coord(raw, "q1", "r1"),
            b=_coord(raw, "q2", "r2"),
            road=_text(raw.get("type")),
        )
        if edit.road in road_types:
            plan.roads.append(edit)
        else:
            plan.dropped += 1

    for raw in _optional_list(data, "regions"):
        raw = _require_dict(raw, "Region")
        encounters = raw.get("encounters")
        if isinstance(encounters, list):
            texts = [_text(e) for e in encounters if _text(e)]
        else:
            texts = [GENERATED_ENCOUNTER_FALLBACK]
        plan.regions.append(
            RegionProposal(
                name=_text(raw.get("name"), GENERATED_REGION_NAME),
                color=_text(raw.get("color"), GENERATED_REGION_COLOR),
                lore=_text(raw.get("lore")),
                encounters=texts,
                hexes=[_coord(_require_dict(h, "Region hex")) for h in _optional_list(raw, "hexes")],
            )
        )

    return plan


def parse_encounter_texts(data: Any) -> list[Optional[str]]:
    """
    Validate an encounter-text reply: a JSON array.

    Non-string or blank entries come back as None so the caller keeps the
    existing row text. A {"encounters": [...]} wrapper is accepted too.

    Raises:
        ContentGenerationError: If the reply is not an array
    """
    if isinstance(data, dict) and isinstance(data.get("encounters"), list):
        data = data["encounters"]
    if not isinstance(data, list):
        raise ContentGenerationError("Encounter reply must be a JSON array of strings")
    return [_text(item) or None for item in data]


# =============================================================================
# APPLICATION
# =============================================================================


def new_region_id() -> str:
    return f"region_{uuid.uuid4().hex[:8]}"


def build_generated_region(proposal: RegionProposal) -> Region:
    """
    Turn a proposal into a Region: the encounter list padded to six rows,
    a d6 trigger on 1, and a 1d6 table re-partitioned over the rows.
    """
    texts = list(proposal.encounters) or [GENERATED_ENCOUNTER_FALLBACK]
    while len(texts) < GENERATED_TABLE_MIN_ROWS:
        texts.append(GENERATED_TABLE_FILLER)
    dice = DiceConfig(count=1, faces=6)
    rows = [TableEntry(i + 1, i + 1, text) for i, text in enumerate(texts)]
    return Region(
        name=proposal.name,
        color=proposal.color,
        lore=proposal.lore,
        freq_config=FreqConfig(die="d6", trigger_values=(1,)),
        dice_config=dice,
        table=tuple(recalculate_ranges(rows, dice)),
    )


def apply_map_plan(
    grid: GridStore,
    regions: dict[str, Region],
    plan: MapPlan,
    clear_map: bool = True,
    size: float = HEX_SIZE,
) -> ApplyReport:
    """
    Paint a map plan onto grid (a scratch copy).

    With clear_map every cell is reset to the background and all regions
    are removed first.
    """
    report = ApplyReport()
    if clear_map:
        grid.reset(background=plan.background)
        regions.clear()

    for op in plan.operations:
        if isinstance(op, FillCircle):
            cells = hexes_within_radius(op.center, op.radius, grid.width, grid.height, size)
            report.cells_changed += sum(grid.set_terrain(c.hex_id, op.terrain) for c in cells)
        elif isinstance(op, FillRect):
            q_range = range(max(0, op.origin.q), min(grid.width, op.origin.q + op.width))
            r_range = range(max(0, op.origin.r), min(grid.height, op.origin.r + op.height))
            for q in q_range:
                for r in r_range:
                    report.cells_changed += grid.set_terrain(HexCoord(q, r).hex_id, op.terrain)
        elif isinstance(op, IconPlacement):
            report.cells_changed += grid.set_icon(op.at.hex_id, op.icon)
        elif isinstance(op, RoadPath):
            report.cells_changed += _draw_path(grid, op)
        report.operations_applied += 1

    return report


def _draw_path(grid: GridStore, op: RoadPath) -> int:
    """
    Rasterize each waypoint segment and connect consecutive cells.

    The running cell only advances on a successful connection, so a
    rasterization gap never produces a jump between non-adjacent cells.
    Segments with a waypoint outside the grid are skipped whole.
    """
    connected = 0
    for start, end in zip(op.points, op.points[1:]):
        if not (grid.contains(start.hex_id) and grid.contains(end.hex_id)):
            continue
        previous = start
        for cell in hex_line(start, end)[1:]:
            if (
                grid.contains(previous.hex_id)
                and grid.contains(cell.hex_id)
                and is_neighbor(previous, cell)
            ):
                grid.set_road(previous.hex_id, cell.hex_id, op.road)
                connected += 1
                previous = cell
    return connected


def apply_area_plan(
    grid: GridStore,
    regions: dict[str, Region],
    plan: AreaPlan,
    selection: Iterable[str],
    id_factory: Callable[[], str] = new_region_id,
) -> ApplyReport:
    """
    Apply an area plan onto grid (a scratch copy), scoped to the selection.

    Terrain, icon and region-membership edits must target selected cells.
    A road needs both ends in the grid and adjacent, and at least one end
    selected, so roads can connect the area to its surroundings.
    """
    selected = frozenset(selection)
    report = ApplyReport()

    def allowed(coord: HexCoord) -> bool:
        return (
            in_bounds(coord.q, coord.r, grid.width, grid.height)
            and coord.hex_id in selected
        )

    for edit in plan.terrains:
        if allowed(edit.at):
            grid.set_terrain(edit.at.hex_id, edit.terrain)
            report.cells_changed += 1
            report.operations_applied += 1

    for placement in plan.icons:
        if allowed(placement.at):
            grid.set_icon(placement.at.hex_id, placement.icon)
            report.operations_applied += 1

    for edit in plan.roads:
        a_id, b_id = edit.a.hex_id, edit.b.hex_id
        if not (grid.contains(a_id) and grid.contains(b_id)):
            continue
        if a_id not in selected and b_id not in selected:
            continue
        if grid.set_road(a_id, b_id, edit.road):
            report.operations_applied += 1

    for proposal in plan.regions:
        region_id = id_factory()
        regions[region_id] = build_generated_region(proposal)
        report.regions_created.append(region_id)
        report.operations_applied += 1
        for coord in proposal.hexes:
            if allowed(coord):
                grid.set_region(coord.hex_id, region_id)

    return report
