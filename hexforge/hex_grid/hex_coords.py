"""
Hex coordinate math for the odd-r offset grid.

Pure, stateless functions: pixel projection, id encoding, adjacency and
directional displacement. Odd rows are shifted half a cell to the right,
which gives diagonal moves a parity-dependent "zig-zag" bias.
"""

from typing import Iterator, Optional
import math

from hexforge.data_models import HEX_SIZE, HexCoord


SQRT3 = math.sqrt(3)

# Adjacency radius of the distance-based test, in multiples of HEX_SIZE
NEIGHBOR_DISTANCE_FACTOR = 1.9

# Pixel radius per ring used by generated circle fills (approximately sqrt(3))
CIRCLE_RING_FACTOR = 1.73

# (dq, dr) to the six neighbors, by row parity
_EVEN_ROW_DELTAS = ((1, 0), (-1, 0), (-1, -1), (0, -1), (-1, 1), (0, 1))
_ODD_ROW_DELTAS = ((1, 0), (-1, 0), (0, -1), (1, -1), (0, 1), (1, 1))


def _delta_table(r: int) -> tuple[tuple[int, int], ...]:
    return _ODD_ROW_DELTAS if r & 1 else _EVEN_ROW_DELTAS


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


# =============================================================================
# PROJECTION AND IDENTITY
# =============================================================================


def to_pixel(q: int, r: int, size: float = HEX_SIZE) -> tuple[float, float]:
    """Center of cell (q, r) in pixels."""
    x = size * SQRT3 * (q + 0.5 * (r & 1))
    y = size * 1.5 * r
    return x, y


def hex_corners(x: float, y: float, radius: float = HEX_SIZE) -> list[tuple[float, float]]:
    """The six corners of a pointy-top hexagon centered on (x, y)."""
    corners = []
    for i in range(6):
        angle = math.radians(60 * i - 30)
        corners.append((x + radius * math.cos(angle), y + radius * math.sin(angle)))
    return corners


def hex_id(q: int, r: int) -> str:
    """Identity key of a cell: "q,r"."""
    return f"{q},{r}"


def parse_hex_id(value: str) -> HexCoord:
    """
    Inverse of hex_id.

    Raises:
        ValueError: If the id is not two comma-separated integers
    """
    parts = value.split(",")
    if len(parts) != 2:
        raise ValueError(f"Malformed hex id: {value!r}")
    return HexCoord(q=int(parts[0]), r=int(parts[1]))


def try_parse_hex_id(value: object) -> Optional[HexCoord]:
    """parse_hex_id that returns None instead of raising."""
    if not isinstance(value, str):
        return None
    try:
        return parse_hex_id(value)
    except ValueError:
        return None


def in_bounds(q: int, r: int, width: int, height: int) -> bool:
    return 0 <= q < width and 0 <= r < height


# =============================================================================
# ADJACENCY
# =============================================================================


def neighbors(
    q: int,
    r: int,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> list[HexCoord]:
    """
    The six grid-adjacent cells of (q, r).

    When width and height are given, candidates outside the grid are dropped.
    """
    result = []
    for dq, dr in _delta_table(r):
        nq, nr = q + dq, r + dr
        if width is not None and height is not None and not in_bounds(nq, nr, width, height):
            continue
        result.append(HexCoord(nq, nr))
    return result


def is_neighbor(a: HexCoord, b: HexCoord) -> bool:
    """True iff a and b share an edge. Exact parity rule, symmetric."""
    return (b.q - a.q, b.r - a.r) in _delta_table(a.r)


def pixel_distance(a: HexCoord, b: HexCoord, size: float = HEX_SIZE) -> float:
    ax, ay = to_pixel(a.q, a.r, size)
    bx, by = to_pixel(b.q, b.r, size)
    return math.hypot(ax - bx, ay - by)


def is_neighbor_by_distance(a: HexCoord, b: HexCoord, size: float = HEX_SIZE) -> bool:
    """Distance-threshold adjacency (centers closer than 1.9 * size)."""
    return pixel_distance(a, b, size) < size * NEIGHBOR_DISTANCE_FACTOR


# =============================================================================
# DISPLACEMENT
# =============================================================================


def displace(q: int, r: int, dx: int, dy: int) -> HexCoord:
    """
    Move one step in one of 8 screen directions.

    dx and dy are clamped to -1/0/1. Pure vertical moves keep q, so repeated
    up or down steps zig-zag across the offset rows.
    """
    dx, dy = _sign(dx), _sign(dy)
    if dy == 0:
        return HexCoord(q + dx, r)

    is_even = (r & 1) == 0
    if dx == -1:
        return HexCoord(q - 1 if is_even else q, r + dy)
    if dx == 1:
        return HexCoord(q if is_even else q + 1, r + dy)
    return HexCoord(q, r + dy)


# =============================================================================
# AREAS AND LINES
# =============================================================================


def rect_coords(a: HexCoord, b: HexCoord) -> Iterator[HexCoord]:
    """Every coordinate in the inclusive box spanned by a and b."""
    for q in range(min(a.q, b.q), max(a.q, b.q) + 1):
        for r in range(min(a.r, b.r), max(a.r, b.r) + 1):
            yield HexCoord(q, r)


def rect_ids(a: HexCoord, b: HexCoord) -> set[str]:
    return {coord.hex_id for coord in rect_coords(a, b)}


def hexes_within_radius(
    center: HexCoord,
    radius: float,
    width: int,
    height: int,
    size: float = HEX_SIZE,
) -> list[HexCoord]:
    """In-bounds cells whose centers lie within radius rings of center."""
    limit = radius * size * CIRCLE_RING_FACTOR
    cx, cy = to_pixel(center.q, center.r, size)
    found = []
    for r in range(height):
        for q in range(width):
            x, y = to_pixel(q, r, size)
            if math.hypot(x - cx, y - cy) <= limit:
                found.append(HexCoord(q, r))
    return found


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def hex_line(start: HexCoord, end: HexCoord) -> list[HexCoord]:
    """
    Rasterize a waypoint segment into the cells it crosses.

    Uses 2 * max(|dq|, |dr|) interpolation steps. Consecutive duplicates are
    collapsed; the result starts at start and ends at end. Consecutive cells
    are usually but not always adjacent, so callers must check.
    """
    steps = max(abs(start.q - end.q), abs(start.r - end.r)) * 2
    cells = [start]
    if steps == 0:
        return cells
    for step in range(1, steps + 1):
        t = step / steps
        cell = HexCoord(
            _round_half_up(start.q + (end.q - start.q) * t),
            _round_half_up(start.r + (end.r - start.r) * t),
        )
        if cell != cells[-1]:
            cells.append(cell)
    return cells
