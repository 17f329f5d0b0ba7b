"""
Hex grid layer: coordinate math and the cell store.
"""

from hexforge.hex_grid.hex_coords import (
    to_pixel,
    hex_corners,
    hex_id,
    parse_hex_id,
    try_parse_hex_id,
    in_bounds,
    neighbors,
    is_neighbor,
    is_neighbor_by_distance,
    pixel_distance,
    displace,
    rect_coords,
    rect_ids,
    hexes_within_radius,
    hex_line,
)
from hexforge.hex_grid.grid_store import GridStore, GridSnapshot

__all__ = [
    "to_pixel",
    "hex_corners",
    "hex_id",
    "parse_hex_id",
    "try_parse_hex_id",
    "in_bounds",
    "neighbors",
    "is_neighbor",
    "is_neighbor_by_distance",
    "pixel_distance",
    "displace",
    "rect_coords",
    "rect_ids",
    "hexes_within_radius",
    "hex_line",
    "GridStore",
    "GridSnapshot",
]
