"""
Map import and export for HexForge.

Documents are JSON objects with the fields:
    gridData     {hexId: cell}
    regions      {regionId: region}
    terrains     {terrainId: {label, color}}
    partyPos     {q, r}
    partyIconId  string

Import is forgiving: every top-level field is optional and falls back to
an empty mapping (or the default terrain palette), malformed records are
skipped, and road entries that are not mirrored on both ends are dropped.
Loading always resets history to a single entry.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union
import json
import logging

from hexforge.data_models import (
    DEFAULT_TERRAINS,
    PARTY_ICONS,
    ROAD_PAINT_MODES,
    VOID_TERRAIN,
    HexCell,
    HexCoord,
    Region,
    TerrainConfig,
    default_terrains,
    parse_int,
)
from hexforge.errors import MapFormatError
from hexforge.hex_grid.grid_store import GridStore
from hexforge.hex_grid.hex_coords import try_parse_hex_id
from hexforge.observability.activity_log import LogSeverity
from hexforge.observability.run_log import get_run_log

if TYPE_CHECKING:
    from hexforge.editor.session import EditorSession

logger = logging.getLogger(__name__)


@dataclass
class MapDocument:
    """A normalized, ready-to-install map."""
    grid: GridStore
    regions: dict[str, Region]
    terrains: dict[str, TerrainConfig]
    party_position: Optional[HexCoord] = None
    party_icon: Optional[str] = None

    # Import diagnostics
    dropped_cells: int = 0
    dropped_roads: int = 0
    dropped_regions: int = 0


# =============================================================================
# EXPORT
# =============================================================================


def export_document(session: "EditorSession") -> dict[str, Any]:
    """Serialize the visible state of a session."""
    ctx = session.ctx
    return {
        "gridData": ctx.grid.to_dict(),
        "regions": {region_id: region.to_dict() for region_id, region in ctx.regions.items()},
        "terrains": {terrain_id: terrain.to_dict() for terrain_id, terrain in ctx.terrains.items()},
        "partyPos": ctx.party.position.to_dict(),
        "partyIconId": ctx.party.icon_id,
    }


def save_map(session: "EditorSession", path: Union[str, Path]) -> Path:
    """
    Write the session's map to a JSON file.

    Returns:
        Path to the saved file
    """
    filepath = Path(path)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(export_document(session), f, ensure_ascii=False)

    logger.info(f"Saved map to: {filepath}")
    return filepath


# =============================================================================
# IMPORT
# =============================================================================


def import_document(data: Any, width: int, height: int) -> MapDocument:
    """
    Normalize a decoded document.

    Args:
        data: Decoded JSON
        width: Grid width to load into
        height: Grid height to load into

    Returns:
        MapDocument with every field filled in

    Raises:
        MapFormatError: If data is not a JSON object
    """
    if not isinstance(data, dict):
        raise MapFormatError(f"Map document must be an object, got {type(data).__name__}")

    doc = MapDocument(
        grid=GridStore(width, height),
        regions=_import_regions(data.get("regions")),
        terrains=_import_terrains(data.get("terrains")),
    )
    raw_regions = data.get("regions")
    if isinstance(raw_regions, dict):
        doc.dropped_regions = len(raw_regions) - len(doc.regions)

    cells = data.get("gridData")
    if isinstance(cells, dict):
        for key, raw in cells.items():
            coord = try_parse_hex_id(key)
            if coord is None or not doc.grid.set_cell(coord.hex_id, _import_cell(raw, doc.regions)):
                doc.dropped_cells += 1
        doc.dropped_roads = doc.grid.repair_road_symmetry()

    doc.party_position = _import_position(data.get("partyPos"), width, height)
    icon = data.get("partyIconId")
    if isinstance(icon, str) and icon in PARTY_ICONS:
        doc.party_icon = icon

    if doc.dropped_cells or doc.dropped_roads or doc.dropped_regions:
        logger.warning(
            f"Import dropped {doc.dropped_cells} cells, {doc.dropped_roads} road entries "
            f"and {doc.dropped_regions} regions"
        )
    return doc


def _import_terrains(raw: Any) -> dict[str, TerrainConfig]:
    if not isinstance(raw, dict):
        return default_terrains()
    terrains = {}
    for terrain_id, value in raw.items():
        terrain = TerrainConfig.from_dict(value)
        if terrain is not None:
            terrains[str(terrain_id)] = terrain
    if not terrains:
        return default_terrains()
    terrains.setdefault(VOID_TERRAIN, DEFAULT_TERRAINS[VOID_TERRAIN])
    return terrains


def _import_regions(raw: Any) -> dict[str, Region]:
    if not isinstance(raw, dict):
        return {}
    regions = {}
    for region_id, value in raw.items():
        region = Region.from_dict(value)
        if region is not None:
            regions[str(region_id)] = region
    return regions


def _import_cell(raw: Any, regions: dict[str, Region]) -> HexCell:
    """Default missing fields, canonicalize road keys, drop dangling region refs."""
    cell = HexCell.from_dict(raw)
    roads = {}
    for neighbor_id, road_type in cell.roads.items():
        coord = try_parse_hex_id(neighbor_id)
        if coord is not None:
            roads[coord.hex_id] = road_type
    region_id = cell.region_id if cell.region_id in regions else None
    return cell.with_changes(roads=roads, region_id=region_id)


def _import_position(raw: Any, width: int, height: int) -> Optional[HexCoord]:
    if not isinstance(raw, dict):
        return None
    q, r = parse_int(raw.get("q"), default=None), parse_int(raw.get("r"), default=None)
    if q is None or r is None or not (0 <= q < width and 0 <= r < height):
        return None
    return HexCoord(q, r)


# =============================================================================
# SESSION INTEGRATION
# =============================================================================


def install_document(session: "EditorSession", doc: MapDocument) -> None:
    """Make an imported document the session state with a fresh history."""
    ctx = session.ctx
    session.movement.cancel()
    ctx.grid = doc.grid
    ctx.regions = dict(doc.regions)
    ctx.terrains = dict(doc.terrains)
    if doc.party_position is not None:
        ctx.party.position = doc.party_position
    if doc.party_icon is not None:
        ctx.party.icon_id = doc.party_icon
    if ctx.active_terrain not in ctx.terrains and ctx.active_terrain not in ROAD_PAINT_MODES:
        ctx.active_terrain = VOID_TERRAIN

    ctx.selection.clear()
    ctx.dirty = False
    ctx.pointer_down = False
    ctx.path_anchor = None
    ctx.history.reset(ctx.capture())


def load_map(session: "EditorSession", path: Union[str, Path]) -> bool:
    """
    Load a map file into the session.

    An unreadable file or a non-object document logs an error and leaves
    the session untouched.

    Returns:
        True if the map was loaded
    """
    filepath = Path(path)
    try:
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)
        doc = import_document(data, session.ctx.grid.width, session.ctx.grid.height)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, MapFormatError) as e:
        logger.error(f"Failed to load map {filepath}: {e}")
        session.ctx.log("Failed to load map data.", LogSeverity.ERROR)
        return False

    install_document(session, doc)
    get_run_log().log_custom(
        "map_loaded",
        {
            "path": str(filepath),
            "regions": len(doc.regions),
            "terrains": len(doc.terrains),
            "dropped_cells": doc.dropped_cells,
        },
    )
    logger.info(f"Loaded map from: {filepath}")
    session.ctx.log("Map loaded successfully.")
    return True
