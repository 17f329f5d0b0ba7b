"""
Prompt Schemas for HexForge content generation.

Each schema defines:
- Required inputs with validation
- The JSON structure the model must return
- Strict instructions for LLM behavior

The model only proposes edits; the reply is validated by edit_operations
before anything is applied to the map.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any
import json


class PromptSchemaType(str, Enum):
    """Types of prompt schemas."""
    MAP_GENERATION = "map_generation"
    AREA_GENERATION = "area_generation"
    ENCOUNTER_TEXT = "encounter_text"


# =============================================================================
# BASE SCHEMA
# =============================================================================


@dataclass
class PromptSchema:
    """Base class for prompt schemas."""
    schema_type: PromptSchemaType
    inputs: dict[str, Any]
    instructions: str = ""

    def validate_inputs(self) -> list[str]:
        """Validate that all required inputs are present."""
        errors = []
        for key, expected in self.get_required_inputs().items():
            value = self.inputs.get(key)
            if value is None:
                errors.append(f"Missing required input: {key}")
            elif not isinstance(value, expected):
                errors.append(f"Input {key} should be {expected.__name__}")
        return errors

    def get_required_inputs(self) -> dict[str, type]:
        """Return dict of required input names and their types."""
        return {}

    def build_prompt(self) -> str:
        """Build the complete prompt string."""
        raise NotImplementedError

    def get_system_prompt(self) -> str:
        """Get the system prompt for this schema."""
        return self._get_base_system_prompt()

    def _get_base_system_prompt(self) -> str:
        """Base system prompt shared by every generation task."""
        return """You are a map editor assistant for a hex-grid fantasy world map.

CRITICAL CONSTRAINTS - You MUST follow these rules:
1. Reply with a single JSON value and nothing else
2. Use ONLY the terrain, icon and road ids you are given
3. Use ONLY coordinates inside the grid (and inside the selection when one is given)
4. Coordinates are offset coordinates: q is the column, r is the row

Anything outside these rules is discarded by the editor."""


def _asset_lines(terrains: list[str], icons: list[str], road_types: list[str]) -> str:
    return (
        f"- Terrains: {', '.join(terrains)}\n"
        f"- Icons: {', '.join(icons)}\n"
        f"- Road Types: {', '.join(road_types)}"
    )


# =============================================================================
# SCHEMA 1: WHOLE-MAP GENERATION
# =============================================================================


@dataclass
class MapGenerationInputs:
    """Inputs for whole-map generation."""
    description: str
    width: int
    height: int
    terrains: list[str]
    icons: list[str]
    road_types: list[str]


class MapGenerationSchema(PromptSchema):
    """
    Schema for generating a whole map from a description.

    The reply is a background terrain plus a list of drawing operations:
    fill_circle, fill_rect, path and icon.
    """

    def __init__(self, inputs: MapGenerationInputs):
        super().__init__(
            schema_type=PromptSchemaType.MAP_GENERATION,
            inputs=inputs.__dict__,
        )
        self.typed_inputs = inputs

    def get_required_inputs(self) -> dict[str, type]:
        return {
            "description": str,
            "width": int,
            "height": int,
            "terrains": list,
        }

    def get_system_prompt(self) -> str:
        base = self._get_base_system_prompt()
        return f"""{base}

MAP GENERATION TASK:
Paint a rich map that matches the description. Use large fills for the
landscape, paths for roads and rivers of travel, and icons for settlements
and landmarks."""

    def build_prompt(self) -> str:
        inputs = self.typed_inputs
        return f"""You are a map generator for a hex grid (Width {inputs.width}, Height {inputs.height}).
Coordinates: q (col 0-{inputs.width - 1}), r (row 0-{inputs.height - 1}).

Description: {inputs.description}

Available Assets:
{_asset_lines(inputs.terrains, inputs.icons, inputs.road_types)}

Output a JSON object with:
1. "background": string (base terrain id, e.g. "grass")
2. "operations": array of objects, each with a "type" field:
   - type="fill_circle": {{"terrain": str, "q": int, "r": int, "radius": int}}
   - type="fill_rect": {{"terrain": str, "q": int, "r": int, "width": int, "height": int}}
   - type="path": {{"road": str, "points": [{{"q": int, "r": int}}, ...]}} (waypoints)
   - type="icon": {{"icon": str, "q": int, "r": int}}

JSON ONLY."""


# =============================================================================
# SCHEMA 2: AREA GENERATION
# =============================================================================


@dataclass
class AreaGenerationInputs:
    """Inputs for generating content inside the current selection."""
    description: str
    selected: list[dict[str, int]]  # [{"q": 1, "r": 2}, ...]
    terrains: list[str]
    icons: list[str]
    road_types: list[str]


class AreaGenerationSchema(PromptSchema):
    """
    Schema for filling the selected hexes.

    Constraints:
    - Only the listed target hexes may be changed
    - Roads may leave the selection by one step to connect outward
    - Regions come with lore and a list of encounter strings
    """

    def __init__(self, inputs: AreaGenerationInputs):
        super().__init__(
            schema_type=PromptSchemaType.AREA_GENERATION,
            inputs=inputs.__dict__,
        )
        self.typed_inputs = inputs

    def get_required_inputs(self) -> dict[str, type]:
        return {
            "description": str,
            "selected": list,
        }

    def validate_inputs(self) -> list[str]:
        errors = super().validate_inputs()
        if not errors and not self.typed_inputs.selected:
            errors.append("Selection is empty")
        return errors

    def build_prompt(self) -> str:
        inputs = self.typed_inputs
        example = {
            "terrains": [{"q": 1, "r": 2, "type": "grass"}],
            "icons": [{"q": 1, "r": 2, "id": "ruin"}],
            "roads": [{"q1": 1, "r1": 2, "q2": 1, "r2": 3, "type": "trail"}],
            "regions": [
                {
                    "name": "Haunted Woods",
                    "color": "#550000",
                    "lore": "A spooky forest...",
                    "encounters": ["Zombie attack", "Fog rolls in"],
                    "hexes": [{"q": 1, "r": 2}],
                }
            ],
        }
        return f"""The user has selected {len(inputs.selected)} specific hexes.

Target Hexes (q,r): {json.dumps(inputs.selected)}

User Description: "{inputs.description}"

Available Assets:
{_asset_lines(inputs.terrains, inputs.icons, inputs.road_types)}

Instructions:
- Generate content ONLY for the provided Target Hexes.
- You can change terrain, place icons, add roads, and create regions.
- For regions, create a logical grouping of hexes with lore and encounters.

Output JSON Format:
{json.dumps(example, indent=2)}"""


# =============================================================================
# SCHEMA 3: ENCOUNTER TEXT
# =============================================================================


@dataclass
class EncounterTextInputs:
    """Inputs for filling a region's encounter table."""
    region_name: str
    row_count: int
    region_lore: str = ""


class EncounterTextSchema(PromptSchema):
    """Schema for writing encounter results that fit a region's lore."""

    def __init__(self, inputs: EncounterTextInputs):
        super().__init__(
            schema_type=PromptSchemaType.ENCOUNTER_TEXT,
            inputs=inputs.__dict__,
        )
        self.typed_inputs = inputs

    def get_required_inputs(self) -> dict[str, type]:
        return {"region_name": str, "row_count": int}

    def validate_inputs(self) -> list[str]:
        errors = super().validate_inputs()
        if not errors and self.typed_inputs.row_count < 1:
            errors.append("Encounter table has no rows")
        return errors

    def build_prompt(self) -> str:
        inputs = self.typed_inputs
        return f"""Generate {inputs.row_count} distinct, creative random encounter scenarios for a fantasy RPG region.

Region Name: "{inputs.region_name}"
Region Lore/Description: "{inputs.region_lore or "Generic fantasy setting"}"

The encounters should fit the theme and lore. Keep descriptions concise
(under 15 words) suitable for a lookup table.

Reply with a JSON array of {inputs.row_count} strings."""


# =============================================================================
# FACTORY
# =============================================================================


def create_schema(
    schema_type: PromptSchemaType,
    inputs: dict[str, Any],
) -> PromptSchema:
    """
    Factory function to create prompt schemas.

    Args:
        schema_type: Type of schema to create
        inputs: Dictionary of inputs for the schema

    Returns:
        Configured PromptSchema instance
    """
    if schema_type == PromptSchemaType.MAP_GENERATION:
        return MapGenerationSchema(MapGenerationInputs(**inputs))
    elif schema_type == PromptSchemaType.AREA_GENERATION:
        return AreaGenerationSchema(AreaGenerationInputs(**inputs))
    elif schema_type == PromptSchemaType.ENCOUNTER_TEXT:
        return EncounterTextSchema(EncounterTextInputs(**inputs))
    raise ValueError(f"Unknown schema type: {schema_type}")
