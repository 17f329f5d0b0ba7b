"""
Content generator for HexForge.

Turns natural-language requests into validated edit plans:
- Whole-map generation (background plus drawing operations)
- Area generation scoped to the current selection
- Encounter text for an existing region table

The generator never touches editor state. It builds the prompt, asks the
LLM, and parses the reply into plain data; the session applies the plan
and commits it.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional
import logging

from hexforge.ai.edit_operations import (
    AreaPlan,
    MapPlan,
    parse_area_plan,
    parse_encounter_texts,
    parse_map_plan,
)
from hexforge.ai.llm_provider import LLMConfig, LLMManager, get_llm_manager
from hexforge.ai.prompt_schemas import (
    AreaGenerationInputs,
    AreaGenerationSchema,
    EncounterTextInputs,
    EncounterTextSchema,
    MapGenerationInputs,
    MapGenerationSchema,
    PromptSchema,
)
from hexforge.data_models import NO_ICON, Region
from hexforge.errors import ContentGenerationError
from hexforge.hex_grid.hex_coords import try_parse_hex_id

logger = logging.getLogger(__name__)


@dataclass
class GenerationAssets:
    """Ids the model is allowed to use."""
    terrains: list[str] = field(default_factory=list)
    icons: list[str] = field(default_factory=list)
    road_types: list[str] = field(default_factory=list)

    @property
    def prompt_icons(self) -> list[str]:
        return [icon for icon in self.icons if icon != NO_ICON]


class ContentGenerator:
    """
    Requests edit plans from an LLM.

    Usage:
        generator = ContentGenerator(LLMConfig(provider=LLMProvider.GEMINI))
        plan = generator.request_map_plan("an island chain", assets, 50, 40)

    Every request method raises ContentGenerationError when the provider is
    unavailable, the request fails, or the reply has the wrong shape.
    """

    def __init__(self, config: Optional[LLMConfig] = None, manager: Optional[LLMManager] = None):
        self._llm = manager or get_llm_manager(config)

    @property
    def llm(self) -> LLMManager:
        return self._llm

    def is_available(self) -> bool:
        return self._llm.is_available()

    # =========================================================================
    # REQUESTS
    # =========================================================================

    def request_map_plan(
        self,
        description: str,
        assets: GenerationAssets,
        width: int,
        height: int,
    ) -> MapPlan:
        schema = MapGenerationSchema(
            MapGenerationInputs(
                description=description,
                width=width,
                height=height,
                terrains=list(assets.terrains),
                icons=assets.prompt_icons,
                road_types=list(assets.road_types),
            )
        )
        data = self._execute_schema(schema)
        plan = parse_map_plan(data, assets.terrains, assets.icons, assets.road_types)
        logger.info(f"Map plan: {len(plan.operations)} operations, {plan.dropped} dropped")
        return plan

    def request_area_plan(
        self,
        description: str,
        selection: Iterable[str],
        assets: GenerationAssets,
    ) -> AreaPlan:
        coords = [try_parse_hex_id(hex_id) for hex_id in sorted(selection)]
        schema = AreaGenerationSchema(
            AreaGenerationInputs(
                description=description,
                selected=[c.to_dict() for c in coords if c is not None],
                terrains=list(assets.terrains),
                icons=assets.prompt_icons,
                road_types=list(assets.road_types),
            )
        )
        data = self._execute_schema(schema)
        plan = parse_area_plan(data, assets.terrains, assets.icons, assets.road_types)
        logger.info(
            f"Area plan: {len(plan.terrains)} terrain, {len(plan.icons)} icon, "
            f"{len(plan.roads)} road edits and {len(plan.regions)} regions"
        )
        return plan

    def request_encounter_texts(self, region: Region) -> list[Optional[str]]:
        schema = EncounterTextSchema(
            EncounterTextInputs(
                region_name=region.name,
                row_count=len(region.table),
                region_lore=region.lore,
            )
        )
        return parse_encounter_texts(self._execute_schema(schema))

    # =========================================================================
    # ASYNC WRAPPERS
    # =========================================================================

    async def request_map_plan_async(self, *args: Any, **kwargs: Any) -> MapPlan:
        return await asyncio.to_thread(self.request_map_plan, *args, **kwargs)

    async def request_area_plan_async(self, *args: Any, **kwargs: Any) -> AreaPlan:
        return await asyncio.to_thread(self.request_area_plan, *args, **kwargs)

    async def request_encounter_texts_async(self, region: Region) -> list[Optional[str]]:
        return await asyncio.to_thread(self.request_encounter_texts, region)

    # =========================================================================
    # INTERNAL METHODS
    # =========================================================================

    def _execute_schema(self, schema: PromptSchema) -> Any:
        """Validate inputs, call the LLM and decode its JSON reply."""
        errors = schema.validate_inputs()
        if errors:
            raise ContentGenerationError("; ".join(errors), kind=schema.schema_type.value)

        if not self._llm.is_available():
            raise ContentGenerationError(
                f"LLM provider '{self._llm.config.provider.value}' is unavailable",
                kind=schema.schema_type.value,
            )

        try:
            return self._llm.complete_json(schema.build_prompt(), schema.get_system_prompt())
        except ContentGenerationError as e:
            e.kind = schema.schema_type.value
            raise
