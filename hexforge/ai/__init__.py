"""
Content generation for HexForge.

The LLM proposes map edits and encounter text; everything it returns is
validated before it reaches the map.
"""

from hexforge.ai.llm_provider import (
    LLMProvider,
    LLMConfig,
    LLMManager,
    LLMMessage,
    LLMResponse,
    LLMRole,
    MockLLMClient,
    extract_json,
    get_llm_manager,
)
from hexforge.ai.prompt_schemas import (
    PromptSchemaType,
    PromptSchema,
    MapGenerationSchema,
    AreaGenerationSchema,
    EncounterTextSchema,
    create_schema,
)
from hexforge.ai.edit_operations import (
    AreaPlan,
    MapPlan,
    ApplyReport,
    apply_area_plan,
    apply_map_plan,
    build_generated_region,
    parse_area_plan,
    parse_encounter_texts,
    parse_map_plan,
)
from hexforge.ai.content_generator import ContentGenerator, GenerationAssets

__all__ = [
    "LLMProvider",
    "LLMConfig",
    "LLMManager",
    "LLMMessage",
    "LLMResponse",
    "LLMRole",
    "MockLLMClient",
    "extract_json",
    "get_llm_manager",
    "PromptSchemaType",
    "PromptSchema",
    "MapGenerationSchema",
    "AreaGenerationSchema",
    "EncounterTextSchema",
    "create_schema",
    "AreaPlan",
    "MapPlan",
    "ApplyReport",
    "apply_area_plan",
    "apply_map_plan",
    "build_generated_region",
    "parse_area_plan",
    "parse_encounter_texts",
    "parse_map_plan",
    "ContentGenerator",
    "GenerationAssets",
]
