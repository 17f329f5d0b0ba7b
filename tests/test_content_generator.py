"""
Tests for the content generator and generation through the session.
"""

import asyncio
import json

import pytest

from hexforge.ai.content_generator import ContentGenerator, GenerationAssets
from hexforge.ai.llm_provider import LLMConfig
from hexforge.ai.prompt_schemas import (
    AreaGenerationInputs,
    AreaGenerationSchema,
    EncounterTextInputs,
    EncounterTextSchema,
    MapGenerationInputs,
    MapGenerationSchema,
    PromptSchemaType,
    create_schema,
)
from hexforge.data_models import Region, TableEntry
from hexforge.editor.tool_engine import Modifiers
from hexforge.errors import ContentGenerationError
from hexforge.observability.activity_log import LogSeverity
from hexforge.observability.run_log import EventType, get_run_log


ASSETS = GenerationAssets(
    terrains=["void", "grass", "water"],
    icons=["none", "village"],
    road_types=["paved"],
)


def _select(session, *cells):
    session.set_active_tool("magic")
    for q, r in cells:
        session.press(q, r, Modifiers(ctrl=True))
        session.release()


def _generation_events():
    return get_run_log().get_events(EventType.GENERATION)


# =============================================================================
# PROMPT SCHEMAS
# =============================================================================


class TestPromptSchemas:
    """Tests for prompt building and input validation."""

    def test_map_prompt_lists_assets(self):
        schema = MapGenerationSchema(MapGenerationInputs(
            description="two kingdoms split by a river",
            width=50,
            height=40,
            terrains=["grass", "water"],
            icons=["village"],
            road_types=["paved"],
        ))
        prompt = schema.build_prompt()
        assert not schema.validate_inputs()
        assert "two kingdoms split by a river" in prompt
        assert "Width 50, Height 40" in prompt
        assert "grass" in prompt and "village" in prompt and "paved" in prompt

    def test_area_requires_selection(self):
        schema = AreaGenerationSchema(AreaGenerationInputs(
            description="a swamp", selected=[], terrains=["swamp"], icons=[], road_types=[],
        ))
        assert "Selection is empty" in schema.validate_inputs()

    def test_encounter_requires_rows(self):
        schema = EncounterTextSchema(EncounterTextInputs(region_name="Bog", row_count=0))
        assert schema.validate_inputs() == ["Encounter table has no rows"]

    def test_missing_input_reported(self):
        schema = EncounterTextSchema(EncounterTextInputs(region_name=None, row_count=3))
        assert schema.validate_inputs() == ["Missing required input: region_name"]

    def test_factory(self):
        schema = create_schema(
            PromptSchemaType.ENCOUNTER_TEXT, {"region_name": "Bog", "row_count": 4}
        )
        assert isinstance(schema, EncounterTextSchema)
        assert "Generate 4 distinct" in schema.build_prompt()


# =============================================================================
# GENERATOR
# =============================================================================


class TestContentGenerator:
    """Tests for ContentGenerator requests."""

    def test_map_plan(self, mock_llm_manager, mock_llm_client):
        mock_llm_client.set_responses([json.dumps({
            "background": "water",
            "operations": [{"type": "icon", "icon": "village", "q": 1, "r": 1}],
        })])
        generator = ContentGenerator(manager=mock_llm_manager)

        plan = generator.request_map_plan("an island", ASSETS, 10, 8)

        assert plan.background == "water"
        assert len(plan.operations) == 1
        system_prompt, messages = mock_llm_client.requests[-1]
        assert "MAP GENERATION TASK" in system_prompt
        assert "village" in messages[0].content
        assert "none" not in messages[0].content.split("Icons:")[-1].split("\n")[0]

    def test_area_plan_sends_selection(self, mock_llm_manager, mock_llm_client):
        generator = ContentGenerator(manager=mock_llm_manager)
        plan = generator.request_area_plan("a bog", {"2,1", "1,1"}, ASSETS)
        assert plan.terrains == []
        _, messages = mock_llm_client.requests[-1]
        assert '[{"q": 1, "r": 1}, {"q": 2, "r": 1}]' in messages[0].content

    def test_encounter_texts(self, mock_llm_manager, mock_llm_client):
        mock_llm_client.set_responses(['["Wolves", "Bandits"]'])
        region = Region(name="Pass", table=(TableEntry(2, 7, "a"), TableEntry(8, 12, "b")))
        texts = ContentGenerator(manager=mock_llm_manager).request_encounter_texts(region)
        assert texts == ["Wolves", "Bandits"]

    def test_invalid_inputs_raise_before_request(self, mock_llm_manager, mock_llm_client):
        generator = ContentGenerator(manager=mock_llm_manager)
        with pytest.raises(ContentGenerationError) as exc_info:
            generator.request_encounter_texts(Region(name="Empty"))
        assert exc_info.value.kind == "encounter_text"
        assert mock_llm_client.requests == []

    def test_malformed_reply_tagged_with_kind(self, mock_llm_manager, mock_llm_client):
        mock_llm_client.set_responses(["I cannot draw maps."])
        generator = ContentGenerator(manager=mock_llm_manager)
        with pytest.raises(ContentGenerationError) as exc_info:
            generator.request_map_plan("an island", ASSETS, 10, 8)
        assert exc_info.value.kind == "map_generation"

    def test_unavailable_provider(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        generator = ContentGenerator(LLMConfig(provider="gemini"))
        assert not generator.is_available()
        with pytest.raises(ContentGenerationError, match="unavailable"):
            generator.request_map_plan("an island", ASSETS, 10, 8)

    def test_async_wrapper(self, mock_llm_manager, mock_llm_client):
        mock_llm_client.set_responses(['["Wolves"]'])
        region = Region(name="Pass", table=(TableEntry(2, 12, "a"),))
        generator = ContentGenerator(manager=mock_llm_manager)
        assert asyncio.run(generator.request_encounter_texts_async(region)) == ["Wolves"]


# =============================================================================
# SESSION GENERATION
# =============================================================================


class TestGenerateMap:
    """Tests for whole-map generation through the session."""

    def test_success_replaces_map_in_one_step(self, session, mock_llm_client):
        session.create_region()
        mock_llm_client.set_responses([json.dumps({
            "background": "water",
            "operations": [
                {"type": "fill_rect", "terrain": "grass", "q": 2, "r": 2, "width": 3, "height": 3},
                {"type": "icon", "icon": "village", "q": 3, "r": 3},
            ],
        })])
        history_before = len(session.history)

        assert session.generate_map("a lake with an island")

        assert session.grid.count_terrain("grass") == 9
        assert session.grid.count_terrain("water") == 12 * 10 - 9
        assert session.grid.get("3,3").icon == "village"
        assert session.regions == {}
        assert len(session.history) == history_before + 1
        assert session.activity.latest.text == "Magic map generation complete!"
        assert _generation_events()[-1].success

        session.undo()
        assert session.grid.count_terrain("water") == 0
        assert len(session.regions) == 1

    def test_paint_over_keeps_map(self, session, mock_llm_client, stroke):
        session.set_active_terrain("desert")
        stroke(session, (0, 0))
        mock_llm_client.set_responses(['{"background": "water", "operations": []}'])

        assert session.generate_map("nothing much", clear_map=False)
        assert session.grid.get("0,0").terrain == "desert"
        assert session.grid.count_terrain("water") == 0

    def test_malformed_reply_leaves_state(self, session, mock_llm_client, stroke):
        session.set_active_terrain("forest")
        stroke(session, (1, 1))
        before = session.grid.to_dict()
        mock_llm_client.set_responses(['{"operations": "everything"}'])

        assert not session.generate_map("a forest")

        assert session.grid.to_dict() == before
        assert len(session.history) == 2
        latest = session.activity.latest
        assert latest.text == "Failed to generate map. Try again."
        assert latest.severity == LogSeverity.ERROR
        event = _generation_events()[-1]
        assert not event.success
        assert event.kind == "map"

    def test_empty_description_warns(self, session, mock_llm_client):
        assert not session.generate_map("   ")
        assert session.activity.latest.text == "Please enter a description."
        assert mock_llm_client.requests == []

    def test_async_variant(self, session, mock_llm_client):
        mock_llm_client.set_responses(['{"background": "desert"}'])
        assert asyncio.run(session.generate_map_async("dunes"))
        assert session.grid.count_terrain("desert") == 120


class TestGenerateArea:
    """Tests for area generation scoped to the selection."""

    def test_area_edits_only_selection(self, session, mock_llm_client):
        _select(session, (1, 1), (2, 1))
        mock_llm_client.set_responses([json.dumps({
            "terrains": [
                {"q": 1, "r": 1, "type": "swamp"},
                {"q": 6, "r": 6, "type": "swamp"},
            ],
            "regions": [{
                "name": "Bog",
                "encounters": ["Leeches"],
                "hexes": [{"q": 1, "r": 1}, {"q": 2, "r": 1}, {"q": 6, "r": 6}],
            }],
        })])

        assert session.generate_area("a haunted bog")

        assert session.grid.get("1,1").terrain == "swamp"
        assert session.grid.get("6,6").terrain == "void"
        (region_id, region), = session.regions.items()
        assert region.name == "Bog"
        assert len(region.table) == 6
        assert sorted(session.grid.cells_in_region(region_id)) == ["1,1", "2,1"]
        assert session.activity.latest.text == "Magic Area Update complete."
        assert len(session.history) == 2

    def test_requires_selection(self, session, mock_llm_client):
        assert not session.generate_area("a bog")
        assert mock_llm_client.requests == []

    def test_requires_description(self, session):
        _select(session, (1, 1))
        assert not session.generate_area("")
        assert session.activity.latest.text == (
            "Please describe what you want to generate in this area."
        )

    def test_failure_logged(self, session, mock_llm_client):
        _select(session, (1, 1))
        mock_llm_client.set_responses(["[1, 2, 3]"])
        assert not session.generate_area("a bog")
        assert session.activity.latest.text == "Failed to generate area content."
        assert session.grid.get("1,1").terrain == "void"


class TestGenerateEncounters:
    """Tests for AI-filled encounter tables."""

    def test_texts_replace_results(self, session, mock_llm_client):
        region_id = session.create_region()
        mock_llm_client.set_responses(['["Wolves", "", "Wyvern"]'])

        assert session.generate_encounters(region_id)

        results = [e.result for e in session.regions[region_id].table]
        assert results == ["Wolves", "Bandit tracks.", "Wyvern"]
        assert len(session.history) == 3

    def test_failure_keeps_table(self, session, mock_llm_client):
        region_id = session.create_region()
        before = session.regions[region_id]
        mock_llm_client.set_responses(['{"text": "no array"}'])

        assert not session.generate_encounters(region_id)

        assert session.regions[region_id] == before
        assert session.activity.latest.text == "Failed to generate encounters."

    def test_empty_table_is_noop(self, session, mock_llm_client):
        region_id = session.create_region()
        session.update_region(region_id, session.regions[region_id].with_changes(table=()))
        assert not session.generate_encounters(region_id)
        assert mock_llm_client.requests == []
