"""
Tests for EditorSession: palette, regions, cell content and shortcuts.
"""

import pytest

from hexforge.data_models import VOID_TERRAIN, IconKind
from hexforge.editor.context import EditorConfig
from hexforge.editor.session import EditorSession
from hexforge.editor.tool_engine import Modifiers
from hexforge.observability.activity_log import LogSeverity
from hexforge.observability.run_log import get_run_log


def _select(session, *cells):
    session.set_active_tool("select")
    for q, r in cells:
        session.press(q, r, Modifiers(ctrl=True))
        session.release()


class TestSessionSetup:
    """Tests for session construction."""

    def test_welcome_message(self, session):
        assert session.activity.latest.text == "Welcome to HexForge."

    def test_initial_history(self, session):
        assert len(session.history) == 1
        assert session.grid.width == 12
        assert session.grid.height == 10

    def test_seed_recorded(self, mock_llm_manager, scheduler):
        EditorSession(EditorConfig(width=4, height=4, seed=7), llm_manager=mock_llm_manager, scheduler=scheduler)
        assert get_run_log().get_seed() == 7

    def test_default_llm_manager_from_config(self, scheduler):
        session = EditorSession(EditorConfig(width=4, height=4, llm_provider="mock"), scheduler=scheduler)
        assert session.generator.is_available()

    def test_party_start_outside_grid_rejected(self):
        with pytest.raises(ValueError, match="Party start 3,3"):
            EditorConfig(width=3, height=3)

    def test_party_start_inside_small_grid(self):
        config = EditorConfig(width=3, height=3, party_start=[2, 2])
        assert config.party_start == (2, 2)

    def test_status_banner(self, session):
        text = session.status()
        assert "HEXFORGE SESSION" in text
        assert "Grid: 12x10" in text
        assert "(none)" in text


class TestTerrainPalette:
    """Tests for custom terrains and deletion."""

    def test_add_terrain(self, session):
        terrain_id = session.add_terrain("Lava", "#ff4400")

        assert terrain_id.startswith("custom_terrain_")
        assert session.terrains[terrain_id].label == "Lava"
        assert session.active_terrain == terrain_id
        assert session.activity.latest.text == "Created terrain: Lava"
        assert len(session.history) == 2

    def test_add_terrain_requires_name(self, session):
        assert session.add_terrain("   ", "#000000") is None
        assert session.activity.latest.text == "Please provide a name."
        assert len(session.history) == 1

    def test_custom_terrain_ids_unique(self, session):
        assert session.add_terrain("A", "#111111") != session.add_terrain("A", "#111111")

    def test_delete_used_terrain_resets_cells(self, session, stroke):
        session.set_active_terrain("forest")
        stroke(session, (1, 1), (2, 1), (3, 1))
        questions = []

        deleted = session.delete_terrain("forest", confirm=lambda q: questions.append(q) or True)

        assert deleted
        assert questions == [
            "This terrain is used in 3 hexes. Deleting it will reset them to Void. Continue?"
        ]
        assert "forest" not in session.terrains
        assert session.grid.count_terrain("forest") == 0
        assert session.grid.get("2,1").terrain == VOID_TERRAIN
        assert session.active_terrain == VOID_TERRAIN

    def test_delete_unused_terrain_question(self, session):
        questions = []
        session.delete_terrain("desert", confirm=lambda q: questions.append(q) or False)
        assert questions == ['Delete terrain "Desert"?']
        assert "desert" in session.terrains

    def test_declined_delete_changes_nothing(self, session, stroke):
        session.set_active_terrain("water")
        stroke(session, (1, 1))
        assert not session.delete_terrain("water")
        assert session.grid.get("1,1").terrain == "water"
        assert len(session.history) == 2

    def test_void_cannot_be_deleted(self, session):
        assert not session.delete_terrain(VOID_TERRAIN, confirm=True)
        latest = session.activity.latest
        assert latest.text == "Cannot delete the default Void terrain."
        assert latest.severity == LogSeverity.ERROR

    def test_undo_restores_deleted_terrain(self, session, stroke):
        session.set_active_terrain("forest")
        stroke(session, (4, 4))
        session.delete_terrain("forest", confirm=True)

        session.undo()

        assert "forest" in session.terrains
        assert session.grid.get("4,4").terrain == "forest"


class TestRegions:
    """Tests for region lifecycle and assignment."""

    def test_create_region_without_selection(self, session, mock_dice):
        mock_dice.ints = [200]
        region_id = session.create_region()

        region = session.regions[region_id]
        assert region.color == "hsl(200, 70%, 70%)"
        assert region.dice_config.notation == "2d6"
        assert len(region.table) == 3
        assert len(session.history) == 2

    def test_create_region_assigns_selection_in_one_step(self, session):
        _select(session, (1, 1), (2, 1))
        region_id = session.create_region()

        assert session.grid.get("1,1").region_id == region_id
        assert session.grid.get("2,1").region_id == region_id
        assert session.activity.latest.text == "Applied region to 2 hex(es)."
        assert len(session.history) == 2

        session.undo()
        assert region_id not in session.regions
        assert session.grid.get("1,1").region_id is None

    def test_batch_detach(self, session):
        _select(session, (1, 1))
        session.create_region()
        assert session.batch_assign_region(None) == 1
        assert session.grid.get("1,1").region_id is None
        assert session.activity.latest.text == "Detached regions from 1 hex(es)."

    def test_batch_assign_unknown_region(self, session):
        _select(session, (1, 1))
        assert session.batch_assign_region("nope") == 0
        assert session.activity.latest.severity == LogSeverity.WARNING

    def test_batch_assign_without_selection(self, session):
        session.create_region()
        assert session.batch_assign_region(next(iter(session.regions))) == 0

    def test_common_region_id(self, session):
        _select(session, (1, 1), (2, 1))
        region_id = session.create_region()
        assert session.common_region_id() == region_id

        _select(session, (5, 5))
        assert session.common_region_id() is None

    def test_delete_region_detaches_cells(self, session):
        _select(session, (1, 1), (2, 1))
        region_id = session.create_region()
        questions = []

        assert session.delete_region(region_id, confirm=lambda q: questions.append(q) or True)

        assert questions == ["Delete this region? Hexes will be detached."]
        assert region_id not in session.regions
        assert session.grid.cells_in_region(region_id) == []

    def test_declined_region_delete(self, session):
        region_id = session.create_region()
        assert not session.delete_region(region_id)
        assert region_id in session.regions

    def test_update_unknown_region(self, session):
        assert not session.add_table_row("missing")
        assert session.activity.latest.text == "Unknown region: missing"

    def test_table_edits_commit(self, session):
        region_id = session.create_region()

        assert session.add_table_row(region_id)
        assert session.set_trigger_values(region_id, "1-2")
        assert session.set_trigger_die(region_id, "d8")
        assert session.update_table_row(region_id, 0, result="Wolves")
        assert session.delete_table_row(region_id, 3)
        assert session.set_dice_config(region_id, 1, 6)

        region = session.regions[region_id]
        assert region.freq_config.trigger_values == (1, 2)
        assert region.freq_config.die == "d8"
        assert region.table[0].result == "Wolves"
        assert len(region.table) == 3
        assert len(session.history) == 8

    def test_roll_region(self, session, mock_dice):
        region_id = session.create_region()
        mock_dice.rolls = [[1], [6, 5]]

        outcome = session.roll_region(region_id)

        assert outcome.result_text == "Dragon spotted!"
        assert session.activity.latest.text == "Rolled 11 (6+5). Result: Dragon spotted!"
        assert session.activity.latest.severity == LogSeverity.ALERT

    def test_roll_unknown_region(self, session):
        assert session.roll_region("missing") is None


class TestCellContent:
    """Tests for clearing cells and editing lore."""

    def test_clear_selected_hexes(self, session, stroke):
        session.set_active_terrain("paved")
        stroke(session, (1, 1), (2, 1), (3, 1))
        session.set_active_tool("icon")
        stroke(session, (2, 1))
        _select(session, (1, 1), (2, 1))

        assert session.clear_selected_hexes() == 2

        assert session.grid.get("2,1").icon == "none"
        assert session.grid.get("2,1").roads == {}
        assert session.grid.get("3,1").roads == {}
        assert session.activity.latest.text == "Cleared content from 2 hex(es)."
        assert session.activity.latest.severity == LogSeverity.SUCCESS

    def test_clear_without_selection(self, session):
        assert session.clear_selected_hexes() == 0
        assert len(session.history) == 1

    def test_lore_commits_on_blur(self, session):
        assert session.update_hex_lore("2,2", "An old well.")
        assert session.update_hex_lore("2,2", "An old, dry well.")
        assert len(session.history) == 1

        assert session.commit_hex_lore()
        assert not session.commit_hex_lore()
        assert len(session.history) == 2
        assert session.grid.get("2,2").lore == "An old, dry well."

    def test_unchanged_lore_not_dirty(self, session):
        assert not session.update_hex_lore("2,2", "")
        assert not session.commit_hex_lore()


class TestIconsAndParty:
    """Tests for icon stamps and the party token."""

    def test_add_icon_stamp(self, session, stroke):
        icon_id = session.add_icon_stamp("Dragon", "🐉")

        assert icon_id.startswith("custom_")
        icon = session.available_icons[-1]
        assert icon.icon_id == icon_id
        assert icon.kind == IconKind.TEXT
        assert session.active_icon == icon_id

        session.set_active_tool("icon")
        stroke(session, (3, 3))
        assert session.grid.get("3,3").icon == icon_id

    def test_icon_stamp_requires_label_and_symbol(self, session):
        assert session.add_icon_stamp("Dragon", "") is None
        assert session.activity.latest.text == (
            "Please provide both a Label and a Symbol (Emoji or Text)."
        )

    def test_set_party_icon(self, session):
        assert session.set_party_icon("flag")
        assert session.party_state.icon_id == "flag"
        assert not session.set_party_icon("dragon")
        assert session.party_state.icon_id == "flag"


class TestShortcuts:
    """Tests for undo/redo keyboard shortcuts."""

    def test_ctrl_z_and_redo_variants(self, session, stroke):
        session.set_active_terrain("forest")
        stroke(session, (1, 1))

        assert session.handle_key_down("z", ctrl=True)
        assert session.grid.get("1,1").terrain == VOID_TERRAIN
        assert session.activity.latest.text == "Undo"

        assert session.handle_key_down("Z", ctrl=True, shift=True)
        assert session.grid.get("1,1").terrain == "forest"
        assert session.activity.latest.text == "Redo"

        session.handle_key_down("z", meta=True)
        assert session.handle_key_down("y", meta=True)
        assert session.grid.get("1,1").terrain == "forest"

    def test_undo_at_start_is_noop(self, session):
        assert not session.undo()
        assert session.activity.latest.text == "Welcome to HexForge."

    def test_plain_z_is_not_undo(self, session):
        assert not session.handle_key_down("z")

    def test_new_edit_after_undo_drops_redo(self, session, stroke):
        session.set_active_terrain("forest")
        stroke(session, (1, 1))
        session.undo()
        session.set_active_terrain("water")
        stroke(session, (2, 2))

        assert not session.redo()
        assert session.grid.get("1,1").terrain == VOID_TERRAIN

    def test_blur_commits_open_stroke(self, session):
        session.set_active_terrain("forest")
        session.press(1, 1)
        session.drag(2, 1)
        session.handle_blur()
        assert len(session.history) == 2
        assert not session.ctx.pointer_down
