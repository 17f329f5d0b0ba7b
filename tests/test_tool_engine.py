"""
Tests for pointer tools: paint, roads, icons, selection and party placement.
"""

import pytest

from hexforge.data_models import ActiveTool, HexCoord
from hexforge.editor.tool_engine import Modifiers
from hexforge.errors import InvalidTransitionError
from hexforge.observability.run_log import EventType, get_run_log


class TestToolSelection:
    """Tests for switching tools."""

    def test_default_tool_is_paint(self, session):
        assert session.active_tool == ActiveTool.PAINT

    def test_switch_by_name(self, session):
        assert session.set_active_tool("select") == ActiveTool.SELECT
        assert session.active_tool == ActiveTool.SELECT

    def test_unknown_tool_raises(self, session):
        with pytest.raises(InvalidTransitionError):
            session.set_active_tool("lasso")
        assert session.active_tool == ActiveTool.PAINT

    def test_leaving_selection_tools_clears_selection(self, session):
        session.set_active_tool("select")
        session.press(1, 1)
        session.release()

        session.set_active_tool("magic")
        assert len(session.selection) == 1

        session.set_active_tool("paint")
        assert session.selection.is_empty()

    def test_transition_is_logged(self, session):
        session.set_active_tool("icon")
        transitions = get_run_log().get_events(EventType.TRANSITION)
        assert transitions[-1].from_state == "paint"
        assert transitions[-1].to_state == "icon"

    def test_unknown_terrain_and_icon_ignored(self, session):
        assert not session.set_active_terrain("lava")
        assert session.active_terrain == "grass"
        assert not session.set_active_icon("spaceship")
        assert session.active_icon == "village"


class TestPaintTool:
    """Tests for terrain painting."""

    def test_stroke_is_one_history_entry(self, session, stroke):
        session.set_active_terrain("forest")
        assert stroke(session, (1, 1), (2, 1), (3, 1))

        assert len(session.history) == 2
        for key in ("1,1", "2,1", "3,1"):
            assert session.grid.get(key).terrain == "forest"

        session.undo()
        assert session.grid.get("2,1").terrain == "void"

    def test_noop_stroke_does_not_commit(self, session, stroke):
        session.set_active_terrain("void")
        assert not stroke(session, (1, 1), (2, 1))
        assert len(session.history) == 1

    def test_out_of_bounds_press_ignored(self, session):
        session.press(50, 50)
        assert not session.ctx.pointer_down
        assert not session.release()

    def test_drag_without_press_ignored(self, session):
        session.drag(1, 1)
        assert session.grid.get("1,1").terrain == "void"


class TestRoadTool:
    """Tests for drag-drawn roads."""

    def test_drag_connects_neighbors(self, session, stroke):
        session.set_active_terrain("paved")
        stroke(session, (2, 2), (3, 2), (3, 3))

        assert session.grid.get("2,2").roads == {"3,2": "paved"}
        assert session.grid.get("3,2").roads == {"2,2": "paved", "3,3": "paved"}
        assert session.grid.get("3,3").roads == {"3,2": "paved"}
        assert len(session.history) == 2

    def test_press_alone_draws_nothing(self, session, stroke):
        session.set_active_terrain("trail")
        assert not stroke(session, (2, 2))
        assert session.grid.get("2,2").roads == {}

    def test_non_neighbor_skipped_and_anchor_kept(self, session):
        session.set_active_terrain("paved")
        session.press(2, 2)
        session.drag(6, 6)
        assert session.ctx.path_anchor == HexCoord(2, 2)

        session.drag(3, 2)
        session.release()
        assert session.grid.get("2,2").roads == {"3,2": "paved"}
        assert session.grid.get("6,6").roads == {}

    def test_bulldoze_removes_road(self, session, stroke):
        session.set_active_terrain("paved")
        stroke(session, (2, 2), (3, 2))
        session.set_active_terrain("bulldoze_road")
        stroke(session, (3, 2), (2, 2))

        assert session.grid.get("2,2").roads == {}
        assert session.grid.get("3,2").roads == {}
        assert len(session.history) == 3

    def test_road_mode_keeps_terrain(self, session, stroke):
        session.set_active_terrain("paved")
        stroke(session, (2, 2), (3, 2))
        assert session.grid.get("2,2").terrain == "void"


class TestIconTool:
    """Tests for icon stamping."""

    def test_icon_stroke(self, session, stroke):
        session.set_active_tool("icon")
        session.set_active_icon("ruin")
        stroke(session, (4, 4), (5, 4))
        assert session.grid.get("4,4").icon == "ruin"
        assert session.grid.get("5,4").icon == "ruin"
        assert len(session.history) == 2


class TestSelectTool:
    """Tests for selection through pointer events."""

    def test_click_and_drag(self, session, stroke):
        session.set_active_tool("select")
        stroke(session, (1, 1), (2, 1))
        assert session.selection.ids == {"1,1", "2,1"}

    def test_selection_does_not_touch_history(self, session, stroke):
        session.set_active_tool("select")
        assert not stroke(session, (1, 1), (2, 1))
        assert len(session.history) == 1

    def test_shift_click_range(self, session):
        session.set_active_tool("select")
        session.press(1, 1)
        session.release()
        session.press(2, 2, Modifiers(shift=True))
        session.release()
        assert session.selection.ids == {"1,1", "1,2", "2,1", "2,2"}

    def test_ctrl_click_toggles(self, session):
        session.set_active_tool("select")
        session.press(1, 1)
        session.release()
        session.press(3, 3, Modifiers(ctrl=True))
        session.release()
        session.press(1, 1, Modifiers(meta=True))
        session.release()
        assert session.selection.ids == {"3,3"}

    def test_shift_drag_rectangle(self, session):
        session.set_active_tool("select")
        session.press(0, 0, Modifiers(shift=True))
        session.drag(2, 1, Modifiers(shift=True))
        session.release()
        assert session.selection.ids == {"0,0", "0,1", "1,0", "1,1", "2,0", "2,1"}


class TestPartyTool:
    """Tests for click-to-teleport."""

    def test_click_moves_party(self, session):
        session.set_active_tool("party")
        session.press(7, 7)
        session.release()
        assert session.party_state.position == HexCoord(7, 7)
        assert session.activity.latest.text == "Party moved to 7,7."

    def test_drag_does_not_move_party(self, session):
        session.set_active_tool("party")
        session.press(7, 7)
        session.drag(8, 7)
        session.release()
        assert session.party_state.position == HexCoord(7, 7)

    def test_click_in_region_rolls_encounter(self, session, mock_dice, dragon_region):
        session.regions["r1"] = dragon_region
        session.grid.set_region("5,5", "r1")
        mock_dice.rolls = [[4]]

        session.set_active_tool("party")
        session.press(5, 5)

        assert mock_dice.calls == [("1d6", "Encounter check: Dragon Hills")]
        assert "Safe." in session.activity.latest.text
