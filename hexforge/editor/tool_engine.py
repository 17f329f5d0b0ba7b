"""
Tool Application Engine for the HexForge editor.

Interprets pointer input against the active tool:
- press(q, r, modifiers): pointer goes down on a cell
- drag(q, r, modifiers): pointer held and moved onto another cell
- release(): pointer released anywhere; commits pending edits to history

Grid and selection mutations happen synchronously inside each handler.
Pointer edits only set the dirty flag; the history commit is deferred to
release so a whole drag becomes one undo step.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Union
import logging

from hexforge.data_models import (
    BULLDOZE_ROAD,
    ROAD_PAINT_MODES,
    ActiveTool,
    HexCoord,
)
from hexforge.editor.context import EditorContext
from hexforge.errors import InvalidTransitionError
from hexforge.hex_grid.hex_coords import is_neighbor
from hexforge.observability.run_log import get_run_log

if TYPE_CHECKING:
    from hexforge.editor.movement import PartyController

logger = logging.getLogger(__name__)


# Tools whose selection survives a tool change
SELECTION_TOOLS = frozenset({ActiveTool.SELECT, ActiveTool.MAGIC})


@dataclass(frozen=True)
class Modifiers:
    """Keyboard modifiers held during a pointer event."""
    shift: bool = False
    ctrl: bool = False
    meta: bool = False

    @property
    def toggle(self) -> bool:
        return self.ctrl or self.meta


NO_MODIFIERS = Modifiers()


class ToolEngine:
    """
    Mode-dispatching state machine over the active tool.

    All state lives in the shared EditorContext; the engine itself only
    holds collaborators.
    """

    def __init__(self, context: EditorContext, party: Optional["PartyController"] = None):
        self.ctx = context
        self.party = party

    # =========================================================================
    # TOOL SELECTION
    # =========================================================================

    def set_active_tool(self, tool: Union[ActiveTool, str]) -> ActiveTool:
        """
        Switch tools. Leaving Select/Magic clears the selection.

        Raises:
            InvalidTransitionError: If the tool name is unknown
        """
        try:
            new_tool = ActiveTool(tool)
        except ValueError:
            valid = [t.value for t in ActiveTool]
            raise InvalidTransitionError(f"Unknown tool '{tool}'. Valid tools: {valid}")

        old_tool = self.ctx.active_tool
        self.ctx.active_tool = new_tool
        if new_tool not in SELECTION_TOOLS:
            self.ctx.selection.clear()

        if new_tool != old_tool:
            get_run_log().log_transition(
                from_state=old_tool.value,
                to_state=new_tool.value,
                trigger="select_tool",
            )
        return new_tool

    def set_active_terrain(self, terrain_id: str) -> bool:
        """Select a terrain or road paint mode. Unknown ids are ignored."""
        if terrain_id not in self.ctx.terrains and terrain_id not in ROAD_PAINT_MODES:
            logger.warning(f"Ignoring unknown terrain '{terrain_id}'")
            return False
        self.ctx.active_terrain = terrain_id
        return True

    def set_active_icon(self, icon_id: str) -> bool:
        if not any(icon.icon_id == icon_id for icon in self.ctx.available_icons):
            logger.warning(f"Ignoring unknown icon '{icon_id}'")
            return False
        self.ctx.active_icon = icon_id
        return True

    @property
    def is_road_mode(self) -> bool:
        return self.ctx.active_terrain in ROAD_PAINT_MODES

    # =========================================================================
    # POINTER EVENTS
    # =========================================================================

    def press(self, q: int, r: int, modifiers: Modifiers = NO_MODIFIERS) -> None:
        """Pointer down on cell (q, r). Out-of-bounds presses are ignored."""
        target = HexCoord(q, r)
        if not self.ctx.in_bounds(target):
            return
        self.ctx.pointer_down = True

        if self.ctx.active_tool in SELECTION_TOOLS:
            self.ctx.selection.begin_drag(target)

        self._apply(target, is_drag=False, modifiers=modifiers)

    def drag(self, q: int, r: int, modifiers: Modifiers = NO_MODIFIERS) -> None:
        """Pointer moved onto cell (q, r) while held."""
        if not self.ctx.pointer_down:
            return
        target = HexCoord(q, r)
        if not self.ctx.in_bounds(target):
            return
        self._apply(target, is_drag=True, modifiers=modifiers)

    def release(self) -> bool:
        """
        Pointer released anywhere.

        Returns:
            True if pending edits were committed to history
        """
        self.ctx.pointer_down = False
        self.ctx.path_anchor = None
        self.ctx.selection.end_drag()

        if not self.ctx.dirty:
            return False
        self.ctx.commit(reason=f"{self.ctx.active_tool.value} stroke")
        return True

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def _apply(self, target: HexCoord, is_drag: bool, modifiers: Modifiers) -> None:
        tool = self.ctx.active_tool
        if tool == ActiveTool.PAINT:
            if self.is_road_mode:
                self._apply_road(target, is_drag)
            else:
                self._apply_terrain(target)
        elif tool == ActiveTool.ICON:
            self._apply_icon(target)
        elif tool in SELECTION_TOOLS:
            self._apply_selection(target, is_drag, modifiers)
        elif tool == ActiveTool.PARTY:
            if not is_drag and self.party is not None:
                self.party.teleport(target)

    def _apply_terrain(self, target: HexCoord) -> None:
        if self.ctx.grid.set_terrain(target.hex_id, self.ctx.active_terrain):
            self.ctx.dirty = True

    def _apply_icon(self, target: HexCoord) -> None:
        if self.ctx.grid.set_icon(target.hex_id, self.ctx.active_icon):
            self.ctx.dirty = True

    def _apply_road(self, target: HexCoord, is_drag: bool) -> None:
        """
        Press records the path anchor. Each drag step onto a neighbor of the
        anchor connects (or bulldozes) that edge and advances the anchor;
        non-neighbor targets are skipped and leave the anchor in place.
        """
        if not is_drag:
            self.ctx.path_anchor = target
            return

        anchor = self.ctx.path_anchor
        if anchor is None or anchor == target or not is_neighbor(anchor, target):
            return

        grid = self.ctx.grid
        if self.ctx.active_terrain == BULLDOZE_ROAD:
            changed = grid.remove_road(anchor.hex_id, target.hex_id)
        else:
            changed = grid.set_road(anchor.hex_id, target.hex_id, self.ctx.active_terrain)
        if changed:
            self.ctx.dirty = True
        self.ctx.path_anchor = target

    def _apply_selection(self, target: HexCoord, is_drag: bool, modifiers: Modifiers) -> None:
        selection = self.ctx.selection
        if is_drag:
            selection.drag_to(target, shift=modifiers.shift)
        elif modifiers.shift and selection.anchor is not None:
            selection.shift_click(target)
        elif modifiers.toggle:
            selection.toggle(target)
        else:
            selection.click(target)
