"""
HexForge editing session.

EditorSession owns the shared EditorContext and wires every subsystem to
it: the tool engine, party movement, the encounter engine and the content
generator. It is the single entry point for front ends (a UI, the CLI, or
tests) and implements the structural edits that commit to history
immediately instead of waiting for a pointer release.
"""

from pathlib import Path
from typing import Any, Callable, Optional, Union
import logging
import uuid

from hexforge.ai.content_generator import ContentGenerator, GenerationAssets
from hexforge.ai.edit_operations import apply_area_plan, apply_map_plan
from hexforge.ai.llm_provider import LLMConfig, LLMManager
from hexforge.data_models import (
    PARTY_ICONS,
    ROAD_TYPES,
    VOID_TERRAIN,
    ActiveTool,
    DiceConfig,
    DiceRoller,
    FreqConfig,
    IconDef,
    IconKind,
    Region,
    TerrainConfig,
    default_region_table,
)
from hexforge.editor.context import EditorConfig, EditorContext
from hexforge.editor.movement import (
    MovementLoop,
    PartyController,
    Scheduler,
    report_outcome,
)
from hexforge.editor.tool_engine import NO_MODIFIERS, Modifiers, ToolEngine
from hexforge.encounters import region_engine
from hexforge.encounters.region_engine import EncounterOutcome, RegionEncounterEngine
from hexforge.errors import ContentGenerationError
from hexforge.observability.activity_log import LogSeverity
from hexforge.observability.run_log import get_run_log
from hexforge.persistence import map_io

logger = logging.getLogger(__name__)


# A yes/no answer, or a callback that is shown the question and answers it
Confirmation = Union[bool, Callable[[str], bool]]


def _confirmed(confirm: Confirmation, message: str) -> bool:
    if callable(confirm):
        return bool(confirm(message))
    return bool(confirm)


def _unique_suffix() -> str:
    return uuid.uuid4().hex[:8]


class EditorSession:
    """
    The HexForge editor, minus the rendering.

    Usage:
        session = EditorSession(EditorConfig(seed=7))
        session.set_active_tool("paint")
        session.press(4, 4)
        session.drag(5, 4)
        session.release()      # one history entry for the whole stroke
        session.undo()

    User-facing operations never raise for bad input; they log a message
    to the activity feed and leave the state unchanged.
    """

    def __init__(
        self,
        config: Optional[EditorConfig] = None,
        llm_manager: Optional[LLMManager] = None,
        dice_roller: Optional[Any] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        """
        Initialize the session.

        Args:
            config: Editor configuration (defaults to a 50x40 map)
            llm_manager: LLM manager for content generation; built from
                config when None
            dice_roller: Roller used for encounter checks and region colors
            scheduler: Timer source for the party movement loop
        """
        self.config = config or EditorConfig()
        if self.config.seed is not None:
            DiceRoller.set_seed(self.config.seed)
            get_run_log().set_seed(self.config.seed)

        self._dice = dice_roller or DiceRoller()
        self.ctx = EditorContext(config=self.config)

        self.encounters = RegionEncounterEngine(self._dice)
        self.party = PartyController(self.ctx, self.encounters)
        self.tools = ToolEngine(self.ctx, self.party)
        self.movement = MovementLoop(self.ctx, self.party, scheduler)

        if llm_manager is None:
            llm_manager = LLMManager(
                LLMConfig(
                    provider=self.config.llm_provider,
                    model=self.config.llm_model,
                    api_key=self.config.llm_api_key,
                )
            )
        self.generator = ContentGenerator(manager=llm_manager)

        logger.info(
            f"Editor session ready: {self.config.width}x{self.config.height} grid, "
            f"LLM provider {llm_manager.config.provider.value}"
        )
        self.ctx.log("Welcome to HexForge.")

    # =========================================================================
    # STATE ACCESS
    # =========================================================================

    @property
    def grid(self):
        return self.ctx.grid

    @property
    def regions(self) -> dict[str, Region]:
        return self.ctx.regions

    @property
    def terrains(self) -> dict[str, TerrainConfig]:
        return self.ctx.terrains

    @property
    def selection(self):
        return self.ctx.selection

    @property
    def history(self):
        return self.ctx.history

    @property
    def activity(self):
        return self.ctx.activity

    @property
    def party_state(self):
        return self.ctx.party

    @property
    def active_tool(self) -> ActiveTool:
        return self.ctx.active_tool

    @property
    def active_terrain(self) -> str:
        return self.ctx.active_terrain

    @property
    def active_icon(self) -> str:
        return self.ctx.active_icon

    @property
    def available_icons(self) -> list[IconDef]:
        return list(self.ctx.available_icons)

    # =========================================================================
    # POINTER INPUT AND TOOLS
    # =========================================================================

    def set_active_tool(self, tool: Union[ActiveTool, str]) -> ActiveTool:
        return self.tools.set_active_tool(tool)

    def set_active_terrain(self, terrain_id: str) -> bool:
        return self.tools.set_active_terrain(terrain_id)

    def set_active_icon(self, icon_id: str) -> bool:
        return self.tools.set_active_icon(icon_id)

    def press(self, q: int, r: int, modifiers: Modifiers = NO_MODIFIERS) -> None:
        self.tools.press(q, r, modifiers)

    def drag(self, q: int, r: int, modifiers: Modifiers = NO_MODIFIERS) -> None:
        self.tools.drag(q, r, modifiers)

    def release(self) -> bool:
        """Pointer released anywhere in the window."""
        return self.tools.release()

    # =========================================================================
    # KEYBOARD AND FOCUS
    # =========================================================================

    def handle_key_down(
        self,
        key: str,
        ctrl: bool = False,
        meta: bool = False,
        shift: bool = False,
    ) -> bool:
        """
        Route a keydown: undo/redo shortcuts first, then party movement.

        Returns:
            True if the key was handled
        """
        if ctrl or meta:
            lowered = key.lower()
            if lowered == "z":
                if shift:
                    self.redo()
                else:
                    self.undo()
                return True
            if lowered == "y":
                self.redo()
                return True
        return self.movement.key_down(key)

    def handle_key_up(self, key: str) -> None:
        self.movement.key_up(key)

    def handle_blur(self) -> None:
        """Window lost focus: stop moving and finish any pointer stroke."""
        self.movement.blur()
        self.tools.release()

    # =========================================================================
    # HISTORY
    # =========================================================================

    def undo(self) -> bool:
        entry = self.ctx.history.undo()
        if entry is None:
            return False
        self.ctx.apply_entry(entry)
        self.ctx.dirty = False
        self.ctx.log("Undo")
        return True

    def redo(self) -> bool:
        entry = self.ctx.history.redo()
        if entry is None:
            return False
        self.ctx.apply_entry(entry)
        self.ctx.dirty = False
        self.ctx.log("Redo")
        return True

    # =========================================================================
    # TERRAIN PALETTE
    # =========================================================================

    def add_terrain(self, label: str, color: str) -> Optional[str]:
        """
        Register a custom terrain and make it the active paint.

        Returns:
            The new terrain id, or None if the label was blank
        """
        label = (label or "").strip()
        if not label:
            self.ctx.log("Please provide a name.", LogSeverity.WARNING)
            return None

        terrain_id = f"custom_terrain_{_unique_suffix()}"
        self.ctx.terrains = {**self.ctx.terrains, terrain_id: TerrainConfig(label=label, color=color)}
        self.ctx.active_terrain = terrain_id
        self.ctx.commit("add terrain")
        self.ctx.log(f"Created terrain: {label}", LogSeverity.SUCCESS)
        return terrain_id

    def update_terrain(self, terrain_id: str, config: TerrainConfig) -> bool:
        if terrain_id not in self.ctx.terrains or self.ctx.terrains[terrain_id] == config:
            return False
        self.ctx.terrains = {**self.ctx.terrains, terrain_id: config}
        self.ctx.commit("update terrain")
        return True

    def delete_terrain(self, terrain_id: str, confirm: Confirmation = False) -> bool:
        """
        Remove a terrain from the palette; cells using it revert to void.

        Args:
            terrain_id: Terrain to delete
            confirm: Answer to the confirmation question, or a callback
                that receives the question text

        Returns:
            True if the terrain was deleted
        """
        if terrain_id == VOID_TERRAIN:
            self.ctx.log("Cannot delete the default Void terrain.", LogSeverity.ERROR)
            return False
        terrain = self.ctx.terrains.get(terrain_id)
        if terrain is None:
            return False

        count = self.ctx.grid.count_terrain(terrain_id)
        if count > 0:
            question = (
                f"This terrain is used in {count} hexes. "
                "Deleting it will reset them to Void. Continue?"
            )
        else:
            question = f'Delete terrain "{terrain.label}"?'
        if not _confirmed(confirm, question):
            return False

        self.ctx.grid.replace_terrain(terrain_id, VOID_TERRAIN)
        self.ctx.terrains = {k: v for k, v in self.ctx.terrains.items() if k != terrain_id}
        if self.ctx.active_terrain == terrain_id:
            self.ctx.active_terrain = VOID_TERRAIN
        self.ctx.commit("delete terrain")
        logger.info(f"Deleted terrain {terrain_id}; {count} cells reset to void")
        return True

    # =========================================================================
    # REGIONS
    # =========================================================================

    def create_region(self) -> str:
        """
        Create a region with the starter table.

        A non-empty selection is assigned to the new region in the same
        history step.
        """
        region_id = f"region_{_unique_suffix()}"
        hue = self._dice.randint(0, 359, "Region color")
        region = Region(
            name="New Region",
            color=f"hsl({hue}, 70%, 70%)",
            freq_config=FreqConfig(die="d6", trigger_values=(1,)),
            dice_config=DiceConfig(count=2, faces=6),
            table=default_region_table(),
        )
        self.ctx.regions = {**self.ctx.regions, region_id: region}

        if self.ctx.selection.is_empty():
            self.ctx.commit("create region")
        else:
            self.batch_assign_region(region_id)
        return region_id

    def update_region(self, region_id: str, region: Region) -> bool:
        current = self.ctx.regions.get(region_id)
        if current is None:
            self.ctx.log(f"Unknown region: {region_id}", LogSeverity.WARNING)
            return False
        if current == region:
            return False
        self.ctx.regions = {**self.ctx.regions, region_id: region}
        self.ctx.commit("update region")
        return True

    def delete_region(self, region_id: str, confirm: Confirmation = False) -> bool:
        if region_id not in self.ctx.regions:
            return False
        if not _confirmed(confirm, "Delete this region? Hexes will be detached."):
            return False
        detached = self.ctx.grid.detach_region(region_id)
        self.ctx.regions = {k: v for k, v in self.ctx.regions.items() if k != region_id}
        self.ctx.commit("delete region")
        logger.info(f"Deleted region {region_id}; {detached} cells detached")
        return True

    def batch_assign_region(self, region_id: Optional[str]) -> int:
        """
        Assign every selected cell to region_id, or detach them with None.

        Returns:
            Number of selected cells
        """
        selected = self.ctx.selection.ids
        if not selected:
            return 0
        if region_id is not None and region_id not in self.ctx.regions:
            self.ctx.log(f"Unknown region: {region_id}", LogSeverity.WARNING)
            return 0

        self.ctx.grid.assign_region(selected, region_id)
        self.ctx.commit("assign region")
        if region_id is None:
            self.ctx.log(f"Detached regions from {len(selected)} hex(es).")
        else:
            self.ctx.log(f"Applied region to {len(selected)} hex(es).")
        return len(selected)

    def common_region_id(self) -> Optional[str]:
        """The region shared by every selected cell, if there is one."""
        selected = list(self.ctx.selection)
        if not selected:
            return None
        first = self.ctx.grid.get(selected[0])
        region_id = first.region_id if first is not None else None
        if region_id is None:
            return None
        for hex_id in selected[1:]:
            cell = self.ctx.grid.get(hex_id)
            if cell is None or cell.region_id != region_id:
                return None
        return region_id

    # -------------------------------------------------------------------------
    # Region table editing
    # -------------------------------------------------------------------------

    def _edit_region(self, region_id: str, edit: Callable[[Region], Region]) -> bool:
        region = self.ctx.regions.get(region_id)
        if region is None:
            self.ctx.log(f"Unknown region: {region_id}", LogSeverity.WARNING)
            return False
        return self.update_region(region_id, edit(region))

    def add_table_row(self, region_id: str) -> bool:
        return self._edit_region(region_id, region_engine.add_table_row)

    def delete_table_row(self, region_id: str, index: int) -> bool:
        return self._edit_region(region_id, lambda r: region_engine.delete_table_row(r, index))

    def update_table_row(
        self,
        region_id: str,
        index: int,
        range_min: Any = None,
        range_max: Any = None,
        result: Optional[str] = None,
    ) -> bool:
        return self._edit_region(
            region_id,
            lambda r: region_engine.update_table_row(r, index, range_min, range_max, result),
        )

    def set_dice_config(self, region_id: str, count: Any, faces: Any) -> bool:
        return self._edit_region(region_id, lambda r: region_engine.set_dice_config(r, count, faces))

    def set_trigger_values(self, region_id: str, text: str) -> bool:
        return self._edit_region(region_id, lambda r: region_engine.set_trigger_values(r, text))

    def set_trigger_die(self, region_id: str, die: str) -> bool:
        return self._edit_region(region_id, lambda r: region_engine.set_trigger_die(r, die))

    def roll_region(self, region_id: str) -> Optional[EncounterOutcome]:
        """Run an encounter check for a region without moving the party."""
        region = self.ctx.regions.get(region_id)
        if region is None:
            self.ctx.log(f"Unknown region: {region_id}", LogSeverity.WARNING)
            return None
        outcome = self.encounters.resolve(region, region_id)
        report_outcome(self.ctx, outcome)
        return outcome

    # =========================================================================
    # CELL CONTENT
    # =========================================================================

    def clear_selected_hexes(self) -> int:
        """Reset every selected cell, removing roads on both ends."""
        selected = list(self.ctx.selection)
        if not selected:
            return 0
        cleared = 0
        for hex_id in selected:
            if self.ctx.grid.contains(hex_id):
                self.ctx.grid.clear_cell(hex_id)
                cleared += 1
        self.ctx.commit("clear hexes")
        self.ctx.log(f"Cleared content from {cleared} hex(es).", LogSeverity.SUCCESS)
        return cleared

    def update_hex_lore(self, hex_id: str, lore: str) -> bool:
        """Edit a cell's notes without committing; see commit_hex_lore."""
        if self.ctx.grid.set_lore(hex_id, lore):
            self.ctx.dirty = True
            return True
        return False

    def commit_hex_lore(self) -> bool:
        """Lore field lost focus."""
        if not self.ctx.dirty:
            return False
        self.ctx.commit("hex lore")
        return True

    # =========================================================================
    # ICONS AND PARTY
    # =========================================================================

    def add_icon_stamp(self, label: str, symbol: str) -> Optional[str]:
        """Register a text or emoji stamp and make it the active icon."""
        label = (label or "").strip()
        symbol = (symbol or "").strip()
        if not label or not symbol:
            self.ctx.log(
                "Please provide both a Label and a Symbol (Emoji or Text).",
                LogSeverity.WARNING,
            )
            return None
        icon_id = f"custom_{_unique_suffix()}"
        self.ctx.available_icons.append(
            IconDef(icon_id=icon_id, label=label, symbol=symbol, kind=IconKind.TEXT)
        )
        self.ctx.active_icon = icon_id
        return icon_id

    def set_party_icon(self, icon_id: str) -> bool:
        if icon_id not in PARTY_ICONS:
            logger.warning(f"Unknown party icon: {icon_id}")
            return False
        self.ctx.party.icon_id = icon_id
        return True

    # =========================================================================
    # CONTENT GENERATION
    # =========================================================================

    def generation_assets(self) -> GenerationAssets:
        return GenerationAssets(
            terrains=list(self.ctx.terrains),
            icons=[icon.icon_id for icon in self.ctx.available_icons],
            road_types=list(ROAD_TYPES),
        )

    def generate_map(self, description: str, clear_map: bool = True) -> bool:
        """
        Replace (or paint over) the map from a description.

        Returns:
            True if a plan was applied and committed
        """
        if not self._check_description(description, "Please enter a description."):
            return False
        try:
            plan = self.generator.request_map_plan(
                description, self.generation_assets(), self.ctx.grid.width, self.ctx.grid.height
            )
        except ContentGenerationError as e:
            return self._generation_failed("map", "Failed to generate map. Try again.", e)
        return self._apply_map_plan(plan, clear_map)

    async def generate_map_async(self, description: str, clear_map: bool = True) -> bool:
        if not self._check_description(description, "Please enter a description."):
            return False
        try:
            plan = await self.generator.request_map_plan_async(
                description, self.generation_assets(), self.ctx.grid.width, self.ctx.grid.height
            )
        except ContentGenerationError as e:
            return self._generation_failed("map", "Failed to generate map. Try again.", e)
        return self._apply_map_plan(plan, clear_map)

    def generate_area(self, description: str) -> bool:
        """Fill the selected cells from a description."""
        if self.ctx.selection.is_empty():
            return False
        if not self._check_description(
            description, "Please describe what you want to generate in this area."
        ):
            return False
        selected = self.ctx.selection.ids
        try:
            plan = self.generator.request_area_plan(description, selected, self.generation_assets())
        except ContentGenerationError as e:
            return self._generation_failed("area", "Failed to generate area content.", e)
        return self._apply_area_plan(plan, selected)

    async def generate_area_async(self, description: str) -> bool:
        if self.ctx.selection.is_empty():
            return False
        if not self._check_description(
            description, "Please describe what you want to generate in this area."
        ):
            return False
        selected = self.ctx.selection.ids
        try:
            plan = await self.generator.request_area_plan_async(
                description, selected, self.generation_assets()
            )
        except ContentGenerationError as e:
            return self._generation_failed("area", "Failed to generate area content.", e)
        return self._apply_area_plan(plan, selected)

    def generate_encounters(self, region_id: str) -> bool:
        """Rewrite a region's table results to fit its lore."""
        region = self.ctx.regions.get(region_id)
        if region is None or not region.table:
            return False
        try:
            texts = self.generator.request_encounter_texts(region)
        except ContentGenerationError as e:
            return self._generation_failed("encounters", "Failed to generate encounters.", e)
        return self._apply_encounter_texts(region_id, texts)

    async def generate_encounters_async(self, region_id: str) -> bool:
        region = self.ctx.regions.get(region_id)
        if region is None or not region.table:
            return False
        try:
            texts = await self.generator.request_encounter_texts_async(region)
        except ContentGenerationError as e:
            return self._generation_failed("encounters", "Failed to generate encounters.", e)
        return self._apply_encounter_texts(region_id, texts)

    def _check_description(self, description: str, message: str) -> bool:
        if description and description.strip():
            return True
        self.ctx.log(message, LogSeverity.WARNING)
        return False

    def _generation_failed(self, kind: str, message: str, error: ContentGenerationError) -> bool:
        logger.error(f"{kind} generation failed: {error}")
        self.ctx.log(message, LogSeverity.ERROR)
        get_run_log().log_generation(kind, success=False, error=str(error))
        return False

    def _apply_map_plan(self, plan, clear_map: bool) -> bool:
        grid = self.ctx.grid.clone()
        regions = dict(self.ctx.regions)
        report = apply_map_plan(grid, regions, plan, clear_map, self.config.hex_size)

        self.ctx.grid = grid
        self.ctx.regions = regions
        self.ctx.commit("map generation")
        self.ctx.log("Magic map generation complete!", LogSeverity.SUCCESS)
        get_run_log().log_generation("map", success=True, operations_applied=report.operations_applied)
        return True

    def _apply_area_plan(self, plan, selected: frozenset[str]) -> bool:
        grid = self.ctx.grid.clone()
        regions = dict(self.ctx.regions)
        report = apply_area_plan(grid, regions, plan, selected)

        self.ctx.grid = grid
        self.ctx.regions = regions
        self.ctx.commit("area generation")
        self.ctx.log("Magic Area Update complete.", LogSeverity.SUCCESS)
        get_run_log().log_generation("area", success=True, operations_applied=report.operations_applied)
        return True

    def _apply_encounter_texts(self, region_id: str, texts: list[Optional[str]]) -> bool:
        region = self.ctx.regions.get(region_id)
        if region is None:
            # Deleted while the request was in flight
            return False
        updated = region_engine.replace_results(region, texts)
        changed = self.update_region(region_id, updated)
        applied = sum(1 for text in texts[: len(region.table)] if text)
        get_run_log().log_generation("encounters", success=True, operations_applied=applied)
        return changed

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def save_map(self, path: Union[str, Path]) -> None:
        map_io.save_map(self, path)

    def load_map(self, path: Union[str, Path]) -> bool:
        return map_io.load_map(self, path)

    # =========================================================================
    # DISPLAY HELPERS
    # =========================================================================

    def status(self) -> str:
        """Multi-line summary of the session for display."""
        party = self.ctx.party
        lines = [
            "=" * 60,
            "HEXFORGE SESSION",
            "=" * 60,
            f"Grid: {self.ctx.grid.width}x{self.ctx.grid.height}",
            f"Tool: {self.ctx.active_tool.value}",
            f"Party: {party.position} ({party.icon_id})",
            f"History: {self.ctx.history.cursor + 1}/{len(self.ctx.history)}",
            f"Selection: {len(self.ctx.selection)} hex(es)",
            "",
            "Terrains:",
        ]
        for terrain_id, terrain in self.ctx.terrains.items():
            lines.append(f"  {terrain_id}: {terrain.label} ({self.ctx.grid.count_terrain(terrain_id)} hexes)")
        lines.append("")
        lines.append("Regions:")
        if not self.ctx.regions:
            lines.append("  (none)")
        for region_id, region in self.ctx.regions.items():
            cells = len(self.ctx.grid.cells_in_region(region_id))
            lines.append(f"  {region_id}: {region.name} ({cells} hexes, {len(region.table)} rows)")
        lines.append("=" * 60)
        return "\n".join(lines)
