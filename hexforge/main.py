"""
HexForge - Main Entry Point

A hex-grid world map editor with regional random-encounter tables.

This module provides the command-line entry point: batch operations
(load, generate, roll, save) and a small interactive shell over an
EditorSession.
"""

from pathlib import Path
from typing import Optional
import argparse
import json
import logging
import sys

from hexforge import __version__
from hexforge.data_models import DiceRoller, HexCoord
from hexforge.editor.context import EditorConfig
from hexforge.editor.session import EditorSession
from hexforge.editor.tool_engine import Modifiers
from hexforge.errors import InvalidTransitionError
from hexforge.hex_grid.hex_coords import try_parse_hex_id
from hexforge.observability.run_log import get_run_log


# Configure logging
def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


logger = logging.getLogger(__name__)


# =============================================================================
# CLI INTERFACE
# =============================================================================


class HexForgeCLI:
    """Interactive command-line interface over an editor session."""

    def __init__(self, session: EditorSession):
        self.session = session
        self.running = False
        self._seen_messages = len(session.activity)
        self.commands = {
            "status": self.cmd_status,
            "help": self.cmd_help,
            "quit": self.cmd_quit,
            "exit": self.cmd_quit,
            "tool": self.cmd_tool,
            "terrain": self.cmd_terrain,
            "icon": self.cmd_icon,
            "paint": self.cmd_paint,
            "select": self.cmd_select,
            "region": self.cmd_region,
            "assign": self.cmd_assign,
            "roll": self.cmd_roll,
            "move": self.cmd_move,
            "step": self.cmd_step,
            "undo": self.cmd_undo,
            "redo": self.cmd_redo,
            "generate": self.cmd_generate,
            "area": self.cmd_area,
            "save": self.cmd_save,
            "load": self.cmd_load,
            "log": self.cmd_log,
            "dice": self.cmd_dice,
        }

    def run(self) -> None:
        """Run the interactive CLI loop."""
        self.running = True
        print("\n" + "=" * 60)
        print("HEXFORGE - Interactive Mode")
        print("=" * 60)
        print("Type 'help' for available commands, 'quit' to exit.\n")

        while self.running:
            try:
                user_input = input(f"[{self.session.active_tool.value}]> ").strip()
                if not user_input:
                    continue

                self.process_command(user_input)
                self.print_new_messages()

            except KeyboardInterrupt:
                print("\nInterrupted. Type 'quit' to exit.")
            except EOFError:
                self.running = False

        print("\nMap closed.")

    def process_command(self, user_input: str) -> None:
        """Process a user command."""
        parts = user_input.split(maxsplit=1)
        cmd = parts[0].lower()
        args = parts[1] if len(parts) > 1 else ""

        if cmd in self.commands:
            self.commands[cmd](args)
        else:
            print(f"Unknown command: {cmd}. Type 'help' for available commands.")

    def print_new_messages(self) -> None:
        """Echo activity messages added since the last command, oldest first."""
        entries = self.session.activity.entries
        fresh = entries[: len(entries) - self._seen_messages]
        for entry in reversed(fresh):
            print(f"  [{entry.severity.value}] {entry.text}")
        self._seen_messages = len(entries)

    def _coords(self, args: str) -> list[HexCoord]:
        coords = []
        for token in args.split():
            coord = try_parse_hex_id(token)
            if coord is None:
                print(f"Not a hex id: {token} (expected q,r)")
                return []
            coords.append(coord)
        return coords

    def cmd_help(self, args: str) -> None:
        """Show help information."""
        print("""
Available Commands:
  status             - Show map status
  tool NAME          - Switch tool (paint, icon, select, party, magic)
  terrain ID         - Set the active terrain or road type
  icon ID            - Set the active icon
  paint Q,R [Q,R..]  - Press on the first hex and drag through the rest
  select Q,R [Q,R..] - Select hexes (first click, the rest ctrl-click)
  region             - Create a region (applied to the selection)
  assign ID|none     - Assign the selection to a region, or detach it
  roll REGION_ID     - Run an encounter check for a region
  move Q,R           - Teleport the party
  step DX DY         - Move the party one step
  undo / redo        - Walk the edit history
  generate TEXT      - Generate a whole map from a description
  area TEXT          - Generate content for the selected hexes
  save PATH          - Save the map as JSON
  load PATH          - Load a map from JSON
  log                - Show recent activity
  dice               - Show dice roll history
  help               - Show this help
  quit/exit          - Exit
""")

    def cmd_status(self, args: str) -> None:
        """Show map status."""
        print(self.session.status())

    def cmd_quit(self, args: str) -> None:
        """Quit the editor."""
        self.running = False

    def cmd_tool(self, args: str) -> None:
        try:
            tool = self.session.set_active_tool(args.strip().lower())
            print(f"Tool: {tool.value}")
        except InvalidTransitionError as e:
            print(f"Cannot switch tool: {e}")

    def cmd_terrain(self, args: str) -> None:
        if not self.session.set_active_terrain(args.strip()):
            print(f"Unknown terrain: {args.strip()}")

    def cmd_icon(self, args: str) -> None:
        if not self.session.set_active_icon(args.strip()):
            print(f"Unknown icon: {args.strip()}")

    def cmd_paint(self, args: str) -> None:
        """Apply the active tool along a stroke."""
        coords = self._coords(args)
        if not coords:
            print("Usage: paint Q,R [Q,R ...]")
            return
        first, rest = coords[0], coords[1:]
        self.session.press(first.q, first.r)
        for coord in rest:
            self.session.drag(coord.q, coord.r)
        self.session.release()

    def cmd_select(self, args: str) -> None:
        coords = self._coords(args)
        if not coords:
            print("Usage: select Q,R [Q,R ...]")
            return
        self.session.set_active_tool("select")
        self.session.press(coords[0].q, coords[0].r)
        self.session.release()
        for coord in coords[1:]:
            self.session.press(coord.q, coord.r, Modifiers(ctrl=True))
            self.session.release()
        print(f"Selected {len(self.session.selection)} hex(es)")

    def cmd_region(self, args: str) -> None:
        region_id = self.session.create_region()
        print(f"Created region: {region_id}")

    def cmd_assign(self, args: str) -> None:
        target = args.strip()
        self.session.batch_assign_region(None if target in ("", "none") else target)

    def cmd_roll(self, args: str) -> None:
        """Run an encounter check."""
        if not args:
            print("Usage: roll REGION_ID")
            return
        outcome = self.session.roll_region(args.strip())
        if outcome is not None:
            print(json.dumps(outcome.to_dict(), indent=2, default=str))

    def cmd_move(self, args: str) -> None:
        coords = self._coords(args)
        if len(coords) != 1:
            print("Usage: move Q,R")
            return
        target = coords[0]
        if not self.session.ctx.in_bounds(target):
            print(f"Out of bounds: {target}")
            return
        self.session.party.teleport(target)

    def cmd_step(self, args: str) -> None:
        parts = args.split()
        try:
            dx, dy = (max(-1, min(1, int(p))) for p in parts)
        except ValueError:
            print("Usage: step DX DY (each -1, 0 or 1)")
            return
        if not self.session.party.step(dx, dy):
            print("The party cannot move that way.")

    def cmd_undo(self, args: str) -> None:
        self.session.undo()

    def cmd_redo(self, args: str) -> None:
        self.session.redo()

    def cmd_generate(self, args: str) -> None:
        self.session.generate_map(args.strip())

    def cmd_area(self, args: str) -> None:
        if self.session.selection.is_empty():
            print("Select some hexes first.")
            return
        self.session.generate_area(args.strip())

    def cmd_save(self, args: str) -> None:
        if not args:
            print("Usage: save PATH")
            return
        self.session.save_map(args.strip())
        print(f"Saved to {args.strip()}")

    def cmd_load(self, args: str) -> None:
        if not args:
            print("Usage: load PATH")
            return
        self.session.load_map(args.strip())

    def cmd_log(self, args: str) -> None:
        """Show recent activity."""
        print("\nActivity (newest first):")
        print("-" * 40)
        for entry in self.session.activity.entries[:10]:
            print(f"  {entry.time:%H:%M:%S} [{entry.severity.value}] {entry.text}")
        print("-" * 40)

    def cmd_dice(self, args: str) -> None:
        """Show dice roll history."""
        rolls = DiceRoller.get_roll_log()
        print("\nDice Roll History (last 10):")
        print("-" * 40)
        for roll in rolls[-10:]:
            print(f"  {roll}")
        print("-" * 40)


# =============================================================================
# ARGUMENT PARSING
# =============================================================================


def parse_arguments(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="HexForge - A hex-grid world map editor with regional encounter tables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  hexforge                                       # Run interactive mode
  hexforge --load world.json --summary           # Print a map summary
  hexforge --generate "volcanic islands" --save islands.json --llm-provider gemini
  hexforge --load world.json --roll-region region_1a2b3c4d --seed 42
        """
    )

    # General options
    parser.add_argument(
        "--load",
        type=Path,
        help="Map file to open",
    )
    parser.add_argument(
        "--save",
        type=Path,
        help="Write the map to this file before exiting",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for reproducible rolls",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    # LLM options
    llm_group = parser.add_argument_group("LLM Options")
    llm_group.add_argument(
        "--llm-provider",
        type=str,
        default="mock",
        choices=["mock", "anthropic", "openai", "gemini"],
        help="LLM provider for content generation (default: mock)",
    )
    llm_group.add_argument(
        "--llm-model",
        type=str,
        help="Specific model to use (provider-dependent)",
    )

    # Batch options
    batch_group = parser.add_argument_group("Batch Options")
    batch_group.add_argument(
        "--generate",
        type=str,
        metavar="PROMPT",
        help="Generate a map from a description",
    )
    batch_group.add_argument(
        "--keep-map",
        action="store_true",
        help="Paint generated content over the current map instead of clearing it",
    )
    batch_group.add_argument(
        "--roll-region",
        type=str,
        metavar="ID",
        help="Run an encounter check for a region",
    )
    batch_group.add_argument(
        "--summary",
        action="store_true",
        help="Print the map status and run log, then exit",
    )

    return parser.parse_args(argv)


def create_config_from_args(args: argparse.Namespace) -> EditorConfig:
    """Create EditorConfig from parsed arguments."""
    return EditorConfig(
        llm_provider=args.llm_provider,
        llm_model=args.llm_model,
        seed=args.seed,
        verbose=args.verbose,
    )


def is_batch(args: argparse.Namespace) -> bool:
    return bool(args.generate or args.roll_region or args.summary or args.save)


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================


def run(argv: Optional[list[str]] = None) -> EditorSession:
    """Parse arguments, run batch operations or the shell, and return the session."""
    args = parse_arguments(argv)
    setup_logging(args.verbose)

    print("=" * 60)
    print(f"HEXFORGE v{__version__}")
    print("A hex-grid world map editor")
    print("=" * 60)

    config = create_config_from_args(args)
    session = EditorSession(config)

    if args.load:
        session.load_map(args.load)

    if not is_batch(args):
        print(session.status())
        cli = HexForgeCLI(session)
        cli.run()
        return session

    if args.generate:
        session.generate_map(args.generate, clear_map=not args.keep_map)

    if args.roll_region:
        outcome = session.roll_region(args.roll_region)
        if outcome is not None:
            for line in outcome.summary_lines():
                print(line)

    if args.save:
        session.save_map(args.save)

    if args.summary:
        print(session.status())
        print(get_run_log().format_log(max_events=20))

    print("\nActivity:")
    for entry in reversed(session.activity.entries):
        print(f"  [{entry.severity.value}] {entry.text}")

    return session


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI usage."""
    run(argv)
    return 0


if __name__ == "__main__":
    sys.exit(main())
