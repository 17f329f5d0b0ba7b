"""
Party movement for the HexForge editor.

PartyController moves the party token and runs the encounter check for the
region it lands in. MovementLoop turns held movement keys into repeated
steps using a cancellable, self-rescheduling timer:

1. The first movement keydown schedules a tick after a short buffer delay,
   so near-simultaneous presses merge into one diagonal
2. Each tick derives a direction from the keys still held, steps once, and
   schedules the next tick at the repeat interval
3. Releasing every key, losing focus, or leaving the Party tool stops it

Ticks run on the same single-threaded loop as pointer events and never
interleave with them.
"""

import asyncio
import heapq
import itertools
from typing import Any, Callable, Optional, Protocol, runtime_checkable
import logging

from hexforge.data_models import ActiveTool, HexCoord
from hexforge.editor.context import EditorContext
from hexforge.encounters.region_engine import EncounterOutcome, RegionEncounterEngine
from hexforge.hex_grid.hex_coords import displace
from hexforge.observability.activity_log import LogSeverity
from hexforge.observability.run_log import get_run_log

logger = logging.getLogger(__name__)


# Key -> (dx, dy)
MOVE_KEYS: dict[str, tuple[int, int]] = {
    "ArrowLeft": (-1, 0), "a": (-1, 0), "A": (-1, 0),
    "ArrowRight": (1, 0), "d": (1, 0), "D": (1, 0),
    "ArrowUp": (0, -1), "w": (0, -1), "W": (0, -1),
    "ArrowDown": (0, 1), "s": (0, 1), "S": (0, 1),
}


# =============================================================================
# SCHEDULERS
# =============================================================================


@runtime_checkable
class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


@runtime_checkable
class Scheduler(Protocol):
    """
    Protocol for single-shot timers.

    This allows MovementLoop to run on different clocks:
    - AsyncioScheduler for a running event loop
    - ManualScheduler for tests and headless replay
    """

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback once after delay seconds."""
        ...


class AsyncioScheduler:
    """Schedules callbacks on an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class _ManualHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    A virtual clock advanced explicitly with advance().

    Callbacks due within the advanced window run in time order; callbacks
    they schedule run too if they fall inside the same window.
    """

    def __init__(self):
        self.now: float = 0.0
        self._queue: list[tuple[float, int, Callable[[], None], _ManualHandle]] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle()
        heapq.heappush(self._queue, (self.now + delay, next(self._counter), callback, handle))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for *_, handle in self._queue if not handle.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running due callbacks. Returns how many ran."""
        target = self.now + seconds
        ran = 0
        # Small tolerance so 0.07 + 0.15 + ... lands on the intended tick
        while self._queue and self._queue[0][0] <= target + 1e-9:
            due, _, callback, handle = heapq.heappop(self._queue)
            self.now = max(self.now, due)
            if handle.cancelled:
                continue
            callback()
            ran += 1
        self.now = target
        return ran


# =============================================================================
# PARTY CONTROLLER
# =============================================================================


class PartyController:
    """Moves the party token and resolves encounters where it lands."""

    def __init__(self, context: EditorContext, engine: Optional[RegionEncounterEngine] = None):
        self.ctx = context
        self.engine = engine or RegionEncounterEngine()

    @property
    def position(self) -> HexCoord:
        return self.ctx.party.position

    def teleport(self, target: HexCoord) -> Optional[EncounterOutcome]:
        """
        Place the party on target (Party tool click).

        Returns:
            The encounter outcome if the target lies in a region, else None
        """
        if not self.ctx.in_bounds(target):
            return None
        origin = self.ctx.party.position
        self.ctx.party.position = target
        self.ctx.log(f"Party moved to {target.q},{target.r}.")
        get_run_log().log_move(from_hex=origin.hex_id, to_hex=target.hex_id, trigger="click")
        return self.check_encounter(target)

    def step(self, dx: int, dy: int) -> bool:
        """
        Move one cell in a screen direction.

        Returns:
            True if the party moved; False at the grid edge or for a zero vector
        """
        origin = self.ctx.party.position
        target = displace(origin.q, origin.r, dx, dy)
        if not self.ctx.in_bounds(target) or target == origin:
            return False
        self.ctx.party.position = target
        get_run_log().log_move(from_hex=origin.hex_id, to_hex=target.hex_id, trigger="keyboard")
        self.check_encounter(target)
        return True

    def check_encounter(self, target: HexCoord) -> Optional[EncounterOutcome]:
        region_id, region = self.ctx.region_at(target)
        if region is None:
            return None
        outcome = self.engine.resolve(region, region_id)
        report_outcome(self.ctx, outcome)
        return outcome


def report_outcome(context: EditorContext, outcome: EncounterOutcome) -> None:
    """Write an encounter outcome to the activity log."""
    lines = outcome.summary_lines()
    if not outcome.triggered:
        context.log(lines[0], LogSeverity.SUCCESS)
        return
    context.log(lines[0], LogSeverity.WARNING)
    context.log(lines[1], LogSeverity.ALERT)


# =============================================================================
# MOVEMENT LOOP
# =============================================================================


class MovementLoop:
    """Repeating keyboard movement for the Party tool."""

    def __init__(
        self,
        context: EditorContext,
        controller: PartyController,
        scheduler: Optional[Scheduler] = None,
    ):
        self.ctx = context
        self.controller = controller
        self.scheduler = scheduler or AsyncioScheduler()
        self._held: set[str] = set()
        self._handle: Optional[Any] = None

    @property
    def is_running(self) -> bool:
        return self._handle is not None

    @property
    def held_keys(self) -> frozenset[str]:
        return frozenset(self._held)

    def key_down(self, key: str) -> bool:
        """
        Register a held movement key and start the loop if idle.

        Returns:
            True if the key was consumed as a movement key
        """
        if self.ctx.active_tool != ActiveTool.PARTY or key not in MOVE_KEYS:
            return False
        self._held.add(key)
        if self._handle is None:
            self._handle = self.scheduler.call_later(self.ctx.config.move_buffer_delay, self._tick)
        return True

    def key_up(self, key: str) -> None:
        self._held.discard(key)
        if not self._held:
            self.cancel()

    def blur(self) -> None:
        """Window lost focus: forget held keys and stop."""
        self._held.clear()
        self.cancel()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def direction(self) -> tuple[int, int]:
        """Unit vector from held keys; opposite keys cancel out."""
        vectors = {MOVE_KEYS[key] for key in self._held}
        dx = sum(v[0] for v in vectors)
        dy = sum(v[1] for v in vectors)
        return (dx > 0) - (dx < 0), (dy > 0) - (dy < 0)

    def _tick(self) -> None:
        self._handle = None
        if not self._held or self.ctx.active_tool != ActiveTool.PARTY:
            return

        dx, dy = self.direction()
        if dx or dy:
            self.controller.step(dx, dy)

        self._handle = self.scheduler.call_later(self.ctx.config.move_repeat_interval, self._tick)
