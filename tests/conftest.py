"""
Pytest fixtures for the HexForge test suite.

Provides reusable fixtures for dice, grids, regions, editor sessions and
LLM mocking.
"""

import pytest
from typing import Optional

from hexforge.ai.llm_provider import LLMConfig, LLMManager, LLMProvider
from hexforge.data_models import (
    DiceConfig,
    DiceResult,
    DiceRoller,
    FreqConfig,
    Region,
    TableEntry,
)
from hexforge.editor.context import EditorConfig
from hexforge.editor.movement import ManualScheduler
from hexforge.editor.session import EditorSession
from hexforge.hex_grid.grid_store import GridStore
from hexforge.observability.run_log import reset_run_log


# =============================================================================
# GLOBAL STATE
# =============================================================================


@pytest.fixture(autouse=True)
def fresh_run_log():
    """Every test starts with an empty RunLog and roll log."""
    reset_run_log()
    DiceRoller.clear_roll_log()
    yield
    reset_run_log()
    DiceRoller.clear_roll_log()


# =============================================================================
# DICE FIXTURES
# =============================================================================


class MockDiceRoller:
    """
    Dice roller that returns scripted results.

    Each roll() pops the next list of die faces; randint() pops the next
    scripted integer (or returns low when none are left).
    """

    def __init__(self, rolls: Optional[list[list[int]]] = None, ints: Optional[list[int]] = None):
        self.rolls = list(rolls or [])
        self.ints = list(ints or [])
        self.calls: list[tuple[str, str]] = []

    def roll(self, dice: str, reason: str = "") -> DiceResult:
        self.calls.append((dice, reason))
        faces = self.rolls.pop(0)
        return DiceResult(notation=dice, rolls=list(faces), modifier=0, total=sum(faces), reason=reason)

    def randint(self, low: int, high: int, reason: str = "") -> int:
        return self.ints.pop(0) if self.ints else low


@pytest.fixture
def seeded_dice():
    """Provide a seeded DiceRoller for reproducible tests."""
    DiceRoller.clear_roll_log()
    DiceRoller.set_seed(42)
    yield DiceRoller()
    DiceRoller.clear_roll_log()


@pytest.fixture
def mock_dice():
    """A scripted roller; tests push rolls onto mock_dice.rolls."""
    return MockDiceRoller()


@pytest.fixture
def dice_factory():
    """Build scripted rollers: dice_factory(rolls=[[1], [5, 5]])."""
    return MockDiceRoller


# =============================================================================
# GRID AND REGION FIXTURES
# =============================================================================


@pytest.fixture
def small_grid():
    """A 10x8 void grid."""
    return GridStore(10, 8)


@pytest.fixture
def dragon_region():
    """d6 trigger on 1, 2d6 table with three rows."""
    return Region(
        name="Dragon Hills",
        color="#aa3300",
        freq_config=FreqConfig(die="d6", trigger_values=(1,)),
        dice_config=DiceConfig(count=2, faces=6),
        table=(
            TableEntry(2, 6, "wildlife"),
            TableEntry(7, 9, "bandits"),
            TableEntry(10, 12, "dragon"),
        ),
    )


# =============================================================================
# LLM FIXTURES
# =============================================================================


@pytest.fixture
def mock_llm_config():
    """LLM configuration using mock provider."""
    return LLMConfig(
        provider=LLMProvider.MOCK,
        model="mock",
        max_tokens=1024,
        temperature=0.7,
        retry_delay=0.0,
    )


@pytest.fixture
def mock_llm_manager(mock_llm_config):
    """LLM manager with mock provider."""
    return LLMManager(mock_llm_config)


@pytest.fixture
def mock_llm_client(mock_llm_manager):
    """The mock client behind mock_llm_manager; call set_responses() on it."""
    return mock_llm_manager.get_mock_client()


# =============================================================================
# SESSION FIXTURES
# =============================================================================


@pytest.fixture
def scheduler():
    """A virtual clock for the movement loop."""
    return ManualScheduler()


@pytest.fixture
def editor_config():
    """A small grid keeps tests fast."""
    return EditorConfig(width=12, height=10, party_start=(3, 3))


@pytest.fixture
def session(editor_config, mock_llm_manager, mock_dice, scheduler):
    """An editor session with scripted dice, a mock LLM and a manual clock."""
    return EditorSession(
        editor_config,
        llm_manager=mock_llm_manager,
        dice_roller=mock_dice,
        scheduler=scheduler,
    )


@pytest.fixture
def stroke():
    """Press on the first cell, drag through the rest, release."""
    def _stroke(session: EditorSession, *cells: tuple[int, int]) -> bool:
        (q, r), rest = cells[0], cells[1:]
        session.press(q, r)
        for dq, dr in rest:
            session.drag(dq, dr)
        return session.release()
    return _stroke
