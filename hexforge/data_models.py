"""
Shared data structures for the HexForge map editor.

These structures are shared by the grid store, the tool engine, the history
manager and the region encounter engine. Cell, terrain and region records are
immutable value objects: every edit produces a new record, so snapshots held
by the history manager stay valid while editing continues.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional
import random


# =============================================================================
# GRID CONSTANTS
# =============================================================================


HEX_SIZE = 30
MAP_WIDTH = 50
MAP_HEIGHT = 40

VOID_TERRAIN = "void"
NO_ICON = "none"
BULLDOZE_ROAD = "bulldoze_road"

DEFAULT_PARTY_POSITION = (3, 3)
DEFAULT_PARTY_ICON = "shield"


# =============================================================================
# ENUMS
# =============================================================================


class ActiveTool(str, Enum):
    """Pointer tools that interpret presses and drags on the grid."""
    PAINT = "paint"
    ICON = "icon"
    SELECT = "select"
    PARTY = "party"
    MAGIC = "magic"


class IconKind(str, Enum):
    """How an icon stamp is drawn."""
    COMPONENT = "component"  # Built-in vector icon
    TEXT = "text"            # Emoji or short text


# =============================================================================
# COORDINATES AND CELLS
# =============================================================================


@dataclass(frozen=True)
class HexCoord:
    """Offset coordinate on the odd-r grid (odd rows shifted right)."""
    q: int
    r: int

    @property
    def hex_id(self) -> str:
        return f"{self.q},{self.r}"

    def to_dict(self) -> dict[str, int]:
        return {"q": self.q, "r": self.r}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HexCoord":
        return cls(q=int(data["q"]), r=int(data["r"]))

    def __str__(self) -> str:
        return self.hex_id


@dataclass(frozen=True)
class HexCell:
    """
    Painted state of one grid location.

    roads maps a neighbor hex id to a road type id. The mapping is stored
    redundantly on both endpoints; GridStore keeps the two sides in sync.
    Never mutate roads in place; build a new dict and use replace().
    """
    terrain: str = VOID_TERRAIN
    icon: str = NO_ICON
    roads: dict[str, str] = field(default_factory=dict)
    region_id: Optional[str] = None
    lore: str = ""

    def with_changes(self, **changes: Any) -> "HexCell":
        """Return a copy of this cell with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the document field names."""
        return {
            "terrain": self.terrain,
            "icon": self.icon,
            "roads": dict(self.roads),
            "regionId": self.region_id,
            "lore": self.lore,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "HexCell":
        """Build a cell from a possibly partial document record."""
        if not isinstance(data, dict):
            return cls()
        roads = data.get("roads")
        region_id = data.get("regionId")
        return cls(
            terrain=str(data.get("terrain") or VOID_TERRAIN),
            icon=str(data.get("icon") or NO_ICON),
            roads={str(k): str(v) for k, v in roads.items()} if isinstance(roads, dict) else {},
            region_id=str(region_id) if region_id else None,
            lore=str(data.get("lore") or ""),
        )


# =============================================================================
# PALETTES
# =============================================================================


@dataclass(frozen=True)
class TerrainConfig:
    """Display settings for a terrain id."""
    label: str
    color: str

    def to_dict(self) -> dict[str, str]:
        return {"label": self.label, "color": self.color}

    @classmethod
    def from_dict(cls, data: Any) -> Optional["TerrainConfig"]:
        if not isinstance(data, dict):
            return None
        return cls(
            label=str(data.get("label") or ""),
            color=str(data.get("color") or "#cccccc"),
        )


@dataclass(frozen=True)
class RoadConfig:
    """Display settings for a road type."""
    label: str
    color: str
    width: int
    dash: str


@dataclass(frozen=True)
class IconDef:
    """An icon stamp that can be placed on a cell."""
    icon_id: str
    label: str
    symbol: Optional[str] = None
    kind: IconKind = IconKind.COMPONENT


DEFAULT_TERRAINS: dict[str, TerrainConfig] = {
    "void": TerrainConfig(label="Empty", color="#f3f4f6"),
    "grass": TerrainConfig(label="Grassland", color="#86efac"),
    "forest": TerrainConfig(label="Deep Forest", color="#166534"),
    "water": TerrainConfig(label="Water", color="#3b82f6"),
    "mountain": TerrainConfig(label="Mountain", color="#57534e"),
    "desert": TerrainConfig(label="Desert", color="#fde047"),
    "swamp": TerrainConfig(label="Swamp", color="#581c87"),
}

ROAD_TYPES: dict[str, RoadConfig] = {
    "paved": RoadConfig(label="Paved Road", color="#94a3b8", width=4, dash="none"),
    "trail": RoadConfig(label="Dirt Trail", color="#854d0e", width=3, dash="4, 4"),
    "rail": RoadConfig(label="Railroad", color="#334155", width=4, dash="rail"),
    "bridge": RoadConfig(label="Bridge", color="#78350f", width=6, dash="bridge"),
}

# Paint modes that draw (or remove) roads instead of terrain
ROAD_PAINT_MODES = frozenset(ROAD_TYPES) | {BULLDOZE_ROAD}

INITIAL_ICONS: list[IconDef] = [
    IconDef("none", "None"),
    IconDef("village", "Village"),
    IconDef("town", "Town"),
    IconDef("city", "City"),
    IconDef("ruin", "Ruins"),
    IconDef("camp", "Camp"),
    IconDef("tree", "Tree"),
    IconDef("peak", "Peak"),
    IconDef("cave", "Cave"),
]

PARTY_ICONS: dict[str, str] = {
    "shield": "Shield",
    "user": "Hero",
    "flag": "Banner",
    "swords": "Battle",
}


def default_terrains() -> dict[str, TerrainConfig]:
    """Return a fresh copy of the default terrain palette."""
    return dict(DEFAULT_TERRAINS)


# =============================================================================
# REGIONS AND ENCOUNTER TABLES
# =============================================================================


def parse_int(value: Any, default: Optional[int] = 0) -> Optional[int]:
    """
    Parse user-entered numbers the forgiving way.

    Accepts ints, numeric strings with surrounding whitespace, and floats
    (truncated). Anything else yields the default instead of raising.
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value else default  # NaN check
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class TableEntry:
    """One row of an encounter table: an inclusive dice-sum range and its result."""
    range_min: int
    range_max: int
    result: str

    def contains(self, total: int) -> bool:
        return self.range_min <= total <= self.range_max

    def to_dict(self) -> dict[str, Any]:
        return {"range": [self.range_min, self.range_max], "result": self.result}

    @classmethod
    def from_dict(cls, data: Any) -> Optional["TableEntry"]:
        if not isinstance(data, dict):
            return None
        bounds = data.get("range")
        if isinstance(bounds, (list, tuple)) and len(bounds) == 2:
            low, high = parse_int(bounds[0]), parse_int(bounds[1])
        else:
            low, high = 0, 0
        return cls(range_min=low, range_max=high, result=str(data.get("result") or ""))


@dataclass(frozen=True)
class FreqConfig:
    """Trigger check: roll one die and compare against the trigger values."""
    die: str = "d6"
    trigger_values: tuple[int, ...] = (1,)

    @property
    def die_size(self) -> int:
        """Number of faces on the trigger die ("d6" -> 6); 0 when unparseable."""
        text = self.die.strip().lower()
        if text.startswith("d"):
            text = text[1:]
        return max(0, parse_int(text))

    def to_dict(self) -> dict[str, Any]:
        return {"die": self.die, "triggerValues": list(self.trigger_values)}

    @classmethod
    def from_dict(cls, data: Any) -> "FreqConfig":
        if not isinstance(data, dict):
            return cls()
        values = data.get("triggerValues")
        triggers = tuple(
            sorted({parse_int(v) for v in values if parse_int(v, default=-1) >= 0})
        ) if isinstance(values, (list, tuple)) else (1,)
        return cls(die=str(data.get("die") or "d6"), trigger_values=triggers)


@dataclass(frozen=True)
class DiceConfig:
    """Table dice: roll `count` dice with `faces` faces and sum them."""
    count: int = 2
    faces: int = 6

    @property
    def notation(self) -> str:
        return f"{self.count}d{self.faces}"

    @property
    def min_total(self) -> int:
        return self.count

    @property
    def max_total(self) -> int:
        return self.count * self.faces

    def to_dict(self) -> dict[str, int]:
        return {"count": self.count, "faces": self.faces}

    @classmethod
    def from_dict(cls, data: Any) -> "DiceConfig":
        if not isinstance(data, dict):
            return cls()
        return cls(count=parse_int(data.get("count"), 2), faces=parse_int(data.get("faces"), 6))


@dataclass(frozen=True)
class Region:
    """
    A named, colored group of cells sharing an encounter configuration.

    Invariant: after any structural table change the table ranges partition
    [dice_config.count, dice_config.count * dice_config.faces]. Manual edits
    of a single row's bounds are accepted as entered.
    """
    name: str = "New Region"
    color: str = "#8b5cf6"
    lore: str = ""
    freq_config: FreqConfig = field(default_factory=FreqConfig)
    dice_config: DiceConfig = field(default_factory=DiceConfig)
    table: tuple[TableEntry, ...] = ()

    def __post_init__(self):
        if not isinstance(self.table, tuple):
            object.__setattr__(self, "table", tuple(self.table))

    def with_changes(self, **changes: Any) -> "Region":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "color": self.color,
            "lore": self.lore,
            "freqConfig": self.freq_config.to_dict(),
            "diceConfig": self.dice_config.to_dict(),
            "table": [entry.to_dict() for entry in self.table],
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional["Region"]:
        if not isinstance(data, dict):
            return None
        rows = data.get("table")
        table = tuple(
            entry for entry in (TableEntry.from_dict(row) for row in rows) if entry is not None
        ) if isinstance(rows, list) else ()
        return cls(
            name=str(data.get("name") or "New Region"),
            color=str(data.get("color") or "#8b5cf6"),
            lore=str(data.get("lore") or ""),
            freq_config=FreqConfig.from_dict(data.get("freqConfig")),
            dice_config=DiceConfig.from_dict(data.get("diceConfig")),
            table=table,
        )


def default_region_table() -> tuple[TableEntry, ...]:
    """Starter table for a freshly created region (2d6)."""
    return (
        TableEntry(2, 6, "Common wildlife."),
        TableEntry(7, 9, "Bandit tracks."),
        TableEntry(10, 12, "Dragon spotted!"),
    )


# =============================================================================
# PARTY
# =============================================================================


@dataclass
class PartyState:
    """The party token: where it stands and how it is drawn."""
    position: HexCoord = field(default_factory=lambda: HexCoord(*DEFAULT_PARTY_POSITION))
    icon_id: str = DEFAULT_PARTY_ICON


# =============================================================================
# DICE AND RANDOMIZATION
# =============================================================================


class DiceRoller:
    """
    Centralized randomization interface.
    All dice rolls must go through this class for reproducibility and logging.
    """

    _instance = None
    _seed: Optional[int] = None
    _roll_log: list = []

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def set_seed(cls, seed: int) -> None:
        """Set random seed for reproducibility."""
        cls._seed = seed
        random.seed(seed)

    @classmethod
    def roll(cls, dice: str, reason: str = "") -> "DiceResult":
        """
        Roll dice using standard notation (e.g., '2d6', '1d20+5', '3d6-2').

        Args:
            dice: Dice notation string
            reason: Why this roll is being made (for logging)

        Returns:
            DiceResult with individual rolls and total
        """
        modifier = 0
        if '+' in dice:
            dice_part, mod_part = dice.split('+')
            modifier = int(mod_part)
        elif '-' in dice:
            dice_part, mod_part = dice.split('-')
            modifier = -int(mod_part)
        else:
            dice_part = dice

        num_dice, die_size = dice_part.lower().split('d')
        num_dice = int(num_dice) if num_dice else 1
        die_size = int(die_size)

        rolls = [random.randint(1, die_size) for _ in range(num_dice)]
        total = sum(rolls) + modifier

        result = DiceResult(
            notation=dice,
            rolls=rolls,
            modifier=modifier,
            total=total,
            reason=reason
        )

        cls._roll_log.append(result)
        cls._log_to_run_log(result)
        return result

    @classmethod
    def roll_die(cls, faces: int, reason: str = "") -> "DiceResult":
        """Roll a single die with the given number of faces."""
        return cls.roll(f"1d{faces}", reason)

    @classmethod
    def randint(cls, low: int, high: int, reason: str = "") -> int:
        """Uniform integer in [low, high], logged like any other roll."""
        value = random.randint(low, high)
        result = DiceResult(
            notation=f"range({low}-{high})",
            rolls=[value],
            modifier=0,
            total=value,
            reason=reason,
        )
        cls._roll_log.append(result)
        cls._log_to_run_log(result)
        return value

    @classmethod
    def get_roll_log(cls) -> list:
        """Get the complete roll log for the session."""
        return cls._roll_log.copy()

    @classmethod
    def clear_roll_log(cls) -> None:
        """Clear the roll log."""
        cls._roll_log = []

    @staticmethod
    def _log_to_run_log(result: "DiceResult") -> None:
        from hexforge.observability.run_log import get_run_log

        get_run_log().log_roll(
            notation=result.notation,
            rolls=list(result.rolls),
            modifier=result.modifier,
            total=result.total,
            reason=result.reason,
        )


@dataclass
class DiceResult:
    """Result of a dice roll with full information."""
    notation: str
    rolls: list[int]
    modifier: int
    total: int
    reason: str
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        if self.modifier > 0:
            return f"{self.notation}: {self.rolls} + {self.modifier} = {self.total}"
        elif self.modifier < 0:
            return f"{self.notation}: {self.rolls} - {abs(self.modifier)} = {self.total}"
        return f"{self.notation}: {self.rolls} = {self.total}"
