"""
Region Encounter Engine for HexForge.

Resolves random encounters for a region in two steps:
1. A trigger roll on the region's frequency die decides whether anything
   happens at all
2. If triggered, the table dice are rolled and summed, and the table row whose
   range contains the sum gives the result

Also owns the table-editing helpers that keep a region's ranges a partition
of the possible dice sums.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence
import logging

from hexforge.data_models import (
    DiceConfig,
    DiceRoller,
    FreqConfig,
    Region,
    TableEntry,
    parse_int,
)
from hexforge.observability.run_log import get_run_log

logger = logging.getLogger(__name__)


FALLBACK_RESULT = "Uneventful silence..."
NEW_ROW_TEXT = "New Entry"


# =============================================================================
# RESULT DATACLASSES
# =============================================================================


@dataclass
class EncounterOutcome:
    """
    Result of one encounter check, with every roll exposed for transparency.
    """
    region_name: str
    die: str
    trigger_roll: int
    triggered: bool

    # Only populated when triggered
    dice_notation: str = ""
    dice_rolls: list[int] = field(default_factory=list)
    total: int = 0
    result_text: Optional[str] = None
    matched_entry: Optional[TableEntry] = None

    @property
    def is_fallback(self) -> bool:
        """Triggered, but no table row covered the sum."""
        return self.triggered and self.matched_entry is None

    def summary_lines(self) -> list[str]:
        """Human-readable log lines describing the check."""
        if not self.triggered:
            return [
                f"Region check ({self.region_name}): Rolled {self.trigger_roll} "
                f"on {self.die}. Safe."
            ]
        rolls = "+".join(str(r) for r in self.dice_rolls) or "no dice"
        return [
            f"Encounter in {self.region_name}! (Check: {self.trigger_roll})",
            f"Rolled {self.total} ({rolls}). Result: {self.result_text}",
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "region_name": self.region_name,
            "die": self.die,
            "trigger_roll": self.trigger_roll,
            "triggered": self.triggered,
            "dice_notation": self.dice_notation,
            "dice_rolls": list(self.dice_rolls),
            "total": self.total,
            "result_text": self.result_text,
        }


@dataclass
class PartitionReport:
    """Gaps and overlaps of a table against its dice domain."""
    gaps: list[int] = field(default_factory=list)
    overlaps: list[int] = field(default_factory=list)
    out_of_domain: list[int] = field(default_factory=list)  # row indices

    @property
    def is_partition(self) -> bool:
        return not (self.gaps or self.overlaps or self.out_of_domain)


# =============================================================================
# ENCOUNTER ENGINE
# =============================================================================


class RegionEncounterEngine:
    """
    Rolls encounter checks for regions.

    Usage:
        engine = RegionEncounterEngine()
        outcome = engine.resolve(region)
        for line in outcome.summary_lines():
            print(line)

    The dice roller is injectable; anything with a roll(notation, reason)
    method returning an object with rolls and total will do.
    """

    def __init__(self, dice_roller: Optional[Any] = None):
        self._dice = dice_roller or DiceRoller()

    def resolve(self, region: Region, region_id: str = "") -> EncounterOutcome:
        """
        Run the trigger check and, if it fires, the table lookup.

        Args:
            region: The region whose configuration drives the check
            region_id: Optional id used for logging

        Returns:
            EncounterOutcome with the trigger roll, dice and resolved text
        """
        freq = region.freq_config
        die_size = freq.die_size
        if die_size < 1:
            logger.warning(f"Region {region.name!r} has unusable trigger die {freq.die!r}")
            return EncounterOutcome(
                region_name=region.name, die=freq.die, trigger_roll=0, triggered=False
            )

        trigger_roll = self._dice.roll(f"1d{die_size}", f"Encounter check: {region.name}").total
        if trigger_roll not in freq.trigger_values:
            logger.debug(f"No encounter in {region.name}: rolled {trigger_roll} on {freq.die}")
            return EncounterOutcome(
                region_name=region.name,
                die=freq.die,
                trigger_roll=trigger_roll,
                triggered=False,
            )

        dice = region.dice_config
        rolls: list[int] = []
        total = 0
        if dice.count > 0 and dice.faces > 0:
            table_roll = self._dice.roll(dice.notation, f"Encounter table: {region.name}")
            rolls = list(table_roll.rolls)
            total = table_roll.total

        entry = find_entry(region.table, total)
        result_text = entry.result if entry is not None else FALLBACK_RESULT

        get_run_log().log_table_lookup(
            table_id=region_id or region.name,
            table_name=region.name,
            roll_total=total,
            result_text=result_text,
            context={"trigger_roll": trigger_roll, "rolls": rolls},
        )

        return EncounterOutcome(
            region_name=region.name,
            die=freq.die,
            trigger_roll=trigger_roll,
            triggered=True,
            dice_notation=dice.notation,
            dice_rolls=rolls,
            total=total,
            result_text=result_text,
            matched_entry=entry,
        )


def find_entry(table: Sequence[TableEntry], total: int) -> Optional[TableEntry]:
    """First row whose inclusive range contains total."""
    for entry in table:
        if entry.contains(total):
            return entry
    return None


# =============================================================================
# TABLE PARTITIONING
# =============================================================================


def recalculate_ranges(rows: Sequence[TableEntry], dice: DiceConfig) -> list[TableEntry]:
    """
    Spread the dice-sum domain evenly across the rows, keeping their text.

    The domain is [count, count * faces]. Each row gets total // rows slots and
    the first total % rows rows get one extra. Widths never drop below 1 and
    the running pointers are clamped so no range passes the maximum. Unusable
    dice values fall back to count 1 and 6 faces.
    """
    if not rows:
        return []

    count = dice.count or 1
    faces = dice.faces or 6
    min_roll = count
    max_roll = count * faces
    total_range = max_roll - min_roll + 1

    base_size, remainder = divmod(total_range, len(rows))

    table = []
    current_start = min_roll
    for index, row in enumerate(rows):
        size = max(1, base_size + (1 if index < remainder else 0))
        current_end = min(max_roll, current_start + size - 1)
        effective_start = min(current_start, max_roll)
        table.append(TableEntry(effective_start, current_end, row.result))
        current_start = current_end + 1

    return table


def validate_partition(table: Sequence[TableEntry], dice: DiceConfig) -> PartitionReport:
    """
    Check a table against its dice domain.

    Diagnostic only: manual row edits are allowed to leave gaps or overlaps,
    this reports them without changing anything.
    """
    report = PartitionReport()
    low, high = dice.min_total, dice.max_total
    coverage = {value: 0 for value in range(low, high + 1)}

    for index, entry in enumerate(table):
        if entry.range_min < low or entry.range_max > high or entry.range_min > entry.range_max:
            report.out_of_domain.append(index)
        for value in range(max(low, entry.range_min), min(high, entry.range_max) + 1):
            coverage[value] += 1

    report.gaps = [value for value, hits in coverage.items() if hits == 0]
    report.overlaps = [value for value, hits in coverage.items() if hits > 1]
    return report


# =============================================================================
# REGION EDITING
# =============================================================================


def parse_trigger_values(text: str) -> tuple[int, ...]:
    """
    Parse "1, 3-4, 6" into (1, 3, 4, 6).

    Ranges are inclusive and may be written in either order. Parts that do
    not parse are skipped. The result is de-duplicated and sorted.
    """
    values: set[int] = set()
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            bounds = part.split("-")
            if len(bounds) != 2:
                continue
            low = parse_int(bounds[0], default=None)
            high = parse_int(bounds[1], default=None)
            if low is None or high is None:
                continue
            values.update(range(min(low, high), max(low, high) + 1))
        else:
            value = parse_int(part, default=None)
            if value is not None:
                values.add(value)
    return tuple(sorted(values))


def format_trigger_values(values: Sequence[int]) -> str:
    return ", ".join(str(v) for v in values)


def set_trigger_values(region: Region, text: str) -> Region:
    return region.with_changes(
        freq_config=FreqConfig(die=region.freq_config.die, trigger_values=parse_trigger_values(text))
    )


def set_trigger_die(region: Region, die: str) -> Region:
    return region.with_changes(
        freq_config=FreqConfig(die=die, trigger_values=region.freq_config.trigger_values)
    )


def set_dice_config(region: Region, count: Any, faces: Any) -> Region:
    """
    Change the table dice. Unparseable numbers become 0.

    Existing ranges are left as they are; the next structural change
    (adding or removing a row) re-partitions over the new domain.
    """
    return region.with_changes(dice_config=DiceConfig(count=parse_int(count), faces=parse_int(faces)))


def add_table_row(region: Region, result: str = NEW_ROW_TEXT) -> Region:
    rows = list(region.table) + [TableEntry(0, 0, result)]
    return region.with_changes(table=recalculate_ranges(rows, region.dice_config))


def delete_table_row(region: Region, index: int) -> Region:
    if not 0 <= index < len(region.table):
        return region
    rows = [row for i, row in enumerate(region.table) if i != index]
    return region.with_changes(table=recalculate_ranges(rows, region.dice_config))


def update_table_row(
    region: Region,
    index: int,
    range_min: Any = None,
    range_max: Any = None,
    result: Optional[str] = None,
) -> Region:
    """
    Edit one row in place. Bounds are taken as entered (unparseable -> 0)
    and the rest of the table is not re-derived.
    """
    if not 0 <= index < len(region.table):
        return region
    row = region.table[index]
    updated = TableEntry(
        range_min=row.range_min if range_min is None else parse_int(range_min),
        range_max=row.range_max if range_max is None else parse_int(range_max),
        result=row.result if result is None else result,
    )
    table = list(region.table)
    table[index] = updated
    return region.with_changes(table=table)


def replace_results(region: Region, results: Sequence[Any]) -> Region:
    """Overwrite row texts in order; missing or non-string entries keep the old text."""
    table = []
    for index, row in enumerate(region.table):
        text = results[index] if index < len(results) else None
        if isinstance(text, str) and text.strip():
            row = TableEntry(row.range_min, row.range_max, text.strip())
        table.append(row)
    return region.with_changes(table=table)
