"""
Tests for region encounter resolution and encounter-table editing.
"""

import pytest

from hexforge.data_models import DiceConfig, FreqConfig, Region, TableEntry
from hexforge.encounters.region_engine import (
    FALLBACK_RESULT,
    NEW_ROW_TEXT,
    RegionEncounterEngine,
    add_table_row,
    delete_table_row,
    find_entry,
    parse_trigger_values,
    recalculate_ranges,
    replace_results,
    set_dice_config,
    set_trigger_die,
    set_trigger_values,
    update_table_row,
    validate_partition,
)
from hexforge.observability.run_log import get_run_log


def _rows(count: int) -> list[TableEntry]:
    return [TableEntry(0, 0, f"row {i}") for i in range(count)]


class TestResolve:
    """Tests for RegionEncounterEngine.resolve."""

    def test_trigger_and_table_roll(self, dragon_region, dice_factory):
        dice = dice_factory(rolls=[[1], [5, 6]])
        outcome = RegionEncounterEngine(dice).resolve(dragon_region, "r1")

        assert outcome.triggered
        assert outcome.trigger_roll == 1
        assert outcome.dice_rolls == [5, 6]
        assert outcome.total == 11
        assert outcome.result_text == "dragon"
        assert dice.calls == [
            ("1d6", "Encounter check: Dragon Hills"),
            ("2d6", "Encounter table: Dragon Hills"),
        ]

    def test_no_trigger_skips_table(self, dragon_region, dice_factory):
        dice = dice_factory(rolls=[[3]])
        outcome = RegionEncounterEngine(dice).resolve(dragon_region)

        assert not outcome.triggered
        assert outcome.result_text is None
        assert len(dice.calls) == 1
        assert outcome.summary_lines() == ["Region check (Dragon Hills): Rolled 3 on d6. Safe."]

    def test_region_untouched_by_resolve(self, dragon_region, dice_factory):
        before = dragon_region.to_dict()
        RegionEncounterEngine(dice_factory(rolls=[[1], [1, 1]])).resolve(dragon_region)
        assert dragon_region.to_dict() == before

    def test_uncovered_sum_gives_fallback(self, dice_factory):
        region = Region(
            name="Gappy",
            freq_config=FreqConfig(die="d4", trigger_values=(1, 2, 3, 4)),
            dice_config=DiceConfig(2, 6),
            table=(TableEntry(2, 3, "low"),),
        )
        outcome = RegionEncounterEngine(dice_factory(rolls=[[2], [6, 6]])).resolve(region)
        assert outcome.is_fallback
        assert outcome.result_text == FALLBACK_RESULT

    def test_unusable_trigger_die_never_fires(self, dragon_region, dice_factory):
        dice = dice_factory()
        region = dragon_region.with_changes(freq_config=FreqConfig(die="dx", trigger_values=(1,)))
        outcome = RegionEncounterEngine(dice).resolve(region)
        assert not outcome.triggered
        assert dice.calls == []

    def test_zero_dice_total_is_zero(self, dragon_region, dice_factory):
        region = dragon_region.with_changes(dice_config=DiceConfig(0, 6))
        dice = dice_factory(rolls=[[1]])
        outcome = RegionEncounterEngine(dice).resolve(region)
        assert outcome.triggered
        assert outcome.total == 0
        assert outcome.result_text == FALLBACK_RESULT

    def test_lookup_is_logged(self, dragon_region, dice_factory):
        RegionEncounterEngine(dice_factory(rolls=[[1], [1, 2]])).resolve(dragon_region, "r1")
        lookups = get_run_log().get_table_lookups()
        assert len(lookups) == 1
        assert lookups[0].table_id == "r1"
        assert lookups[0].result_text == "wildlife"

    def test_seeded_roller_reproducible(self, dragon_region, seeded_dice):
        first = RegionEncounterEngine(seeded_dice).resolve(dragon_region)
        seeded_dice.set_seed(42)
        second = RegionEncounterEngine(seeded_dice).resolve(dragon_region)
        assert first.to_dict() == second.to_dict()

    def test_find_entry_first_match_wins(self):
        table = [TableEntry(1, 4, "a"), TableEntry(3, 6, "b")]
        assert find_entry(table, 3).result == "a"
        assert find_entry(table, 5).result == "b"
        assert find_entry(table, 9) is None


class TestRecalculateRanges:
    """Tests for even re-partitioning."""

    def test_remainder_goes_to_first_rows(self):
        table = recalculate_ranges(_rows(4), DiceConfig(1, 11))
        widths = [e.range_max - e.range_min + 1 for e in table]
        assert widths == [3, 3, 3, 2]
        assert [(e.range_min, e.range_max) for e in table] == [(1, 3), (4, 6), (7, 9), (10, 11)]

    def test_2d6_over_three_rows(self):
        table = recalculate_ranges(_rows(3), DiceConfig(2, 6))
        assert [(e.range_min, e.range_max) for e in table] == [(2, 5), (6, 9), (10, 12)]

    def test_text_kept(self):
        table = recalculate_ranges(_rows(3), DiceConfig(1, 6))
        assert [e.result for e in table] == ["row 0", "row 1", "row 2"]

    @pytest.mark.parametrize("count,faces,rows", [
        (1, 6, 1), (1, 6, 6), (2, 6, 5), (3, 6, 7), (1, 20, 3), (2, 8, 15),
    ])
    def test_result_is_partition(self, count, faces, rows):
        dice = DiceConfig(count, faces)
        table = recalculate_ranges(_rows(rows), dice)
        assert validate_partition(table, dice).is_partition

    def test_more_rows_than_values_clamped(self):
        table = recalculate_ranges(_rows(8), DiceConfig(1, 6))
        assert all(1 <= e.range_min <= e.range_max <= 6 for e in table)
        assert table[-1].range_max == 6

    def test_zero_dice_fall_back_to_1d6(self):
        table = recalculate_ranges(_rows(2), DiceConfig(0, 0))
        assert [(e.range_min, e.range_max) for e in table] == [(1, 3), (4, 6)]

    def test_empty(self):
        assert recalculate_ranges([], DiceConfig(2, 6)) == []


class TestValidatePartition:
    """Tests for the gap/overlap diagnostic."""

    def test_reports_gaps_and_overlaps(self):
        table = [TableEntry(2, 5, "a"), TableEntry(5, 8, "b"), TableEntry(11, 12, "c")]
        report = validate_partition(table, DiceConfig(2, 6))
        assert report.overlaps == [5]
        assert report.gaps == [9, 10]
        assert not report.is_partition

    def test_out_of_domain_rows(self):
        report = validate_partition([TableEntry(0, 13, "all")], DiceConfig(2, 6))
        assert report.out_of_domain == [0]


class TestTableEditing:
    """Tests for the region table editing helpers."""

    def test_add_row_repartitions(self, dragon_region):
        region = add_table_row(dragon_region)
        assert len(region.table) == 4
        assert region.table[-1].result == NEW_ROW_TEXT
        assert validate_partition(region.table, region.dice_config).is_partition
        assert len(dragon_region.table) == 3

    def test_delete_row_repartitions(self, dragon_region):
        region = delete_table_row(dragon_region, 1)
        assert [e.result for e in region.table] == ["wildlife", "dragon"]
        assert [(e.range_min, e.range_max) for e in region.table] == [(2, 7), (8, 12)]

    def test_delete_bad_index_is_noop(self, dragon_region):
        assert delete_table_row(dragon_region, 7) is dragon_region

    def test_update_row_keeps_manual_ranges(self, dragon_region):
        region = update_table_row(dragon_region, 0, range_min="2", range_max="8", result="wolves")
        assert region.table[0] == TableEntry(2, 8, "wolves")
        assert region.table[1] == dragon_region.table[1]
        assert not validate_partition(region.table, region.dice_config).is_partition

    def test_update_row_unparseable_bound_is_zero(self, dragon_region):
        region = update_table_row(dragon_region, 2, range_max="lots")
        assert region.table[2].range_max == 0

    def test_set_dice_config_leaves_ranges(self, dragon_region):
        region = set_dice_config(dragon_region, "3", "x")
        assert region.dice_config == DiceConfig(3, 0)
        assert region.table == dragon_region.table

    def test_trigger_values_and_die(self, dragon_region):
        region = set_trigger_values(dragon_region, "1, 3-4")
        region = set_trigger_die(region, "d8")
        assert region.freq_config == FreqConfig(die="d8", trigger_values=(1, 3, 4))

    def test_replace_results_keeps_missing(self, dragon_region):
        region = replace_results(dragon_region, ["  wolves ", None, ""])
        assert [e.result for e in region.table] == ["wolves", "bandits", "dragon"]


class TestParseTriggerValues:
    """Tests for trigger value parsing."""

    @pytest.mark.parametrize("text,expected", [
        ("1", (1,)),
        ("1, 2", (1, 2)),
        ("4-2", (2, 3, 4)),
        ("6, 1, 1", (1, 6)),
        ("1, x, 3", (1, 3)),
        ("", ()),
        ("1-2-3", ()),
    ])
    def test_parse(self, text, expected):
        assert parse_trigger_values(text) == expected
