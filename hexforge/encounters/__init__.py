"""
Region encounter resolution and encounter-table editing.
"""

from hexforge.encounters.region_engine import (
    FALLBACK_RESULT,
    EncounterOutcome,
    PartitionReport,
    RegionEncounterEngine,
    add_table_row,
    delete_table_row,
    find_entry,
    format_trigger_values,
    parse_trigger_values,
    recalculate_ranges,
    replace_results,
    set_dice_config,
    set_trigger_die,
    set_trigger_values,
    update_table_row,
    validate_partition,
)

__all__ = [
    "FALLBACK_RESULT",
    "EncounterOutcome",
    "PartitionReport",
    "RegionEncounterEngine",
    "add_table_row",
    "delete_table_row",
    "find_entry",
    "format_trigger_values",
    "parse_trigger_values",
    "recalculate_ranges",
    "replace_results",
    "set_dice_config",
    "set_trigger_die",
    "set_trigger_values",
    "update_table_row",
    "validate_partition",
]
