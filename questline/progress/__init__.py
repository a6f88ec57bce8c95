"""
progress/ - Progress store shapes

Per-player progress records, the mode-split/legacy document union and the
flattened external report.
"""

from .schemas import (
    DELETE,
    QuestCompletion,
    ObjectiveProgress,
    FacilityProgress,
    ModeProgress,
    ModeSplitDocument,
    LegacyDocument,
    PlayerProgressDocument,
    parse_document,
    migrate_document,
    is_mode_split,
)
from .modes import extract_mode_data, select_mode
from .snapshots import (
    TeamDocuments,
    build_completion_map,
    build_objective_completion_map,
    build_faction_map,
    build_trader_level_map,
    build_trader_standing_map,
)
from .report import format_progress, format_records, grant_starting_tiers

__all__ = [
    "DELETE",
    "QuestCompletion",
    "ObjectiveProgress",
    "FacilityProgress",
    "ModeProgress",
    "ModeSplitDocument",
    "LegacyDocument",
    "PlayerProgressDocument",
    "parse_document",
    "migrate_document",
    "is_mode_split",
    "extract_mode_data",
    "select_mode",
    "TeamDocuments",
    "build_completion_map",
    "build_objective_completion_map",
    "build_faction_map",
    "build_trader_level_map",
    "build_trader_standing_map",
    "format_progress",
    "format_records",
    "grant_starting_tiers",
]
