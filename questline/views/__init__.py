"""
views/ - Quest list filtering, ordering and incremental reveal
"""

from .maps import canonical_map_name, map_id_group, is_map_variant
from .filters import (
    FilterState,
    FilteredQuest,
    filter_quests,
    filter_by_primary_view,
    filter_by_secondary_view,
    apply_requirement_filters,
    matches_requirement_filters,
)
from .sorting import SuccessorDepth, successor_depth, sort_visible_quests
from .pipeline import QuestViewPipeline
from .virtual_list import IncrementalReveal, INITIAL_BATCH, BATCH_INCREMENT

__all__ = [
    "canonical_map_name",
    "map_id_group",
    "is_map_variant",
    "FilterState",
    "FilteredQuest",
    "filter_quests",
    "filter_by_primary_view",
    "filter_by_secondary_view",
    "apply_requirement_filters",
    "matches_requirement_filters",
    "SuccessorDepth",
    "successor_depth",
    "sort_visible_quests",
    "QuestViewPipeline",
    "IncrementalReveal",
    "INITIAL_BATCH",
    "BATCH_INCREMENT",
]
