"""
availability/ - Read-path availability and team aggregation
"""

from .standing import standing_compare, clamp_trader_level, normalize_method
from .resolver import AvailabilityResolver
from .team import TeamAggregator, TeamView

__all__ = [
    "standing_compare",
    "clamp_trader_level",
    "normalize_method",
    "AvailabilityResolver",
    "TeamAggregator",
    "TeamView",
]
