"""
catalog/ - Immutable quest and facility catalog

Parses the external reference dataset and links quests into a
requirement graph.
"""

from .models import (
    CatalogError,
    UnknownQuestError,
    Requirement,
    TraderLevelRequirement,
    Objective,
    Quest,
    FacilityPart,
    FacilityTier,
    FacilityStation,
    MapInfo,
    TraderInfo,
    CatalogData,
    normalize_statuses,
)
from .graph import QuestGraph, Catalog

__all__ = [
    "CatalogError",
    "UnknownQuestError",
    "Requirement",
    "TraderLevelRequirement",
    "Objective",
    "Quest",
    "FacilityPart",
    "FacilityTier",
    "FacilityStation",
    "MapInfo",
    "TraderInfo",
    "CatalogData",
    "normalize_statuses",
    "QuestGraph",
    "Catalog",
]
