"""
core/ - Shared enumerations and constants
"""

from .enums import (
    QuestState,
    RequirementStatus,
    GameMode,
    Classification,
    PrimaryView,
    InvalidationReason,
)
from .constants import (
    STASH_STATION_ID,
    CULTIST_CIRCLE_STATION_ID,
    EOD_EDITIONS,
    CULTIST_CIRCLE_EDITIONS,
    DEFAULT_GAME_EDITION,
    FACTION_ANY,
    DEFAULT_FACTION,
    UNKNOWN_FACTION,
    ACTIVE_STATUSES,
    ALL_MEMBERS,
)

__all__ = [
    "QuestState",
    "RequirementStatus",
    "GameMode",
    "Classification",
    "PrimaryView",
    "InvalidationReason",
    "STASH_STATION_ID",
    "CULTIST_CIRCLE_STATION_ID",
    "EOD_EDITIONS",
    "CULTIST_CIRCLE_EDITIONS",
    "DEFAULT_GAME_EDITION",
    "FACTION_ANY",
    "DEFAULT_FACTION",
    "UNKNOWN_FACTION",
    "ACTIVE_STATUSES",
    "ALL_MEMBERS",
]
