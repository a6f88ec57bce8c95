"""
questline Constants

Catalog identifiers and edition rules the engine depends on.
"""

from typing import FrozenSet, Set

# Facility stations with special starting-tier handling
STASH_STATION_ID = "5d484fc0654e76006657e0ab"
CULTIST_CIRCLE_STATION_ID = "667298e75ea6b4493c08f266"

# Game editions
EOD_EDITIONS: FrozenSet[int] = frozenset({4, 6})
CULTIST_CIRCLE_EDITIONS: FrozenSet[int] = frozenset({5, 6})
DEFAULT_GAME_EDITION = 1

# Factions
FACTION_ANY = "Any"
DEFAULT_FACTION = "USEC"
UNKNOWN_FACTION = "Unknown"

# Requirement status spellings that mean "active"
ACTIVE_STATUSES: Set[str] = {"active", "accept", "accepted"}

# Trader loyalty levels are clamped to this range
MIN_TRADER_LEVEL = 0
MAX_TRADER_LEVEL = 10

# Quests handed out by this trader count as Lightkeeper content
LIGHTKEEPER_TRADER_NAME = "lightkeeper"

# Aggregated viewer context
ALL_MEMBERS = "all"

DEFAULT_PLAYER_LEVEL = 1
DISPLAY_NAME_LENGTH = 6
