"""
questline Core Enumerations

All enumeration types shared by the write path and the read path.
"""

from enum import Enum


class QuestState(str, Enum):
    """
    The three transitions a client may request for a quest.
    """
    COMPLETED = "completed"
    FAILED = "failed"
    UNCOMPLETED = "uncompleted"


class RequirementStatus(str, Enum):
    """
    Acceptable source-states on a quest requirement.

    The catalog spells "active" three ways; all of them normalize to ACTIVE.
    """
    COMPLETE = "complete"
    FAILED = "failed"
    ACTIVE = "active"


class GameMode(str, Enum):
    """Parallel progression tracks kept per player."""
    PVP = "pvp"
    PVE = "pve"


class Classification(str, Enum):
    """Read-side bucket a quest falls into for a viewer."""
    LOCKED = "locked"
    AVAILABLE = "available"
    COMPLETED = "completed"


class PrimaryView(str, Enum):
    """Top-level list grouping."""
    ALL = "all"
    MAPS = "maps"
    TRADERS = "traders"


class InvalidationReason(Enum):
    """Why a record was rewritten by the engine."""
    STATE_CHANGED = "state_changed"             # Direct quest transition
    FACTION_MISMATCH = "faction_mismatch"       # Quest belongs to the other faction
    CONTRADICTED_FAILURE = "contradicted_failure"  # Requires failure of a completed quest
    ALTERNATIVE_CHOSEN = "alternative_chosen"   # A mutually-exclusive quest was completed
    MANUAL = "manual"
