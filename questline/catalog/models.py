"""
questline Catalog Model

Immutable in-memory representation of quests, objectives, requirements and
facility tiers, parsed from the external reference dataset.

The dataset arrives in its own camelCase shape; from_dict() is the only place
that shape is read.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple
import logging

from questline.core.constants import ACTIVE_STATUSES, FACTION_ANY
from questline.core.enums import RequirementStatus

logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS
# =============================================================================

class CatalogError(Exception):
    """Malformed catalog input."""
    pass


class UnknownQuestError(CatalogError, KeyError):
    """Strict lookup of a quest id that is not in the catalog."""

    def __init__(self, quest_id: str):
        self.quest_id = quest_id
        super().__init__(f"Unknown quest: {quest_id}")


# =============================================================================
# HELPERS
# =============================================================================

def _ref_id(value: Any) -> Optional[str]:
    """Pull the id out of a {id, name} reference or accept a bare id."""
    if isinstance(value, dict):
        ref = value.get("id")
        return str(ref) if ref else None
    if isinstance(value, str) and value:
        return value
    return None


def _ref_name(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        return value.get("name")
    return None


def normalize_statuses(statuses: Any) -> FrozenSet[RequirementStatus]:
    """
    Normalize raw requirement statuses.

    Unknown strings are dropped; "accept"/"accepted" collapse into ACTIVE.
    """
    if not isinstance(statuses, (list, tuple, set, frozenset)):
        return frozenset()

    normalized = set()
    for status in statuses:
        if not isinstance(status, str):
            continue
        lowered = status.strip().lower()
        if lowered in ACTIVE_STATUSES:
            normalized.add(RequirementStatus.ACTIVE)
        elif lowered == RequirementStatus.COMPLETE.value:
            normalized.add(RequirementStatus.COMPLETE)
        elif lowered == RequirementStatus.FAILED.value:
            normalized.add(RequirementStatus.FAILED)
    return frozenset(normalized)


# =============================================================================
# QUEST PARTS
# =============================================================================

@dataclass(frozen=True)
class Requirement:
    """A prerequisite quest plus the states it may be in."""
    quest_id: Optional[str]
    statuses: FrozenSet[RequirementStatus] = frozenset()

    @property
    def requires_complete(self) -> bool:
        return RequirementStatus.COMPLETE in self.statuses

    @property
    def requires_active(self) -> bool:
        return RequirementStatus.ACTIVE in self.statuses

    @property
    def requires_failed(self) -> bool:
        return RequirementStatus.FAILED in self.statuses

    @property
    def failed_only(self) -> bool:
        return self.statuses == frozenset({RequirementStatus.FAILED})

    @property
    def active_only(self) -> bool:
        return self.statuses == frozenset({RequirementStatus.ACTIVE})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Requirement":
        return cls(
            quest_id=_ref_id(data.get("task")) or _ref_id(data.get("quest")),
            statuses=normalize_statuses(data.get("status")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task": {"id": self.quest_id},
            "status": sorted(s.value for s in self.statuses),
        }


@dataclass(frozen=True)
class TraderLevelRequirement:
    """Minimum loyalty level with a trader."""
    trader_id: Optional[str]
    level: Any = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any], key: str = "level") -> "TraderLevelRequirement":
        return cls(trader_id=_ref_id(data.get("trader")), level=data.get(key, 0))


@dataclass(frozen=True)
class Objective:
    """A sub-step of a quest, optionally tied to one or more maps."""
    id: str
    quest_id: str
    description: str = ""
    type: Optional[str] = None
    count: Optional[int] = None
    optional: bool = False
    location_ids: Tuple[str, ...] = ()

    # traderLevel / traderStanding objectives
    trader_id: Optional[str] = None
    level: Any = None
    value: Any = None
    compare_method: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], quest_id: str) -> "Objective":
        if not data.get("id"):
            raise CatalogError(f"Objective without id in quest {quest_id}")

        locations: List[str] = []

        def _add(ref: Any) -> None:
            ref_id = _ref_id(ref)
            if ref_id and ref_id not in locations:
                locations.append(ref_id)

        for map_ref in data.get("maps") or []:
            _add(map_ref)
        _add(data.get("location"))
        for possible in data.get("possibleLocations") or []:
            if isinstance(possible, dict):
                _add(possible.get("map"))
        for zone in data.get("zones") or []:
            if isinstance(zone, dict):
                _add(zone.get("map"))

        count = data.get("count")
        return cls(
            id=str(data["id"]),
            quest_id=quest_id,
            description=data.get("description", ""),
            type=data.get("type"),
            count=count if isinstance(count, int) else None,
            optional=data.get("optional") is True,
            location_ids=tuple(locations),
            trader_id=_ref_id(data.get("trader")),
            level=data.get("level"),
            value=data.get("value"),
            compare_method=data.get("compareMethod"),
        )

    def touches_any(self, map_ids: Iterable[str]) -> bool:
        wanted = set(map_ids)
        return any(location in wanted for location in self.location_ids)


@dataclass(frozen=True)
class Quest:
    """
    A unit of progression.

    Graph-derived fields (parents, children, predecessors, successors) are
    filled in by QuestGraph when the Catalog is built.
    """
    id: str
    name: str = ""
    trader_id: Optional[str] = None
    trader_name: Optional[str] = None
    map_id: Optional[str] = None
    map_name: Optional[str] = None

    objectives: Tuple[Objective, ...] = ()
    requirements: Tuple[Requirement, ...] = ()
    failed_requirements: Tuple[Requirement, ...] = ()
    trader_level_requirements: Tuple[TraderLevelRequirement, ...] = ()
    trader_requirements: Tuple[TraderLevelRequirement, ...] = ()

    min_player_level: int = 0
    faction_name: Optional[str] = None
    eod_only: bool = False
    kappa_required: bool = False
    lightkeeper_required: bool = False

    # Declared plus finishRewards-derived; never made symmetric
    alternatives: Tuple[str, ...] = ()

    parents: Tuple[str, ...] = ()
    children: Tuple[str, ...] = ()
    predecessors: Tuple[str, ...] = ()
    successors: Tuple[str, ...] = ()

    @property
    def faction_restricted(self) -> bool:
        return bool(self.faction_name) and self.faction_name != FACTION_ANY

    def allows_faction(self, faction: Optional[str]) -> bool:
        if not self.faction_restricted:
            return True
        return self.faction_name == faction

    def location_ids(self) -> List[str]:
        """Map ids touched by any objective, in first-seen order."""
        seen: List[str] = []
        for objective in self.objectives:
            for location in objective.location_ids:
                if location not in seen:
                    seen.append(location)
        return seen

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Quest":
        quest_id = data.get("id")
        if not quest_id:
            raise CatalogError(f"Quest without id: {data.get('name', '<unnamed>')}")
        quest_id = str(quest_id)

        alternatives: List[str] = []
        for alt in data.get("alternatives") or []:
            alt_id = _ref_id(alt)
            if alt_id and alt_id not in alternatives:
                alternatives.append(alt_id)
        for reward in data.get("finishRewards") or []:
            if not isinstance(reward, dict):
                continue
            if reward.get("__typename", "QuestStatusReward") != "QuestStatusReward":
                continue
            if str(reward.get("status", "")).lower() != "fail":
                continue
            alt_id = _ref_id(reward.get("quest"))
            if alt_id and alt_id != quest_id and alt_id not in alternatives:
                alternatives.append(alt_id)

        trader = data.get("trader")
        map_ref = data.get("map")
        min_level = data.get("minPlayerLevel") or 0

        return cls(
            id=quest_id,
            name=data.get("name", ""),
            trader_id=_ref_id(trader),
            trader_name=_ref_name(trader),
            map_id=_ref_id(map_ref),
            map_name=_ref_name(map_ref),
            objectives=tuple(
                Objective.from_dict(obj, quest_id) for obj in data.get("objectives") or []
            ),
            requirements=tuple(
                Requirement.from_dict(req) for req in data.get("taskRequirements") or []
            ),
            failed_requirements=tuple(
                Requirement.from_dict(req) for req in data.get("failedRequirements") or []
            ),
            trader_level_requirements=tuple(
                TraderLevelRequirement.from_dict(req)
                for req in data.get("traderLevelRequirements") or []
            ),
            trader_requirements=tuple(
                TraderLevelRequirement.from_dict(req, key="value")
                for req in data.get("traderRequirements") or []
            ),
            min_player_level=int(min_level) if isinstance(min_level, (int, float)) else 0,
            faction_name=data.get("factionName"),
            eod_only=bool(data.get("eodOnly")),
            kappa_required=bool(data.get("kappaRequired")),
            lightkeeper_required=bool(data.get("lightkeeperRequired")),
            alternatives=tuple(alternatives),
        )


# =============================================================================
# FACILITIES
# =============================================================================

@dataclass(frozen=True)
class FacilityPart:
    """An item requirement of a facility tier."""
    id: str
    item_id: Optional[str] = None
    count: int = 0


@dataclass(frozen=True)
class FacilityTier:
    """One level of a facility station."""
    id: str
    station_id: str
    level: int
    parts: Tuple[FacilityPart, ...] = ()


@dataclass(frozen=True)
class FacilityStation:
    id: str
    name: str = ""
    tiers: Tuple[FacilityTier, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FacilityStation":
        station_id = data.get("id")
        if not station_id:
            raise CatalogError("Facility station without id")
        tiers = []
        for level in data.get("levels") or []:
            parts = tuple(
                FacilityPart(
                    id=str(item["id"]),
                    item_id=_ref_id(item.get("item")),
                    count=int(item.get("count") or item.get("quantity") or 0),
                )
                for item in level.get("itemRequirements") or []
                if item.get("id")
            )
            tiers.append(FacilityTier(
                id=str(level["id"]),
                station_id=str(station_id),
                level=int(level.get("level", 0)),
                parts=parts,
            ))
        return cls(id=str(station_id), name=data.get("name", ""), tiers=tuple(tiers))


# =============================================================================
# REFERENCE DATA
# =============================================================================

@dataclass(frozen=True)
class MapInfo:
    id: str
    name: str = ""


@dataclass(frozen=True)
class TraderInfo:
    id: str
    name: str = ""


@dataclass(frozen=True)
class CatalogData:
    """Parsed but not yet graph-linked catalog contents."""
    quests: Tuple[Quest, ...] = ()
    stations: Tuple[FacilityStation, ...] = ()
    maps: Tuple[MapInfo, ...] = ()
    traders: Tuple[TraderInfo, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CatalogData":
        quests = []
        seen = set()
        for raw in data.get("tasks") or data.get("quests") or []:
            quest = Quest.from_dict(raw)
            if quest.id in seen:
                logger.warning(f"Duplicate quest id in catalog: {quest.id}, keeping first")
                continue
            seen.add(quest.id)
            quests.append(quest)

        return cls(
            quests=tuple(quests),
            stations=tuple(
                FacilityStation.from_dict(raw)
                for raw in data.get("hideoutStations") or []
            ),
            maps=tuple(
                MapInfo(id=str(raw["id"]), name=raw.get("name", ""))
                for raw in data.get("maps") or [] if raw.get("id")
            ),
            traders=tuple(
                TraderInfo(id=str(raw["id"]), name=raw.get("name", ""))
                for raw in data.get("traders") or [] if raw.get("id")
            ),
        )


def freeze_mapping(data: Dict[str, Any]) -> Mapping[str, Any]:
    """Read-only view used for the catalog's lookup tables."""
    return MappingProxyType(dict(data))
