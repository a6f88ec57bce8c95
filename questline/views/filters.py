"""
views/filters.py - Quest list filters

Applied in order: primary view, secondary (status) view, requirement
labels. Each stage takes and returns an ordered list so the pipeline can
cache and sort the final result.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple
import logging

from questline.availability import AvailabilityResolver
from questline.catalog import MapInfo, Quest
from questline.core.constants import ALL_MEMBERS, EOD_EDITIONS, LIGHTKEEPER_TRADER_NAME, UNKNOWN_FACTION
from questline.core.enums import Classification, PrimaryView

from .maps import map_id_group

logger = logging.getLogger(__name__)

ALL = "all"


@dataclass
class FilterState:
    """Everything a user can toggle on the quest list."""
    primary_view: str = PrimaryView.ALL.value
    secondary_view: str = Classification.AVAILABLE.value
    user_view: str = ALL_MEMBERS
    map_view: str = ALL
    trader_view: str = ALL

    hide_global_tasks: bool = False
    hide_non_kappa_tasks: bool = False
    hide_kappa_required_tasks: bool = False
    hide_lightkeeper_required_tasks: bool = False
    show_eod_tasks: bool = True
    hide_non_endgame_tasks: bool = False
    treat_eod_as_endgame: bool = False

    disabled_quest_ids: FrozenSet[str] = frozenset()
    visible_members: Optional[Tuple[str, ...]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["disabled_quest_ids"] = sorted(self.disabled_quest_ids)
        data["visible_members"] = list(self.visible_members) if self.visible_members is not None else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FilterState":
        state = cls()
        for key, value in data.items():
            if not hasattr(state, key):
                continue
            if key == "disabled_quest_ids":
                value = frozenset(value or ())
            elif key == "visible_members" and value is not None:
                value = tuple(value)
            setattr(state, key, value)
        return state

    @property
    def is_aggregated(self) -> bool:
        return self.user_view == ALL_MEMBERS

    @property
    def hide_non_endgame(self) -> bool:
        return self.hide_non_kappa_tasks or self.hide_non_endgame_tasks


@dataclass
class FilteredQuest:
    """A quest kept by the filters, with the members who still need it."""
    quest: Quest
    needed_by: Tuple[str, ...] = ()

    @property
    def id(self) -> str:
        return self.quest.id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.quest.id,
            "name": self.quest.name,
            "trader_id": self.quest.trader_id,
            "map_ids": self.quest.location_ids(),
            "needed_by": list(self.needed_by),
        }


# =============================================================================
# PRIMARY VIEW
# =============================================================================

def quest_map_ids(quest: Quest) -> List[str]:
    ids = quest.location_ids()
    if quest.map_id and quest.map_id not in ids:
        ids.append(quest.map_id)
    return ids


def is_global_quest(quest: Quest) -> bool:
    return not quest_map_ids(quest)


def filter_by_primary_view(
    quests: Sequence[Quest],
    filters: FilterState,
    maps: Sequence[MapInfo],
) -> List[Quest]:
    result = list(quests)

    if filters.primary_view == PrimaryView.MAPS.value and filters.map_view != ALL:
        group = set(map_id_group(filters.map_view, maps))
        result = [q for q in result if group.intersection(quest_map_ids(q))]

    if filters.primary_view == PrimaryView.TRADERS.value and filters.trader_view != ALL:
        result = [q for q in result if q.trader_id == filters.trader_view]

    return result


# =============================================================================
# SECONDARY VIEW
# =============================================================================

def filter_by_secondary_view(
    quests: Sequence[Quest],
    filters: FilterState,
    resolver: AvailabilityResolver,
) -> List[FilteredQuest]:
    if filters.is_aggregated:
        return _filter_aggregated(quests, filters, resolver)
    return _filter_single(quests, filters, resolver)


def _filter_single(
    quests: Sequence[Quest],
    filters: FilterState,
    resolver: AvailabilityResolver,
) -> List[FilteredQuest]:
    member = filters.user_view
    progress = resolver.progress(member)
    if progress is None:
        logger.warning(f"No progress loaded for member {member}")
        return []

    wanted = filters.secondary_view
    kept: List[FilteredQuest] = []
    for quest in quests:
        completed = progress.is_quest_complete(quest.id)
        unlocked = resolver.is_available(quest.id, member)

        if wanted == Classification.AVAILABLE.value:
            keep = unlocked and not completed
        elif wanted == Classification.LOCKED.value:
            keep = not completed and not unlocked
        elif wanted == Classification.COMPLETED.value:
            keep = completed
        else:
            logger.warning(f"Unknown secondary view: {wanted}")
            return []

        if keep:
            kept.append(FilteredQuest(quest=quest))

    faction = progress.pmc_faction
    if faction and faction != UNKNOWN_FACTION:
        kept = [item for item in kept if item.quest.allows_faction(faction)]
    return kept


def _filter_aggregated(
    quests: Sequence[Quest],
    filters: FilterState,
    resolver: AvailabilityResolver,
) -> List[FilteredQuest]:
    if filters.secondary_view != Classification.AVAILABLE.value:
        logger.warning(
            f"Secondary view '{filters.secondary_view}' is not supported for all members"
        )
        return []

    members = resolver.visible(ALL_MEMBERS, filters.visible_members)
    kept: List[FilteredQuest] = []
    for quest in quests:
        needing = tuple(m for m in members if resolver.needs(quest, m))
        if needing:
            kept.append(FilteredQuest(quest=quest, needed_by=needing))
    return kept


# =============================================================================
# REQUIREMENT LABELS
# =============================================================================

def is_lightkeeper_quest(quest: Quest) -> bool:
    return quest.lightkeeper_required or (quest.trader_name or "").lower() == LIGHTKEEPER_TRADER_NAME


def matches_requirement_filters(
    quest: Quest,
    show_kappa: bool = True,
    show_lightkeeper: bool = True,
    show_eod: bool = True,
    hide_non_endgame: bool = False,
    treat_eod_as_endgame: bool = False,
) -> bool:
    """Label-based visibility for kappa, lightkeeper and EOD quests."""
    kappa = quest.kappa_required
    lightkeeper = is_lightkeeper_quest(quest)
    eod = quest.eod_only

    if hide_non_endgame and not (kappa or lightkeeper or (treat_eod_as_endgame and eod)):
        return False
    if not (kappa or lightkeeper or eod):
        return True
    return (kappa and show_kappa) or (lightkeeper and show_lightkeeper) or (eod and show_eod)


def _holds_eod(resolver: AvailabilityResolver, members: Sequence[str]) -> bool:
    for member in members:
        progress = resolver.progress(member)
        if progress is not None and (progress.game_edition or 0) in EOD_EDITIONS:
            return True
    return False


def apply_requirement_filters(
    items: Sequence[FilteredQuest],
    filters: FilterState,
    resolver: AvailabilityResolver,
) -> List[FilteredQuest]:
    members = resolver.visible(filters.user_view, filters.visible_members)
    eod_allowed = _holds_eod(resolver, members)

    kept: List[FilteredQuest] = []
    for item in items:
        quest = item.quest
        if quest.id in filters.disabled_quest_ids:
            continue
        if not matches_requirement_filters(
            quest,
            show_kappa=not filters.hide_kappa_required_tasks,
            show_lightkeeper=not filters.hide_lightkeeper_required_tasks,
            show_eod=filters.show_eod_tasks,
            hide_non_endgame=filters.hide_non_endgame,
            treat_eod_as_endgame=filters.treat_eod_as_endgame,
        ):
            continue
        if quest.eod_only and not eod_allowed:
            continue
        kept.append(item)
    return kept


def filter_quests(
    quests: Sequence[Quest],
    filters: FilterState,
    resolver: AvailabilityResolver,
    maps: Sequence[MapInfo] = (),
) -> List[FilteredQuest]:
    """Primary view, then secondary view, then requirement labels."""
    primary = filter_by_primary_view(quests, filters, maps)
    secondary = filter_by_secondary_view(primary, filters, resolver)
    return apply_requirement_filters(secondary, filters, resolver)
