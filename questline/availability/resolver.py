"""
availability/resolver.py - Availability Resolver

Read-side, side-effect-free answer to "can this member pick up this quest
right now", plus the locked/available/completed classification used by
views. Must agree with the InvalidationEngine on requirement semantics.
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple
import logging

from questline.catalog import Catalog, Objective, Quest, Requirement
from questline.core.constants import ALL_MEMBERS, EOD_EDITIONS
from questline.core.enums import Classification
from questline.dependencies.requirements import satisfied_by_outcome
from questline.progress.schemas import ModeProgress

from .standing import clamp_trader_level, standing_compare

logger = logging.getLogger(__name__)

_MemoKey = Tuple[str, str]


class AvailabilityResolver:
    """
    Memoized availability over a fixed set of member snapshots.

    Build a new resolver whenever the catalog or any snapshot changes;
    the memo is never invalidated in place.

    Usage:
        resolver = AvailabilityResolver(catalog, {"p1": progress})
        resolver.is_available("quest-b", "p1")
        resolver.classify(quest, "all", ["p1", "p2"])
    """

    def __init__(self, catalog: Catalog, documents: Mapping[str, ModeProgress]):
        self._catalog = catalog
        self._documents: Dict[str, ModeProgress] = dict(documents)
        self._memo: Dict[_MemoKey, bool] = {}

    @property
    def members(self) -> List[str]:
        return list(self._documents)

    def progress(self, member_id: str) -> Optional[ModeProgress]:
        return self._documents.get(member_id)

    # =========================================================================
    # Availability
    # =========================================================================

    def is_available(self, quest_id: str, member_id: str) -> bool:
        return self._evaluate(quest_id, member_id, set())

    def _evaluate(self, quest_id: str, member_id: str, stack: Set[_MemoKey]) -> bool:
        key = (quest_id, member_id)
        if key in self._memo:
            return self._memo[key]

        if key in stack:
            logger.debug(f"Availability cycle at {quest_id} for {member_id}")
            self._memo[key] = False
            return False

        quest = self._catalog.get(quest_id)
        progress = self._documents.get(member_id)
        if quest is None or progress is None:
            self._memo[key] = False
            return False

        stack.add(key)
        result = (
            self._check_edition(quest, progress)
            and self._check_failed_requirements(quest, progress)
            and self._check_record(quest, progress)
            and self._check_player_level(quest, progress)
            and self._check_trader_levels(quest, progress)
            and self._check_objective_requirements(quest, progress)
            and self._check_requirements(quest, member_id, progress, stack)
            and quest.allows_faction(progress.pmc_faction)
        )
        stack.discard(key)

        self._memo[key] = result
        return result

    @staticmethod
    def _check_edition(quest: Quest, progress: ModeProgress) -> bool:
        if not quest.eod_only:
            return True
        return (progress.game_edition or 0) in EOD_EDITIONS

    @staticmethod
    def _check_failed_requirements(quest: Quest, progress: ModeProgress) -> bool:
        return not any(
            req.quest_id and progress.is_quest_failed(req.quest_id)
            for req in quest.failed_requirements
        )

    @staticmethod
    def _check_record(quest: Quest, progress: ModeProgress) -> bool:
        record = progress.quest(quest.id)
        if record is None:
            return True
        return not record.complete and not record.failed and not record.invalid

    @staticmethod
    def _check_player_level(quest: Quest, progress: ModeProgress) -> bool:
        if not quest.min_player_level:
            return True
        return (progress.level or 0) >= quest.min_player_level

    @staticmethod
    def _check_trader_levels(quest: Quest, progress: ModeProgress) -> bool:
        for requirement in quest.trader_level_requirements + quest.trader_requirements:
            if not requirement.trader_id:
                continue
            current = progress.trader_levels.get(requirement.trader_id, 0)
            if current < clamp_trader_level(requirement.level):
                return False
        return True

    @staticmethod
    def _check_objective_requirements(quest: Quest, progress: ModeProgress) -> bool:
        for objective in quest.objectives:
            if objective.optional or not objective.trader_id:
                continue
            if objective.type == "traderLevel":
                current = progress.trader_levels.get(objective.trader_id, 0)
                if current < clamp_trader_level(objective.level):
                    return False
            elif objective.type == "traderStanding":
                current = progress.trader_standings.get(objective.trader_id, 0.0)
                if not standing_compare(current, objective.compare_method, objective.value):
                    return False
        return True

    def _check_requirements(
        self,
        quest: Quest,
        member_id: str,
        progress: ModeProgress,
        stack: Set[_MemoKey],
    ) -> bool:
        return all(
            self._requirement_met(req, member_id, progress, stack)
            for req in quest.requirements
        )

    def _requirement_met(
        self,
        requirement: Requirement,
        member_id: str,
        progress: ModeProgress,
        stack: Set[_MemoKey],
    ) -> bool:
        required_id = requirement.quest_id
        if not required_id:
            return True

        if satisfied_by_outcome(requirement, progress.quest(required_id)):
            return True
        # "active" is read as "the prerequisite is itself available"
        return requirement.requires_active and self._evaluate(required_id, member_id, stack)

    def availability_map(self, member_ids: Optional[Iterable[str]] = None) -> Dict[str, Dict[str, bool]]:
        """quest id -> member id -> available."""
        members = list(member_ids) if member_ids is not None else self.members
        return {
            quest_id: {member: self.is_available(quest_id, member) for member in members}
            for quest_id in self._catalog.quests
        }

    # =========================================================================
    # Viewer context
    # =========================================================================

    def visible(self, viewer: str, visible_members: Optional[Sequence[str]] = None) -> List[str]:
        """Members a viewer context covers."""
        if viewer != ALL_MEMBERS:
            return [viewer]
        if visible_members is None:
            return self.members
        return [m for m in visible_members if m in self._documents]

    def is_complete_for(self, quest_id: str, member_id: str) -> bool:
        progress = self._documents.get(member_id)
        return bool(progress and progress.is_quest_complete(quest_id))

    def needs(self, quest: Quest, member_id: str) -> bool:
        """Available, not completed and faction-compatible for the member."""
        progress = self._documents.get(member_id)
        if progress is None:
            return False
        return (
            self.is_available(quest.id, member_id)
            and not progress.is_quest_complete(quest.id)
            and quest.allows_faction(progress.pmc_faction)
        )

    def classify(
        self,
        quest: Quest,
        viewer: str,
        visible_members: Optional[Sequence[str]] = None,
    ) -> Classification:
        members = self.visible(viewer, visible_members)
        if not members:
            return Classification.LOCKED

        if all(self.is_complete_for(quest.id, m) for m in members):
            return Classification.COMPLETED
        if viewer == ALL_MEMBERS:
            if any(self.needs(quest, m) for m in members):
                return Classification.AVAILABLE
            return Classification.LOCKED
        if self.is_available(quest.id, viewer):
            return Classification.AVAILABLE
        return Classification.LOCKED

    def has_incomplete_objective_on_map(
        self,
        quest: Quest,
        map_ids: Iterable[str],
        viewer: str,
        visible_members: Optional[Sequence[str]] = None,
    ) -> bool:
        """
        Does the quest still have work on one of map_ids for this viewer?

        For the aggregated viewer an objective is incomplete only if no
        visible member has completed it.
        """
        wanted = set(map_ids)
        members = self.visible(viewer, visible_members)
        for objective in quest.objectives:
            if not objective.touches_any(wanted):
                continue
            if self._objective_incomplete(objective, viewer, members):
                return True
        return False

    def _objective_incomplete(self, objective: Objective, viewer: str, members: List[str]) -> bool:
        if viewer == ALL_MEMBERS:
            if not members:
                return True
            return not any(
                self._documents[m].is_objective_complete(objective.id) for m in members
            )
        progress = self._documents.get(viewer)
        return not (progress and progress.is_objective_complete(objective.id))
