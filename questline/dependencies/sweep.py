"""
questline Consistency Sweep

Marks quests and their objectives invalid when stored progress contradicts
the catalog:

- the quest belongs to a faction other than the player's
- the quest requires the failure of a quest stored as a success
- an alternative of the quest was completed

Invalidity flows to every dependent reached through a complete/active
requirement.
"""

from __future__ import annotations
from typing import List, Optional, TYPE_CHECKING
import logging

from questline.core.enums import InvalidationReason
from questline.progress.schemas import ModeProgress

from .delta import ProgressDelta
from .invalidation import InvalidationEvent, TransitionResult
from .requirements import contradicted_failure, propagates_invalidation

if TYPE_CHECKING:
    from questline.catalog import Catalog

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 256


class InvalidationDepthExceeded(RuntimeError):
    """Recursion ran past the configured depth; the catalog is likely cyclic."""

    def __init__(self, quest_id: str, depth: int):
        self.quest_id = quest_id
        self.depth = depth
        super().__init__(f"Invalidation depth {depth} exceeded at quest {quest_id}")


class ConsistencySweep:
    """
    Recursive invalidation over one ModeProgress snapshot.

    The recursion keeps no visited set; a depth guard stops a cyclic
    catalog from recursing forever.
    """

    def __init__(self, catalog: "Catalog", max_depth: int = DEFAULT_MAX_DEPTH):
        self._catalog = catalog
        self._max_depth = max_depth

    # -------------------------------------------------------------------------
    # Recursive invalidation
    # -------------------------------------------------------------------------

    def invalidate_recursive(
        self,
        snapshot: ModeProgress,
        quest_id: str,
        child_only: bool = False,
        event: Optional[InvalidationEvent] = None,
    ) -> ProgressDelta:
        """
        Invalidate a quest, its objectives and every transitive dependent.

        Args:
            snapshot: Progress the delta will be applied to
            quest_id: Quest to start from
            child_only: Leave the quest itself alone, only invalidate dependents
            event: Optional audit record to fill in
        """
        delta = ProgressDelta()
        try:
            self._invalidate(snapshot, quest_id, child_only, delta, event, depth=0)
        except InvalidationDepthExceeded as e:
            logger.error(f"Invalidation from {quest_id} stopped: {e}")
        return delta

    def _invalidate(
        self,
        snapshot: ModeProgress,
        quest_id: str,
        child_only: bool,
        delta: ProgressDelta,
        event: Optional[InvalidationEvent],
        depth: int,
    ) -> None:
        if depth > self._max_depth:
            raise InvalidationDepthExceeded(quest_id, depth)

        quest = self._catalog.get(quest_id)
        if quest is None:
            return

        if not child_only:
            delta.set_quest(quest_id, invalid=True, complete=False)
            if event is not None and quest_id not in event.invalidated_quests:
                event.invalidated_quests.append(quest_id)

            for objective in quest.objectives:
                if snapshot.objective(objective.id) is None and objective.id not in delta.objectives:
                    delta.set_objective(objective.id, invalid=True, complete=False, count=0)
                else:
                    delta.set_objective(objective.id, invalid=True, complete=False)
                if event is not None and objective.id not in event.invalidated_objectives:
                    event.invalidated_objectives.append(objective.id)

        for dependent, requirement in self._catalog.dependents_of(quest_id):
            if propagates_invalidation(requirement):
                self._invalidate(snapshot, dependent.id, False, delta, event, depth + 1)

    # -------------------------------------------------------------------------
    # Sweep
    # -------------------------------------------------------------------------

    def sweep(
        self,
        snapshot: ModeProgress,
        faction: Optional[str] = None,
        player_id: Optional[str] = None,
    ) -> List[TransitionResult]:
        """
        Run the three consistency rules in order.

        Each rule sees the output of the previous one. Returns one result per
        rule that changed anything.
        """
        faction = faction or snapshot.pmc_faction
        results: List[TransitionResult] = []
        current = snapshot

        rules = (
            (InvalidationReason.FACTION_MISMATCH, self._faction_targets),
            (InvalidationReason.CONTRADICTED_FAILURE, self._contradiction_targets),
            (InvalidationReason.ALTERNATIVE_CHOSEN, self._alternative_targets),
        )

        for reason, find_targets in rules:
            event = InvalidationEvent(reason=reason, player_id=player_id)
            delta = ProgressDelta()
            for quest_id, child_only in find_targets(current, faction):
                delta.merge(self.invalidate_recursive(current, quest_id, child_only, event))
            if delta.is_empty:
                continue
            current = delta.apply(current)
            results.append(TransitionResult(delta, event))
            logger.info(
                f"Sweep {reason.value} for {player_id or 'player'}: "
                f"{len(event.invalidated_quests)} quests invalidated"
            )

        return results

    def sweep_snapshot(
        self,
        snapshot: ModeProgress,
        faction: Optional[str] = None,
        player_id: Optional[str] = None,
    ) -> ModeProgress:
        """Convenience: the snapshot after every rule has been applied."""
        current = snapshot
        for result in self.sweep(snapshot, faction, player_id):
            current = result.apply(current)
        return current

    def _faction_targets(self, snapshot: ModeProgress, faction: str):
        for quest in self._catalog.quest_list():
            if quest.faction_restricted and quest.faction_name != faction:
                yield quest.id, False

    def _contradiction_targets(self, snapshot: ModeProgress, faction: str):
        for quest in self._catalog.quest_list():
            if any(contradicted_failure(req, snapshot) for req in quest.requirements):
                yield quest.id, False

    def _alternative_targets(self, snapshot: ModeProgress, faction: str):
        for quest in self._catalog.quest_list():
            if not quest.alternatives:
                continue
            chosen = any(
                (snapshot.quest(alt_id) is not None and snapshot.quest(alt_id).completed_successfully)
                for alt_id in quest.alternatives
            )
            if chosen:
                # The quest's own record is owned by the alternative pass
                yield quest.id, True
