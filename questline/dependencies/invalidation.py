"""
questline Invalidation Engine

Authoritative write-side mutator. Given one quest transition it recomputes
the records of dependent and alternative quests.

The engine is a pure reducer: it reads a ModeProgress snapshot and returns
a ProgressDelta. Committing the delta is the caller's job (see
services/progress_service.py), inside one per-document transaction.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union, TYPE_CHECKING
import logging
import time
import uuid

from questline.core.enums import InvalidationReason, QuestState
from questline.progress.schemas import DELETE, ModeProgress

from .delta import ProgressDelta
from .requirements import expects_complete, satisfied_by_record, satisfied_by_transition

if TYPE_CHECKING:
    from questline.catalog import Catalog, Quest

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def epoch_millis() -> int:
    return int(time.time() * 1000)


# =============================================================================
# INVALIDATION EVENT
# =============================================================================

@dataclass
class InvalidationEvent:
    """Record of what one transition or sweep rewrote."""
    event_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # What triggered it
    trigger_quest: Optional[str] = None
    new_state: Optional[QuestState] = None
    reason: InvalidationReason = InvalidationReason.STATE_CHANGED
    player_id: Optional[str] = None

    # What was affected
    unlocked: List[str] = field(default_factory=list)
    relocked: List[str] = field(default_factory=list)
    alternatives: List[str] = field(default_factory=list)
    invalidated_quests: List[str] = field(default_factory=list)
    invalidated_objectives: List[str] = field(default_factory=list)

    # Requirements that errored and were counted as met
    fail_open_requirements: List[str] = field(default_factory=list)

    noop: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for persistence/logging."""
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "trigger_quest": self.trigger_quest,
            "new_state": self.new_state.value if self.new_state else None,
            "reason": self.reason.value,
            "player_id": self.player_id,
            "unlocked": list(self.unlocked),
            "relocked": list(self.relocked),
            "alternatives": list(self.alternatives),
            "invalidated_quests": list(self.invalidated_quests),
            "invalidated_objectives": list(self.invalidated_objectives),
            "fail_open_requirements": list(self.fail_open_requirements),
            "noop": self.noop,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InvalidationEvent":
        """Load from serialized data."""
        return cls(
            event_id=data.get("event_id", str(uuid.uuid4())[:8]),
            timestamp=datetime.fromisoformat(data["timestamp"]) if data.get("timestamp") else datetime.now(timezone.utc),
            trigger_quest=data.get("trigger_quest"),
            new_state=QuestState(data["new_state"]) if data.get("new_state") else None,
            reason=InvalidationReason(data.get("reason", "state_changed")),
            player_id=data.get("player_id"),
            unlocked=data.get("unlocked", []),
            relocked=data.get("relocked", []),
            alternatives=data.get("alternatives", []),
            invalidated_quests=data.get("invalidated_quests", []),
            invalidated_objectives=data.get("invalidated_objectives", []),
            fail_open_requirements=data.get("fail_open_requirements", []),
            noop=data.get("noop", False),
            metadata=data.get("metadata", {}),
        )


@dataclass
class TransitionResult:
    """Delta and audit record for one reducer call."""
    delta: ProgressDelta
    event: InvalidationEvent

    def apply(self, snapshot: ModeProgress) -> ModeProgress:
        return self.delta.apply(snapshot)


@dataclass
class BatchResult:
    """Final snapshot and per-transition events for a batch."""
    snapshot: ModeProgress
    events: List[InvalidationEvent] = field(default_factory=list)


# =============================================================================
# INVALIDATION ENGINE
# =============================================================================

class InvalidationEngine:
    """
    Recomputes dependent and alternative quest records after a transition.

    Usage:
        engine = InvalidationEngine(catalog)
        result = engine.apply_quest_state(snapshot, "quest-a", QuestState.COMPLETED)
        new_snapshot = result.apply(snapshot)
    """

    def __init__(
        self,
        catalog: "Catalog",
        fail_open: bool = True,
        clock: Optional[Clock] = None,
    ):
        self._catalog = catalog
        self._fail_open = fail_open
        self._clock = clock or epoch_millis

    @property
    def catalog(self) -> "Catalog":
        return self._catalog

    # -------------------------------------------------------------------------
    # Single transition
    # -------------------------------------------------------------------------

    def apply_quest_state(
        self,
        snapshot: ModeProgress,
        quest_id: str,
        new_state: Union[QuestState, str],
        player_id: Optional[str] = None,
    ) -> TransitionResult:
        """
        Reduce one transition to a delta.

        Unknown quest ids produce an empty delta. new_state must be a
        QuestState (or its value); anything else raises ValueError.
        """
        state = QuestState(new_state)
        delta = ProgressDelta()
        event = InvalidationEvent(trigger_quest=quest_id, new_state=state, player_id=player_id)

        quest = self._catalog.get(quest_id)
        if quest is None:
            logger.debug(f"Transition on unknown quest {quest_id} ignored")
            event.noop = True
            return TransitionResult(delta, event)

        now = self._clock()
        self._write_changed_quest(delta, quest_id, state, now)
        self._update_dependents(delta, event, snapshot, quest, state, now)
        self._update_alternatives(delta, event, quest, state, now)

        logger.debug(
            f"Quest {quest_id} -> {state.value}: unlocked={event.unlocked} "
            f"relocked={event.relocked} alternatives={event.alternatives}"
        )
        return TransitionResult(delta, event)

    def apply_quest_states(
        self,
        snapshot: ModeProgress,
        transitions: Iterable[Tuple[str, Union[QuestState, str]]],
        player_id: Optional[str] = None,
    ) -> BatchResult:
        """Fold apply_quest_state over transitions; each sees the previous output."""
        current = snapshot
        events: List[InvalidationEvent] = []
        for quest_id, new_state in transitions:
            result = self.apply_quest_state(current, quest_id, new_state, player_id=player_id)
            current = result.apply(current)
            events.append(result.event)
        return BatchResult(snapshot=current, events=events)

    # -------------------------------------------------------------------------
    # Passes
    # -------------------------------------------------------------------------

    @staticmethod
    def _write_changed_quest(
        delta: ProgressDelta,
        quest_id: str,
        state: QuestState,
        now: int,
    ) -> None:
        if state == QuestState.COMPLETED:
            delta.set_quest(quest_id, complete=True, failed=False, timestamp=now)
        elif state == QuestState.FAILED:
            delta.set_quest(quest_id, complete=True, failed=True, timestamp=now)
        else:
            delta.set_quest(quest_id, complete=False, failed=False, timestamp=DELETE)

    def _update_dependents(
        self,
        delta: ProgressDelta,
        event: InvalidationEvent,
        snapshot: ModeProgress,
        quest: "Quest",
        state: QuestState,
        now: int,
    ) -> None:
        for dependent, requirement in self._catalog.dependents_of(quest.id):
            if not expects_complete(requirement):
                continue

            if state == QuestState.COMPLETED:
                if self.requirements_met(snapshot, dependent, quest.id, state, event):
                    delta.set_quest(dependent.id, complete=False, failed=False, timestamp=now)
                    event.unlocked.append(dependent.id)
            else:
                # Locked and available share one stored shape
                delta.set_quest(dependent.id, complete=False, failed=False, timestamp=now)
                event.relocked.append(dependent.id)

    @staticmethod
    def _update_alternatives(
        delta: ProgressDelta,
        event: InvalidationEvent,
        quest: "Quest",
        state: QuestState,
        now: int,
    ) -> None:
        if state == QuestState.FAILED:
            return

        for alternative_id in quest.alternatives:
            if state == QuestState.COMPLETED:
                delta.set_quest(alternative_id, complete=True, failed=True, timestamp=now)
            else:
                delta.set_quest(alternative_id, complete=False, failed=False, timestamp=now)
            event.alternatives.append(alternative_id)

    # -------------------------------------------------------------------------
    # Requirement re-check
    # -------------------------------------------------------------------------

    def requirements_met(
        self,
        snapshot: ModeProgress,
        dependent: "Quest",
        changed_quest_id: str,
        new_state: QuestState,
        event: Optional[InvalidationEvent] = None,
    ) -> bool:
        """
        Check every requirement of dependent against stored progress.

        The changed quest is judged by its new state rather than its stored
        record. A read error on one requirement counts that requirement as
        met when fail_open is set.
        """
        for requirement in dependent.requirements:
            if not requirement.quest_id:
                continue

            try:
                if requirement.quest_id == changed_quest_id:
                    met = satisfied_by_transition(requirement, new_state)
                else:
                    met = satisfied_by_record(requirement, snapshot.quest(requirement.quest_id))
            except Exception as e:
                logger.warning(
                    f"Requirement {requirement.quest_id} of {dependent.id} unreadable while "
                    f"applying {changed_quest_id} -> {new_state.value} "
                    f"(player={event.player_id if event else None}): {e}; "
                    f"{'treating as met' if self._fail_open else 'treating as unmet'}"
                )
                if event is not None:
                    event.fail_open_requirements.append(requirement.quest_id)
                if not self._fail_open:
                    return False
                continue

            if not met:
                return False

        return True
