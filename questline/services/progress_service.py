"""
services/progress_service.py - Progress Service

Entry point for every progress write. Requests are validated first, then
reduced by the invalidation engine inside one document transaction, and
the resulting events are recorded once the commit succeeds.
"""

from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
import logging

from questline.availability import TeamAggregator
from questline.bootstrap.config import EngineConfig
from questline.catalog import Catalog
from questline.core.constants import DEFAULT_FACTION, DEFAULT_GAME_EDITION, DISPLAY_NAME_LENGTH
from questline.core.enums import GameMode, InvalidationReason, QuestState
from questline.dependencies import (
    ConsistencySweep,
    InvalidationEngine,
    InvalidationEvent,
    InvalidationLog,
    ProgressDelta,
    epoch_millis,
)
from questline.errors import ErrorCode, ProgressDocumentNotFound, ValidationFailed
from questline.progress import format_progress
from questline.progress.schemas import DELETE, ModeProgress, ModeSplitDocument, is_mode_split, migrate_document
from questline.store import ProgressStore, VersionedDocument
from questline.transactions import DocumentTransactionManager

from .validation import (
    validate_id,
    validate_level,
    validate_multi_update,
    validate_objective_update,
    validate_state,
)

logger = logging.getLogger(__name__)

ModeArg = Optional[Union[GameMode, str]]


def parse_mode(mode: ModeArg) -> Optional[GameMode]:
    if mode is None or isinstance(mode, GameMode):
        return mode
    try:
        return GameMode(str(mode).lower())
    except ValueError:
        raise ValidationFailed(
            "Game mode must be 'pvp' or 'pve'", field_name="gameMode", value=mode, code=ErrorCode.VAL_FAILED,
        )


def write_mode(
    raw: Mapping[str, Any],
    document: ModeSplitDocument,
    mode: GameMode,
    progress: ModeProgress,
) -> Dict[str, Any]:
    """
    Store progress as the given mode of the document.

    Legacy documents are migrated on their first write; keys the schema
    does not model are kept on mode-split documents.
    """
    updated = document.with_mode(mode, progress).to_dict()
    if not is_mode_split(raw):
        return updated
    merged = dict(raw)
    merged.update(updated)
    return merged


class ProgressService:
    """
    Validated, transactional progress updates for one catalog.

    Usage:
        service = ProgressService(catalog, store, DocumentTransactionManager(store))
        service.ensure_document("player-1")
        event = service.update_single_quest("player-1", "quest-a", "completed")
    """

    def __init__(
        self,
        catalog: Catalog,
        store: ProgressStore,
        transactions: DocumentTransactionManager,
        config: Optional[EngineConfig] = None,
        log: Optional[InvalidationLog] = None,
        clock=None,
    ):
        self.config = config or EngineConfig()
        self.catalog = catalog
        self.store = store
        self.transactions = transactions
        self.log = log or InvalidationLog(self.config.history_size)
        self._clock = clock or epoch_millis
        self.engine = InvalidationEngine(catalog, fail_open=self.config.fail_open, clock=self._clock)
        self.sweeper = ConsistencySweep(catalog, max_depth=self.config.max_invalidation_depth)

    # =========================================================================
    # Documents
    # =========================================================================

    def get_document(self, player_id: str) -> VersionedDocument:
        return self.store.get(player_id)

    def ensure_document(
        self,
        player_id: str,
        display_name: Optional[str] = None,
        game_edition: int = DEFAULT_GAME_EDITION,
    ) -> VersionedDocument:
        """Create an empty mode-split document unless one already exists."""
        player_id = validate_id(player_id, "playerId")
        if self.store.exists(player_id):
            return self.store.get(player_id)

        document = ModeSplitDocument(
            current_mode=GameMode.PVP,
            display_name=display_name or player_id[:DISPLAY_NAME_LENGTH],
            game_edition=game_edition,
        )
        logger.info(f"Creating progress document for {player_id}")
        return self.store.create(player_id, document.to_dict())

    def get_progress_report(self, player_id: str, mode: ModeArg = None) -> Dict[str, Any]:
        game_mode = parse_mode(mode)
        stored = self.store.get(player_id)
        return format_progress(stored.data, player_id, self.catalog, game_mode)

    def get_snapshot(self, player_id: str, mode: ModeArg = None) -> ModeProgress:
        game_mode = parse_mode(mode)
        document = migrate_document(self.store.get(player_id).data)
        return document.mode(game_mode)

    # =========================================================================
    # Quest transitions
    # =========================================================================

    def update_single_quest(
        self,
        player_id: str,
        quest_id: str,
        state: Union[QuestState, str],
        mode: ModeArg = None,
    ) -> InvalidationEvent:
        new_state = validate_state(state)
        quest_id = validate_id(quest_id, "taskId")
        game_mode = parse_mode(mode)

        if self.catalog.get(quest_id) is None:
            # Unknown quests are a no-op; nothing is committed
            snapshot = self.get_snapshot(player_id, game_mode)
            event = self.engine.apply_quest_state(snapshot, quest_id, new_state, player_id=player_id).event
            logger.info(f"Ignoring transition on unknown quest {quest_id} for player {player_id}")
            return event

        def mutate(raw: Dict[str, Any]):
            document = migrate_document(raw)
            selected = game_mode or document.current_mode
            snapshot = document.mode(selected)
            result = self.engine.apply_quest_state(snapshot, quest_id, new_state, player_id=player_id)
            return write_mode(raw, document, selected, result.apply(snapshot)), result.event

        try:
            _, event = self.transactions.run(
                player_id, mutate, description=f"quest {quest_id} -> {new_state.value}",
            )
        except Exception as e:
            logger.error(
                f"Failed to update quest {quest_id} to {new_state.value} for player {player_id}: {e}"
            )
            raise

        self.log.record(event)
        return event

    def update_multiple_quests(
        self,
        player_id: str,
        updates: Any,
        mode: ModeArg = None,
    ) -> List[InvalidationEvent]:
        """Validate the whole batch, then apply each quest in its own transaction."""
        transitions = validate_multi_update(updates)
        game_mode = parse_mode(mode)
        if not self.store.exists(player_id):
            raise ProgressDocumentNotFound(player_id)

        events = []
        for transition in transitions:
            events.append(
                self.update_single_quest(player_id, transition.quest_id, transition.state, game_mode)
            )
        logger.info(f"Applied {len(events)} quest updates for {player_id}")
        return events

    # =========================================================================
    # Objectives and scalars
    # =========================================================================

    def update_objective(
        self,
        player_id: str,
        objective_id: str,
        state: Optional[str] = None,
        count: Optional[int] = None,
        mode: ModeArg = None,
    ) -> Dict[str, Any]:
        objective_id = validate_id(objective_id, "objectiveId")
        objective_state, count = validate_objective_update(state, count)
        game_mode = parse_mode(mode)

        delta = ProgressDelta()
        if objective_state == QuestState.COMPLETED.value:
            delta.set_objective(objective_id, complete=True, timestamp=self._clock())
        elif objective_state == QuestState.UNCOMPLETED.value:
            delta.set_objective(objective_id, complete=False, timestamp=DELETE)
        if count is not None:
            delta.set_objective(objective_id, count=count)

        self._commit_delta(player_id, delta, game_mode, f"objective {objective_id}")
        return {"objectiveId": objective_id, "state": objective_state, "count": count}

    def set_player_level(self, player_id: str, level: Any, mode: ModeArg = None) -> int:
        level = validate_level(level)
        game_mode = parse_mode(mode)

        delta = ProgressDelta()
        delta.set_scalar("level", level)
        self._commit_delta(player_id, delta, game_mode, f"level -> {level}")
        return level

    def _commit_delta(
        self,
        player_id: str,
        delta: ProgressDelta,
        game_mode: Optional[GameMode],
        description: str,
    ) -> VersionedDocument:
        def mutate(raw: Dict[str, Any]):
            document = migrate_document(raw)
            selected = game_mode or document.current_mode
            return write_mode(raw, document, selected, delta.apply(document.mode(selected)))

        try:
            committed, _ = self.transactions.run(player_id, mutate, description=description)
        except Exception as e:
            logger.error(f"Failed to apply {description} for player {player_id}: {e}")
            raise
        return committed

    # =========================================================================
    # Consistency
    # =========================================================================

    def run_consistency_sweep(self, player_id: str, mode: ModeArg = None) -> List[InvalidationEvent]:
        """Persist the sweep's invalidations; returns one event per rule that fired."""
        game_mode = parse_mode(mode)

        def mutate(raw: Dict[str, Any]):
            document = migrate_document(raw)
            selected = game_mode or document.current_mode
            snapshot = document.mode(selected)
            results = self.sweeper.sweep(
                snapshot, faction=snapshot.pmc_faction or DEFAULT_FACTION, player_id=player_id,
            )
            current = snapshot
            for result in results:
                current = result.apply(current)
            return write_mode(raw, document, selected, current), [r.event for r in results]

        try:
            _, events = self.transactions.run(player_id, mutate, description="consistency sweep")
        except Exception as e:
            logger.error(f"Consistency sweep failed for player {player_id}: {e}")
            raise

        for event in events:
            self.log.record(event)
        invalidated = sum(len(e.invalidated_quests) for e in events)
        logger.info(f"Consistency sweep for {player_id}: {invalidated} quests invalidated")
        return events

    # =========================================================================
    # Team
    # =========================================================================

    def team_snapshots(self, member_ids: Sequence[str], mode: ModeArg = None) -> Dict[str, ModeProgress]:
        """Current-mode snapshots for members that have a document."""
        game_mode = parse_mode(mode)
        snapshots: Dict[str, ModeProgress] = {}
        for member_id in member_ids:
            try:
                stored = self.store.get(member_id)
            except ProgressDocumentNotFound:
                logger.warning(f"Team member {member_id} has no progress document, skipping")
                continue
            snapshots[member_id] = migrate_document(stored.data).mode(game_mode)
        return snapshots

    def team_needed_by(self, member_ids: Sequence[str], mode: ModeArg = None) -> Dict[str, List[str]]:
        snapshots = self.team_snapshots(member_ids, mode)
        return TeamAggregator(self.catalog, snapshots).needed_by_map(list(snapshots))

    def record_manual_invalidation(self, player_id: str, quest_id: str) -> InvalidationEvent:
        """Invalidate a quest and its dependents on request."""
        quest_id = validate_id(quest_id, "taskId")

        def mutate(raw: Dict[str, Any]):
            document = migrate_document(raw)
            selected = document.current_mode
            snapshot = document.mode(selected)
            event = InvalidationEvent(
                trigger_quest=quest_id, reason=InvalidationReason.MANUAL, player_id=player_id,
            )
            delta = self.sweeper.invalidate_recursive(snapshot, quest_id, False, event)
            return write_mode(raw, document, selected, delta.apply(snapshot)), event

        _, event = self.transactions.run(player_id, mutate, description=f"invalidate {quest_id}")
        self.log.record(event)
        return event
