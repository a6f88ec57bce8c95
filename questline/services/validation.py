"""
services/validation.py - Request validation

Everything here runs before the store is touched; a rejected request
leaves storage unchanged.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from questline.core.enums import QuestState
from questline.errors import ErrorCode, ValidationFailed

MIN_PLAYER_LEVEL = 1
MAX_PLAYER_LEVEL = 79

INVALID_STATE_MESSAGE = "Invalid state provided. Must be 'completed', 'failed', or 'uncompleted'"
EMPTY_BODY_MESSAGE = "Request body must be a non-empty array"
INVALID_UPDATE_MESSAGE = "Each task update must have a valid taskId and state"

_OBJECTIVE_STATES = (QuestState.COMPLETED.value, QuestState.UNCOMPLETED.value)


@dataclass(frozen=True)
class QuestTransition:
    quest_id: str
    state: QuestState

    def as_tuple(self) -> Tuple[str, QuestState]:
        return self.quest_id, self.state


def validate_state(value: Any) -> QuestState:
    if isinstance(value, QuestState):
        return value
    if not isinstance(value, str) or value not in {s.value for s in QuestState}:
        raise ValidationFailed(INVALID_STATE_MESSAGE, field_name="state", value=value, code=ErrorCode.VAL_STATE)
    return QuestState(value)


def validate_id(value: Any, field_name: str = "taskId") -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(
            f"{field_name} is required and must be a non-empty string",
            field_name=field_name,
            value=value,
        )
    return value.strip()


def validate_multi_update(body: Any) -> List[QuestTransition]:
    """Validate a batch body; the whole batch is rejected on any bad entry."""
    if not isinstance(body, list) or not body:
        raise ValidationFailed(EMPTY_BODY_MESSAGE, field_name="body", value=body, code=ErrorCode.VAL_BODY)

    transitions: List[QuestTransition] = []
    for entry in body:
        if not isinstance(entry, dict):
            raise ValidationFailed(INVALID_UPDATE_MESSAGE, field_name="body", value=entry, code=ErrorCode.VAL_BODY)

        quest_id = entry.get("taskId", entry.get("id"))
        state = entry.get("state")
        if not isinstance(quest_id, str) or not quest_id.strip() or state is None:
            raise ValidationFailed(INVALID_UPDATE_MESSAGE, field_name="body", value=entry, code=ErrorCode.VAL_BODY)

        transitions.append(QuestTransition(quest_id=quest_id.strip(), state=validate_state(state)))
    return transitions


def validate_objective_state(value: Any) -> Optional[str]:
    """Objectives accept completed/uncompleted only; None means count-only."""
    if value is None:
        return None
    if isinstance(value, QuestState):
        value = value.value
    if value not in _OBJECTIVE_STATES:
        raise ValidationFailed(
            'State must be "completed" or "uncompleted"',
            field_name="state",
            value=value,
            code=ErrorCode.VAL_STATE,
        )
    return value


def validate_objective_update(state: Any, count: Any) -> Tuple[Optional[str], Optional[int]]:
    if state is None and count is None:
        raise ValidationFailed("Either state or count must be provided", field_name="body")

    validated_state = validate_objective_state(state)
    if count is not None:
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise ValidationFailed("Count must be a non-negative integer", field_name="count", value=count)
    return validated_state, count


def validate_level(value: Any) -> int:
    try:
        level = int(str(value), 10)
    except (TypeError, ValueError):
        level = None
    if level is None or level < MIN_PLAYER_LEVEL or level > MAX_PLAYER_LEVEL:
        raise ValidationFailed(
            f"Level must be a number between {MIN_PLAYER_LEVEL} and {MAX_PLAYER_LEVEL}",
            field_name="level",
            value=value,
        )
    return level
