"""
questline Requirement Rules

Pure predicates over a Requirement and stored progress. Shared by the
invalidation engine, the consistency sweep and the availability resolver;
no storage access.
"""

from __future__ import annotations
from typing import Optional

from questline.catalog.models import Requirement
from questline.core.enums import QuestState
from questline.progress.schemas import ModeProgress, QuestCompletion


def expects_complete(requirement: Requirement) -> bool:
    """An empty status set means the prerequisite must be complete."""
    return requirement.requires_complete or not requirement.statuses


def satisfied_by_transition(requirement: Requirement, new_state: QuestState) -> bool:
    """
    Is a requirement on the quest that just changed satisfied by its new state?

    "active" is satisfied both by uncompleting (the quest is back in play)
    and by completing (it was necessarily active first).
    """
    if expects_complete(requirement) and new_state == QuestState.COMPLETED:
        return True
    if requirement.requires_failed and new_state == QuestState.FAILED:
        return True
    if requirement.requires_active and new_state in (QuestState.UNCOMPLETED, QuestState.COMPLETED):
        return True
    return False


def satisfied_by_outcome(requirement: Requirement, record: Optional[QuestCompletion]) -> bool:
    """
    The complete and failed handlers against a stored record.

    A failed quest is stored complete, so "complete" needs a success.
    """
    if record is None:
        return False
    if expects_complete(requirement) and record.completed_successfully:
        return True
    if requirement.requires_failed and record.failed:
        return True
    return False


def satisfied_by_record(requirement: Requirement, record: Optional[QuestCompletion]) -> bool:
    """Is a requirement satisfied by the prerequisite's stored record?"""
    if satisfied_by_outcome(requirement, record):
        return True
    if requirement.requires_active and record is not None:
        return not record.complete or record.completed_successfully
    return False


def propagates_invalidation(requirement: Requirement) -> bool:
    """Dependents reached through complete/active requirements inherit invalidity."""
    return expects_complete(requirement) or requirement.requires_active


def contradicted_failure(requirement: Requirement, progress: ModeProgress) -> bool:
    """A failed-only requirement whose prerequisite is stored as a success."""
    if not requirement.failed_only or not requirement.quest_id:
        return False
    record = progress.quest(requirement.quest_id)
    return bool(record and record.completed_successfully)
