"""
progress/snapshots.py - Per-member lookup maps

Folds a team's ModeProgress snapshots into the id -> member -> value maps
the read path consumes.
"""

from __future__ import annotations
from typing import Dict, Iterable, Mapping

from questline.catalog.models import Objective, Quest
from questline.core.constants import UNKNOWN_FACTION

from .schemas import ModeProgress

# member id -> that member's progress for the viewed mode
TeamDocuments = Mapping[str, ModeProgress]


def build_completion_map(
    quests: Iterable[Quest],
    documents: TeamDocuments,
) -> Dict[str, Dict[str, bool]]:
    """quest id -> member id -> complete."""
    return {
        quest.id: {
            member_id: progress.is_quest_complete(quest.id)
            for member_id, progress in documents.items()
        }
        for quest in quests
    }


def build_objective_completion_map(
    objectives: Iterable[Objective],
    documents: TeamDocuments,
) -> Dict[str, Dict[str, bool]]:
    """objective id -> member id -> complete."""
    return {
        objective.id: {
            member_id: progress.is_objective_complete(objective.id)
            for member_id, progress in documents.items()
        }
        for objective in objectives
    }


def build_faction_map(documents: TeamDocuments) -> Dict[str, str]:
    return {
        member_id: progress.pmc_faction or UNKNOWN_FACTION
        for member_id, progress in documents.items()
    }


def build_trader_level_map(documents: TeamDocuments) -> Dict[str, Dict[str, int]]:
    return {member_id: dict(progress.trader_levels) for member_id, progress in documents.items()}


def build_trader_standing_map(documents: TeamDocuments) -> Dict[str, Dict[str, float]]:
    return {
        member_id: dict(progress.trader_standings)
        for member_id, progress in documents.items()
    }
