"""
availability/team.py - Team Aggregator

Read-only fold of several members' progress into "who still needs this"
views. No mutation, no retries; rebuild when any member's document or the
visible-member set changes.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from questline.catalog import Catalog
from questline.progress.schemas import ModeProgress
from questline.progress.snapshots import (
    build_completion_map,
    build_faction_map,
    build_objective_completion_map,
)

from .resolver import AvailabilityResolver


class TeamAggregator:
    """Composes resolver output across team members."""

    def __init__(
        self,
        catalog: Catalog,
        documents: Mapping[str, ModeProgress],
        resolver: Optional[AvailabilityResolver] = None,
    ):
        self._catalog = catalog
        self._documents = dict(documents)
        self._resolver = resolver or AvailabilityResolver(catalog, self._documents)

    @property
    def resolver(self) -> AvailabilityResolver:
        return self._resolver

    @property
    def members(self) -> List[str]:
        return list(self._documents)

    def _visible(self, visible_members: Optional[Sequence[str]]) -> List[str]:
        if visible_members is None:
            return self.members
        return [m for m in visible_members if m in self._documents]

    def needed_by(self, quest_id: str, visible_members: Optional[Sequence[str]] = None) -> List[str]:
        """Members with the quest unlocked, not completed and faction-compatible."""
        quest = self._catalog.get(quest_id)
        if quest is None:
            return []
        return [m for m in self._visible(visible_members) if self._resolver.needs(quest, m)]

    def needed_by_map(self, visible_members: Optional[Sequence[str]] = None) -> Dict[str, List[str]]:
        members = self._visible(visible_members)
        result: Dict[str, List[str]] = {}
        for quest in self._catalog.quest_list():
            needing = [m for m in members if self._resolver.needs(quest, m)]
            if needing:
                result[quest.id] = needing
        return result

    def completion_map(self) -> Dict[str, Dict[str, bool]]:
        return build_completion_map(self._catalog.quest_list(), self._documents)

    def objective_completion_map(self) -> Dict[str, Dict[str, bool]]:
        return build_objective_completion_map(self._catalog.objectives.values(), self._documents)

    def faction_map(self) -> Dict[str, str]:
        return build_faction_map(self._documents)


@dataclass
class TeamView:
    """Request-scoped composition of a catalog and several members' progress."""
    catalog: Catalog
    documents: Dict[str, ModeProgress]
    visible_members: List[str] = field(default_factory=list)
    aggregator: Optional[TeamAggregator] = None

    def __post_init__(self):
        if not self.visible_members:
            self.visible_members = list(self.documents)
        if self.aggregator is None:
            self.aggregator = TeamAggregator(self.catalog, self.documents)

    @property
    def resolver(self) -> AvailabilityResolver:
        return self.aggregator.resolver

    def needed_by(self) -> Dict[str, List[str]]:
        return self.aggregator.needed_by_map(self.visible_members)
