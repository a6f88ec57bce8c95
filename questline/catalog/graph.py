"""
questline Quest Graph

Directed graph of quest requirements, built on networkx.

Edges run from a required quest to the quest that depends on it. A
requirement that accepts the "active" state does not add an edge of its own;
the required quest's parents are linked to the dependent instead, since an
accepted quest only needs its own prerequisites done.

The Catalog is the immutable, graph-linked view everything else reads.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set, Tuple
import logging

import networkx as nx

from .models import (
    CatalogData,
    CatalogError,
    FacilityStation,
    FacilityTier,
    MapInfo,
    Objective,
    Quest,
    Requirement,
    TraderInfo,
    UnknownQuestError,
    freeze_mapping,
)

__all__ = ["QuestGraph", "Catalog"]

logger = logging.getLogger(__name__)


# =============================================================================
# QUEST GRAPH
# =============================================================================

class QuestGraph:
    """
    Requirement graph over a set of quests.

    Usage:
        graph = QuestGraph(quests)
        graph.parents("quest-b")       # direct prerequisites
        graph.successors("quest-a")    # everything transitively unlocked
    """

    def __init__(self, quests: Tuple[Quest, ...]):
        self._quests: Dict[str, Quest] = {q.id: q for q in quests}
        self._graph = nx.DiGraph()
        self._dependents: Dict[str, List[Tuple[str, Requirement]]] = {}
        self._build()

    @property
    def graph(self) -> "nx.DiGraph":
        """Get the underlying networkx graph."""
        return self._graph

    def _build(self) -> None:
        self._graph.add_nodes_from(self._quests)

        active_links: List[Tuple[str, str]] = []
        for quest in self._quests.values():
            for requirement in quest.requirements:
                required_id = requirement.quest_id
                if not required_id:
                    continue

                self._dependents.setdefault(required_id, []).append((quest.id, requirement))

                if required_id not in self._quests:
                    logger.warning(
                        f"Quest {quest.id} requires unknown quest {required_id}, edge skipped"
                    )
                    continue

                if requirement.requires_active:
                    active_links.append((required_id, quest.id))
                else:
                    self._graph.add_edge(required_id, quest.id)

        # Second pass so parents from non-active edges are all present
        for required_id, dependent_id in active_links:
            for parent_id in list(self._graph.predecessors(required_id)):
                if parent_id != dependent_id:
                    self._graph.add_edge(parent_id, dependent_id)

        cycles = self.find_cycles(limit=1)
        if cycles:
            logger.warning(f"Quest graph contains a cycle: {' -> '.join(cycles[0])}")

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def parents(self, quest_id: str) -> List[str]:
        if quest_id not in self._graph:
            return []
        return list(self._graph.predecessors(quest_id))

    def children(self, quest_id: str) -> List[str]:
        if quest_id not in self._graph:
            return []
        return list(self._graph.successors(quest_id))

    def predecessors(self, quest_id: str) -> Set[str]:
        """All quests transitively required before this one."""
        if quest_id not in self._graph:
            return set()
        return set(nx.ancestors(self._graph, quest_id)) - {quest_id}

    def successors(self, quest_id: str) -> Set[str]:
        """All quests transitively unlocked by this one."""
        if quest_id not in self._graph:
            return set()
        return set(nx.descendants(self._graph, quest_id)) - {quest_id}

    def dependents_of(self, quest_id: str) -> List[Tuple[str, Requirement]]:
        """(dependent quest id, requirement) for every quest requiring quest_id."""
        return list(self._dependents.get(quest_id, []))

    def find_cycles(self, limit: Optional[int] = None) -> List[List[str]]:
        cycles: List[List[str]] = []
        for cycle in nx.simple_cycles(self._graph):
            cycles.append(cycle)
            if limit is not None and len(cycles) >= limit:
                break
        return cycles

    def linked_quests(self) -> Iterator[Quest]:
        """Quests with their graph-derived fields filled in."""
        for quest_id, quest in self._quests.items():
            yield replace(
                quest,
                parents=tuple(self.parents(quest_id)),
                children=tuple(self.children(quest_id)),
                predecessors=tuple(sorted(self.predecessors(quest_id))),
                successors=tuple(sorted(self.successors(quest_id))),
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": list(self._graph.nodes),
            "edges": [list(edge) for edge in self._graph.edges],
        }


# =============================================================================
# CATALOG
# =============================================================================

class Catalog:
    """
    Read-only quest/facility catalog shared by the write and read paths.

    Loaded once per process and never mutated afterwards.
    """

    def __init__(self, data: CatalogData):
        self._graph = QuestGraph(data.quests)

        quests = {quest.id: quest for quest in self._graph.linked_quests()}
        objectives: Dict[str, Objective] = {}
        for quest in quests.values():
            for objective in quest.objectives:
                if objective.id in objectives:
                    logger.warning(
                        f"Objective {objective.id} shared by {objectives[objective.id].quest_id} "
                        f"and {quest.id}"
                    )
                    continue
                objectives[objective.id] = objective

        self._quests: Mapping[str, Quest] = freeze_mapping(quests)
        self._objectives: Mapping[str, Objective] = freeze_mapping(objectives)
        self._stations: Mapping[str, FacilityStation] = freeze_mapping(
            {station.id: station for station in data.stations}
        )
        self._maps: Tuple[MapInfo, ...] = data.maps
        self._traders: Tuple[TraderInfo, ...] = data.traders

        logger.info(
            f"Catalog loaded: {len(self._quests)} quests, {len(self._objectives)} objectives, "
            f"{len(self._stations)} stations"
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Catalog":
        """Build from the external dataset shape (tasks, hideoutStations, maps, traders)."""
        if not isinstance(data, Mapping):
            raise CatalogError("Catalog data must be a mapping")
        return cls(CatalogData.from_dict(data))

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    @property
    def graph(self) -> QuestGraph:
        return self._graph

    @property
    def quests(self) -> Mapping[str, Quest]:
        return self._quests

    @property
    def objectives(self) -> Mapping[str, Objective]:
        return self._objectives

    @property
    def stations(self) -> Mapping[str, FacilityStation]:
        return self._stations

    @property
    def maps(self) -> Tuple[MapInfo, ...]:
        return self._maps

    @property
    def traders(self) -> Tuple[TraderInfo, ...]:
        return self._traders

    def get(self, quest_id: str) -> Optional[Quest]:
        """Lenient lookup, None when absent."""
        return self._quests.get(quest_id)

    def require(self, quest_id: str) -> Quest:
        """Strict lookup."""
        quest = self._quests.get(quest_id)
        if quest is None:
            raise UnknownQuestError(quest_id)
        return quest

    def __contains__(self, quest_id: object) -> bool:
        return quest_id in self._quests

    def __len__(self) -> int:
        return len(self._quests)

    def quest_list(self) -> List[Quest]:
        return list(self._quests.values())

    def dependents_of(self, quest_id: str) -> List[Tuple[Quest, Requirement]]:
        """Catalog quests holding a requirement on quest_id."""
        result = []
        for dependent_id, requirement in self._graph.dependents_of(quest_id):
            dependent = self._quests.get(dependent_id)
            if dependent is not None:
                result.append((dependent, requirement))
        return result

    def station_tiers(self, station_id: str) -> Tuple[FacilityTier, ...]:
        station = self._stations.get(station_id)
        return station.tiers if station else ()

    def trader_name(self, trader_id: Optional[str]) -> Optional[str]:
        for trader in self._traders:
            if trader.id == trader_id:
                return trader.name
        return None
