"""
views/sorting.py - Grouped ordering for the aggregated view

A declared parent sorts before its child; otherwise quests with no
successors come first, then shallower successor chains, then fewer
successors.
"""

from __future__ import annotations
from functools import cmp_to_key
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple
import logging

from questline.catalog import Quest
from questline.core.constants import ALL_MEMBERS

logger = logging.getLogger(__name__)


class SuccessorDepth:
    """
    Longest successor chain per quest, memoized.

    A quest revisited while still on the recursion path closes a cycle:
    every quest on that cycle resolves to depth 0 and the back edge is
    logged once.
    """

    def __init__(self, quests: Mapping[str, Quest]):
        self._quests = quests
        self._memo: Dict[str, int] = {}
        self._cyclic: Set[str] = set()
        self._warned_edges: Set[Tuple[str, str]] = set()

    @property
    def warned_edges(self) -> Set[Tuple[str, str]]:
        return set(self._warned_edges)

    def depth(self, quest_id: str) -> int:
        return self._depth(quest_id, [], set())

    def _depth(self, quest_id: str, path: List[str], on_path: Set[str]) -> int:
        if quest_id not in self._quests:
            return 0
        if quest_id in self._memo:
            return self._memo[quest_id]

        path.append(quest_id)
        on_path.add(quest_id)
        try:
            best = 0
            for successor_id in self._quests[quest_id].successors:
                if successor_id in on_path:
                    self._record_cycle(quest_id, successor_id, path)
                    continue
                best = max(best, self._depth(successor_id, path, on_path))

            if quest_id in self._cyclic:
                result = 0
            else:
                result = 1 + best
            self._memo[quest_id] = result
            return result
        finally:
            path.pop()
            on_path.discard(quest_id)

    def _record_cycle(self, from_id: str, to_id: str, path: List[str]) -> None:
        start = path.index(to_id)
        self._cyclic.update(path[start:])
        edge = (from_id, to_id)
        if edge not in self._warned_edges:
            self._warned_edges.add(edge)
            logger.warning(
                f"Cycle detected in quest successors: {' -> '.join(path[start:] + [to_id])}"
            )


def successor_depth(quest: Quest, quests: Mapping[str, Quest]) -> int:
    """One-off depth computation; prefer SuccessorDepth when sorting."""
    return SuccessorDepth(quests).depth(quest.id)


def _compare_grouped(a: Quest, b: Quest, depths: SuccessorDepth) -> int:
    # Parent before child
    if b.id in a.parents:
        return 1
    if a.id in b.parents:
        return -1

    a_successors = len(a.successors)
    b_successors = len(b.successors)
    if a_successors == 0 and b_successors > 0:
        return -1
    if a_successors > 0 and b_successors == 0:
        return 1

    depth_diff = depths.depth(a.id) - depths.depth(b.id)
    if depth_diff != 0:
        return depth_diff

    return a_successors - b_successors


def sort_visible_quests(
    visible: Sequence[Quest],
    user_view: str,
    quests: Mapping[str, Quest],
    depths: Optional[SuccessorDepth] = None,
) -> List[Quest]:
    """Grouped ordering for the aggregated view; other views keep input order."""
    if user_view != ALL_MEMBERS:
        return list(visible)

    depths = depths or SuccessorDepth(quests)
    return sorted(visible, key=cmp_to_key(lambda a, b: _compare_grouped(a, b, depths)))
