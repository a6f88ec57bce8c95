"""
views/pipeline.py - Quest View Pipeline

Filters, classifies and sorts the quest list for one viewer context.
Results are cached per filter fingerprint; updates requested in quick
succession are debounced onto a timer thread.

Usage:
    pipeline = QuestViewPipeline(catalog, {"p1": progress})
    visible = pipeline.compute(FilterState(user_view="p1"))
    pipeline.request_update(FilterState(user_view="all"))
    pipeline.flush()
"""

from __future__ import annotations
from dataclasses import replace
from typing import Callable, Dict, List, Mapping, Optional
import logging
import threading

from questline.availability import AvailabilityResolver
from questline.bootstrap.config import ViewConfig
from questline.catalog import Catalog
from questline.core.constants import ALL_MEMBERS
from questline.core.enums import Classification
from questline.progress.schemas import ModeProgress

from .filters import (
    FilterState,
    FilteredQuest,
    apply_requirement_filters,
    filter_by_primary_view,
    filter_by_secondary_view,
    is_global_quest,
    matches_requirement_filters,
    quest_map_ids,
)
from .maps import map_id_group
from .sorting import SuccessorDepth, sort_visible_quests

logger = logging.getLogger(__name__)

SECONDARY_VIEWS = (
    Classification.AVAILABLE.value,
    Classification.LOCKED.value,
    Classification.COMPLETED.value,
)

ViewEntries = Dict[str, List[FilteredQuest]]
UpdateListener = Callable[[List[FilteredQuest]], None]


def _flag(value: bool) -> str:
    return "1" if value else "0"


class QuestViewPipeline:
    """
    Read-side view computation over a frozen set of member snapshots.

    The cache holds one entry: the per-secondary-view lists for the last
    fingerprint. Any filter change, document update or catalog update
    drops it.
    """

    def __init__(
        self,
        catalog: Catalog,
        documents: Mapping[str, ModeProgress],
        config: Optional[ViewConfig] = None,
        on_update: Optional[UpdateListener] = None,
    ):
        self.config = config or ViewConfig()
        self._catalog = catalog
        self._documents: Dict[str, ModeProgress] = {k: v.copy() for k, v in documents.items()}
        self._on_update = on_update

        self._lock = threading.RLock()
        self._cache_key: Optional[str] = None
        self._cache_entries: Optional[ViewEntries] = None
        self._last_filters: Optional[FilterState] = None
        self._pending: Optional[FilterState] = None
        self._timer: Optional[threading.Timer] = None
        self._reloading = False
        self._disposed = False

        self._visible: List[FilteredQuest] = []
        self._counts: Dict[str, int] = {view: 0 for view in SECONDARY_VIEWS}
        self._depths = SuccessorDepth(catalog.quests)

    # =========================================================================
    # State
    # =========================================================================

    @property
    def reloading(self) -> bool:
        return self._reloading

    @property
    def visible(self) -> List[FilteredQuest]:
        with self._lock:
            return list(self._visible)

    def fingerprint(self, filters: FilterState) -> str:
        parts = [
            filters.primary_view,
            filters.map_view,
            filters.trader_view,
            filters.user_view,
            _flag(filters.hide_global_tasks),
            _flag(filters.hide_non_kappa_tasks),
            _flag(filters.hide_kappa_required_tasks),
            _flag(filters.hide_lightkeeper_required_tasks),
            _flag(filters.show_eod_tasks),
            ",".join(q.id for q in self._catalog.quest_list()),
        ]
        return "|".join(parts)

    def invalidate_cache(self) -> None:
        with self._lock:
            self._cache_key = None
            self._cache_entries = None

    def update_documents(self, documents: Mapping[str, ModeProgress]) -> None:
        with self._lock:
            self._documents = {k: v.copy() for k, v in documents.items()}
            self.invalidate_cache()

    def update_catalog(self, catalog: Catalog) -> None:
        with self._lock:
            self._catalog = catalog
            self._depths = SuccessorDepth(catalog.quests)
            self.invalidate_cache()

    # =========================================================================
    # Computation
    # =========================================================================

    def _resolver(self) -> AvailabilityResolver:
        return AvailabilityResolver(self._catalog, self._documents)

    def _build_entries(self, filters: FilterState, resolver: AvailabilityResolver) -> ViewEntries:
        base = filter_by_primary_view(self._catalog.quest_list(), filters, self._catalog.maps)
        entries: ViewEntries = {}
        for view in SECONDARY_VIEWS:
            if filters.is_aggregated and view != Classification.AVAILABLE.value:
                entries[view] = []
                continue
            scoped = replace(filters, secondary_view=view)
            items = filter_by_secondary_view(base, scoped, resolver)
            entries[view] = apply_requirement_filters(items, scoped, resolver)
        return entries

    def _entries_for(self, filters: FilterState) -> ViewEntries:
        with self._lock:
            if self._last_filters is not None and filters != self._last_filters:
                self.invalidate_cache()
            self._last_filters = filters

            key = self.fingerprint(filters)
            if self._cache_key == key and self._cache_entries is not None:
                return self._cache_entries

            entries = self._build_entries(filters, self._resolver())
            self._cache_key = key
            self._cache_entries = entries
            return entries

    def compute(self, filters: FilterState) -> List[FilteredQuest]:
        """Synchronously filter and sort; publishes the result."""
        with self._lock:
            self._reloading = True
            try:
                entries = self._entries_for(filters)
                self._counts = {view: len(entries.get(view, [])) for view in SECONDARY_VIEWS}
                self._visible = self._sorted(entries.get(filters.secondary_view, []), filters)
            except Exception as e:
                logger.error(f"Error updating visible quests: {e}")
                self.invalidate_cache()
                self._visible = []
            finally:
                self._reloading = False
            visible = list(self._visible)

        if self._on_update is not None:
            self._on_update(visible)
        return visible

    def _sorted(self, items: List[FilteredQuest], filters: FilterState) -> List[FilteredQuest]:
        if filters.user_view != ALL_MEMBERS:
            return list(items)
        by_id = {item.quest.id: item for item in items}
        ordered = sort_visible_quests(
            [item.quest for item in items], filters.user_view, self._catalog.quests, self._depths
        )
        return [by_id[q.id] for q in ordered]

    def secondary_counts(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def map_task_totals(self, filters: FilterState) -> Dict[str, int]:
        """Per map: quests still needed by the viewer with work left on that map."""
        with self._lock:
            resolver = self._resolver()
            maps = self._catalog.maps
            members = resolver.visible(filters.user_view, filters.visible_members)

            candidates = []
            for quest in self._catalog.quest_list():
                if quest.id in filters.disabled_quest_ids:
                    continue
                if filters.hide_global_tasks and is_global_quest(quest):
                    continue
                if not matches_requirement_filters(
                    quest,
                    show_kappa=not filters.hide_kappa_required_tasks,
                    show_lightkeeper=not filters.hide_lightkeeper_required_tasks,
                    show_eod=filters.show_eod_tasks,
                    hide_non_endgame=filters.hide_non_endgame,
                    treat_eod_as_endgame=filters.treat_eod_as_endgame,
                ):
                    continue
                if filters.is_aggregated:
                    unlocked = any(resolver.needs(quest, m) for m in members)
                else:
                    unlocked = resolver.needs(quest, filters.user_view)
                if unlocked:
                    candidates.append(quest)

            totals: Dict[str, int] = {}
            for map_info in maps:
                group = map_id_group(map_info.id, maps)
                count = 0
                for quest in candidates:
                    if not set(group).intersection(quest_map_ids(quest)):
                        continue
                    if resolver.has_incomplete_objective_on_map(
                        quest, group, filters.user_view, filters.visible_members
                    ):
                        count += 1
                totals[map_info.id] = count
            return totals

    # =========================================================================
    # Debounce
    # =========================================================================

    def request_update(self, filters: FilterState) -> None:
        """Schedule compute(filters); a newer request replaces a pending one."""
        with self._lock:
            if self._disposed:
                logger.debug("Update requested on disposed pipeline")
                return
            self.invalidate_cache()
            self._pending = filters
            self._reloading = True
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.config.debounce_ms / 1000.0, self._run_pending)
            self._timer.daemon = True
            self._timer.start()

    def _run_pending(self) -> None:
        with self._lock:
            filters = self._pending
            self._pending = None
            self._timer = None
        if filters is not None:
            self.compute(filters)

    def flush(self) -> Optional[List[FilteredQuest]]:
        """Run a pending update now; returns its result or None."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            filters = self._pending
            self._pending = None
        if filters is None:
            return None
        return self.compute(filters)

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def dispose(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending = None
            self._reloading = False
            self._disposed = True
            self.invalidate_cache()
