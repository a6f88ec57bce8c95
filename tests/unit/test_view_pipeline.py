"""
Unit tests for views/pipeline.py

Tests caching, debouncing and publication of the visible quest list.
"""

import logging
import threading

import pytest
from unittest.mock import Mock, patch

from conftest import make_catalog, quest, snapshot

from questline.bootstrap.config import ViewConfig
from questline.progress import QuestCompletion
from questline.views import FilterState, QuestViewPipeline


def _ids(items):
    return [item.id for item in items]


@pytest.fixture
def pipeline(chain_catalog):
    return QuestViewPipeline(
        chain_catalog,
        {"m1": snapshot(), "m2": snapshot({"a": {"complete": True}})},
        config=ViewConfig(debounce_ms=10_000),
    )


class TestCompute:
    """Test synchronous computation."""

    def test_single_member(self, pipeline):
        """Test a member's available list keeps catalog order."""
        assert _ids(pipeline.compute(FilterState(user_view="m1"))) == ["a", "d"]
        assert _ids(pipeline.visible) == ["a", "d"]

    def test_aggregated_is_sorted(self, pipeline):
        """Test the team list is grouped with leaves first and parents before children."""
        visible = pipeline.compute(FilterState())
        assert _ids(visible) == ["d", "a", "b"]
        needed = {item.id: item.needed_by for item in visible}
        assert needed["a"] == ("m1",)
        assert needed["d"] == ("m1", "m2")

    def test_secondary_counts(self, pipeline):
        """Test counts are kept for every bucket."""
        pipeline.compute(FilterState(user_view="m1"))
        assert pipeline.secondary_counts() == {"available": 2, "locked": 2, "completed": 0}

    def test_aggregated_counts(self, pipeline):
        """Test the team view only fills the available bucket."""
        pipeline.compute(FilterState())
        counts = pipeline.secondary_counts()
        assert counts["available"] == 3
        assert counts["locked"] == 0
        assert counts["completed"] == 0

    def test_on_update_called(self, chain_catalog):
        """Test the listener receives the published list."""
        listener = Mock()
        pipeline = QuestViewPipeline(chain_catalog, {"m1": snapshot()}, on_update=listener)
        pipeline.compute(FilterState(user_view="m1"))
        listener.assert_called_once()
        assert _ids(listener.call_args[0][0]) == ["a", "d"]

    def test_error_publishes_empty(self, pipeline, caplog):
        """Test a failure publishes an empty list and clears reloading."""
        with patch.object(pipeline, "_build_entries", side_effect=RuntimeError("boom")):
            with caplog.at_level(logging.ERROR):
                assert pipeline.compute(FilterState(user_view="m1")) == []
        assert not pipeline.reloading
        assert any("boom" in r.message for r in caplog.records)

    def test_map_view_drops_quests_without_maps(self):
        """Test the published list for a selected map holds only quests on it."""
        catalog = make_catalog(quest("on-customs", maps=["customs"]), quest("global"))
        pipeline = QuestViewPipeline(catalog, {"p1": snapshot()}, config=ViewConfig(debounce_ms=10_000))
        filters = FilterState(primary_view="maps", map_view="customs", user_view="p1")
        assert _ids(pipeline.compute(filters)) == ["on-customs"]

    def test_map_task_totals(self, pipeline):
        """Test totals count needed quests with work on each map group."""
        totals = pipeline.map_task_totals(FilterState(user_view="m1"))
        assert totals == {
            "customs": 1,
            "factory-day": 0,
            "factory-night": 0,
            "gz": 1,
            "gz-high": 1,
        }


class TestCache:
    """Test the single-entry cache."""

    def test_same_filters_hit_cache(self, pipeline):
        """Test recomputing with the same filters does not rebuild."""
        with patch.object(pipeline, "_build_entries", wraps=pipeline._build_entries) as build:
            filters = FilterState(user_view="m1")
            pipeline.compute(filters)
            pipeline.compute(filters)
            pipeline.compute(FilterState(user_view="m1", secondary_view="locked"))
        assert build.call_count == 2

    def test_fingerprint_fields(self, pipeline):
        """Test the fingerprint reflects view and toggle changes."""
        base = pipeline.fingerprint(FilterState())
        assert pipeline.fingerprint(FilterState(hide_global_tasks=True)) != base
        assert pipeline.fingerprint(FilterState(map_view="gz")) != base
        assert base.endswith("|a,b,c,d")

    def test_update_documents_invalidates(self, pipeline):
        """Test new progress is picked up after update_documents."""
        filters = FilterState(user_view="m1")
        assert _ids(pipeline.compute(filters)) == ["a", "d"]

        pipeline.update_documents({"m1": snapshot({"a": {"complete": True}})})
        assert _ids(pipeline.compute(filters)) == ["b", "d"]

    def test_documents_are_copied(self, chain_catalog):
        """Test later changes to the caller's snapshot are not seen."""
        progress = snapshot()
        pipeline = QuestViewPipeline(chain_catalog, {"m1": progress})
        progress.quest_completions["a"] = QuestCompletion(complete=True)
        assert _ids(pipeline.compute(FilterState(user_view="m1"))) == ["a", "d"]


class TestDebounce:
    """Test request_update debouncing."""

    def test_latest_request_wins(self, pipeline):
        """Test only the last pending request is computed on flush."""
        with patch.object(pipeline, "compute", wraps=pipeline.compute) as compute:
            pipeline.request_update(FilterState(user_view="m2"))
            pipeline.request_update(FilterState(user_view="m1"))
            assert pipeline.reloading
            assert pipeline.has_pending

            result = pipeline.flush()

        compute.assert_called_once()
        assert _ids(result) == ["a", "d"]
        assert not pipeline.reloading
        assert not pipeline.has_pending

    def test_flush_without_pending(self, pipeline):
        """Test flush with nothing pending returns None."""
        assert pipeline.flush() is None

    def test_timer_fires(self, chain_catalog):
        """Test a pending update runs on its own after the debounce delay."""
        done = threading.Event()
        pipeline = QuestViewPipeline(
            chain_catalog,
            {"m1": snapshot()},
            config=ViewConfig(debounce_ms=10),
            on_update=lambda visible: done.set(),
        )
        pipeline.request_update(FilterState(user_view="m1"))
        assert done.wait(timeout=5)
        assert _ids(pipeline.visible) == ["a", "d"]
        pipeline.dispose()

    def test_dispose(self, pipeline):
        """Test dispose cancels pending work and ignores later requests."""
        pipeline.request_update(FilterState(user_view="m1"))
        pipeline.dispose()
        assert not pipeline.has_pending
        assert not pipeline.reloading

        pipeline.request_update(FilterState(user_view="m1"))
        assert not pipeline.has_pending
        assert pipeline.flush() is None
