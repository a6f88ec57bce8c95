"""
Unit tests for dependencies/sweep.py

Tests recursive invalidation and the three consistency rules.
"""

import logging

import pytest

from conftest import make_catalog, quest, snapshot

from questline.core.enums import InvalidationReason
from questline.dependencies import ConsistencySweep, InvalidationEvent


class TestInvalidateRecursive:
    """Test recursive invalidation."""

    def test_quest_objectives_and_dependents(self, chain_catalog):
        """Test invalidating A reaches B and C with their objectives."""
        sweep = ConsistencySweep(chain_catalog)
        event = InvalidationEvent()
        delta = sweep.invalidate_recursive(snapshot(), "a", event=event)

        assert set(delta.quests) == {"a", "b", "c"}
        assert delta.quests["a"] == {"invalid": True, "complete": False}
        assert event.invalidated_quests == ["a", "b", "c"]
        assert event.invalidated_objectives == ["a-obj", "b-obj", "c-obj"]

    def test_objective_count_only_for_new_records(self, chain_catalog):
        """Test count is reset to 0 only where no objective record exists yet."""
        sweep = ConsistencySweep(chain_catalog)
        before = snapshot(objectives={"a-obj": {"complete": True, "count": 4}})
        after = sweep.invalidate_recursive(before, "a").apply(before)

        assert after.objective("a-obj").count == 4
        assert after.objective("a-obj").invalid
        assert not after.objective("a-obj").complete
        assert after.objective("b-obj").count == 0

    def test_child_only(self, chain_catalog):
        """Test child_only leaves the starting quest alone."""
        delta = ConsistencySweep(chain_catalog).invalidate_recursive(snapshot(), "a", child_only=True)
        assert "a" not in delta.quests
        assert "a-obj" not in delta.objectives
        assert set(delta.quests) == {"b", "c"}

    def test_failed_requirement_does_not_propagate(self):
        """Test dependents through a failed-only requirement are not invalidated."""
        catalog = make_catalog(quest("a"), quest("on-fail", requires=["a"], status=["failed"]))
        delta = ConsistencySweep(catalog).invalidate_recursive(snapshot(), "a")
        assert set(delta.quests) == {"a"}

    def test_unknown_quest(self, chain_catalog):
        """Test an unknown start quest produces an empty delta."""
        assert ConsistencySweep(chain_catalog).invalidate_recursive(snapshot(), "ghost").is_empty

    def test_depth_guard_on_cycle(self, caplog):
        """Test a cyclic catalog stops at the depth guard with a partial delta."""
        catalog = make_catalog(quest("p", requires=["q"]), quest("q", requires=["p"]))
        sweep = ConsistencySweep(catalog, max_depth=10)

        with caplog.at_level(logging.ERROR):
            delta = sweep.invalidate_recursive(snapshot(), "p")

        assert set(delta.quests) == {"p", "q"}
        assert any("depth" in r.message for r in caplog.records)

    def test_invalid_wins_over_complete(self, chain_catalog):
        """Test an invalidated record never reads as complete."""
        before = snapshot({"b": {"complete": True}})
        after = ConsistencySweep(chain_catalog).invalidate_recursive(before, "a").apply(before)
        assert not after.is_quest_complete("b")
        assert after.quest("b").invalid


class TestSweepRules:
    """Test the sweep's rule order and targets."""

    def test_faction_mismatch(self):
        """Test the other faction's quests and their dependents are invalidated."""
        catalog = make_catalog(
            quest("bear", factionName="BEAR"),
            quest("bear-child", requires=["bear"]),
            quest("usec", factionName="USEC"),
        )
        results = ConsistencySweep(catalog).sweep(snapshot(), faction="USEC", player_id="p1")

        assert len(results) == 1
        event = results[0].event
        assert event.reason == InvalidationReason.FACTION_MISMATCH
        assert event.player_id == "p1"
        assert set(event.invalidated_quests) == {"bear", "bear-child"}

    def test_faction_defaults_to_snapshot(self):
        """Test the snapshot's faction is used when none is passed."""
        catalog = make_catalog(quest("usec", factionName="USEC"))
        results = ConsistencySweep(catalog).sweep(snapshot(pmcFaction="BEAR"))
        assert results[0].event.invalidated_quests == ["usec"]

    def test_contradicted_failure(self):
        """Test a quest needing failure of a successful quest is invalidated."""
        catalog = make_catalog(quest("y"), quest("x", requires=["y"], status=["failed"]))
        results = ConsistencySweep(catalog).sweep(snapshot({"y": {"complete": True}}))

        assert [r.event.reason for r in results] == [InvalidationReason.CONTRADICTED_FAILURE]
        assert results[0].event.invalidated_quests == ["x"]

    def test_failed_prerequisite_is_no_contradiction(self):
        """Test a prerequisite stored as failed leaves the quest alone."""
        catalog = make_catalog(quest("y"), quest("x", requires=["y"], status=["failed"]))
        assert ConsistencySweep(catalog).sweep(snapshot({"y": {"complete": True, "failed": True}})) == []

    def test_alternative_chosen(self, alternatives_catalog):
        """Test completing D invalidates C's dependents but not C itself."""
        results = ConsistencySweep(alternatives_catalog).sweep(snapshot({"d": {"complete": True}}))

        assert len(results) == 1
        assert results[0].event.reason == InvalidationReason.ALTERNATIVE_CHOSEN
        assert set(results[0].delta.quests) == {"e"}

    def test_clean_progress(self, chain_catalog):
        """Test consistent progress produces no results."""
        assert ConsistencySweep(chain_catalog).sweep(snapshot({"a": {"complete": True}})) == []

    def test_sweep_snapshot(self):
        """Test sweep_snapshot applies every rule's delta."""
        catalog = make_catalog(quest("bear", factionName="BEAR"))
        swept = ConsistencySweep(catalog).sweep_snapshot(snapshot({"bear": {"complete": True}}))
        assert swept.quest("bear").invalid
        assert not swept.quest("bear").complete
