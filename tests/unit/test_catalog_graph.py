"""
Unit tests for catalog/models.py and catalog/graph.py

Tests catalog parsing and requirement graph linking.
"""

import logging
import pytest

from conftest import make_catalog, quest

from questline.catalog import (
    Catalog,
    CatalogError,
    Quest,
    Requirement,
    UnknownQuestError,
    normalize_statuses,
)
from questline.core.enums import RequirementStatus


class TestRequirementParsing:
    """Test requirement status normalization."""

    def test_accept_collapses_to_active(self):
        """Test accept/accepted statuses become ACTIVE."""
        assert normalize_statuses(["accept"]) == frozenset({RequirementStatus.ACTIVE})
        assert normalize_statuses(["Accepted", "complete"]) == frozenset(
            {RequirementStatus.ACTIVE, RequirementStatus.COMPLETE}
        )

    def test_unknown_statuses_dropped(self):
        """Test unknown strings and non-lists are ignored."""
        assert normalize_statuses(["bogus", 3]) == frozenset()
        assert normalize_statuses("complete") == frozenset()

    def test_requirement_from_quest_key(self):
        """Test requirement accepts both task and quest references."""
        req = Requirement.from_dict({"quest": {"id": "q1"}, "status": ["failed"]})
        assert req.quest_id == "q1"
        assert req.failed_only
        assert not req.requires_complete


class TestQuestParsing:
    """Test Quest.from_dict."""

    def test_quest_without_id_rejected(self):
        """Test a quest with no id raises CatalogError."""
        with pytest.raises(CatalogError):
            Quest.from_dict({"name": "nameless"})

    def test_fail_rewards_become_alternatives(self):
        """Test finishRewards that fail another quest are alternatives."""
        parsed = Quest.from_dict(quest(
            "c",
            alternatives=[{"id": "d"}],
            finishRewards=[
                {"__typename": "QuestStatusReward", "status": "Fail", "quest": {"id": "z"}},
                {"__typename": "QuestStatusReward", "status": "Success", "quest": {"id": "y"}},
                {"__typename": "ItemReward", "status": "Fail", "quest": {"id": "x"}},
            ],
        ))
        assert parsed.alternatives == ("d", "z")

    def test_objective_locations_collected(self):
        """Test objective map ids come from maps, location and zones."""
        parsed = Quest.from_dict(quest("a", objectives=[{
            "id": "a-obj",
            "maps": [{"id": "customs"}],
            "location": {"id": "woods"},
            "zones": [{"map": {"id": "customs"}}, {"map": {"id": "shoreline"}}],
        }]))
        assert parsed.objectives[0].location_ids == ("customs", "woods", "shoreline")
        assert parsed.location_ids() == ["customs", "woods", "shoreline"]

    def test_faction_restriction(self):
        """Test Any faction is unrestricted."""
        bear = Quest.from_dict(quest("b", factionName="BEAR"))
        anyone = Quest.from_dict(quest("a", factionName="Any"))
        assert bear.faction_restricted
        assert not bear.allows_faction("USEC")
        assert bear.allows_faction("BEAR")
        assert anyone.allows_faction("USEC")


class TestQuestGraph:
    """Test requirement graph linking."""

    def test_chain_links(self, chain_catalog):
        """Test parents, children and transitive links on a chain."""
        a = chain_catalog.require("a")
        b = chain_catalog.require("b")
        c = chain_catalog.require("c")

        assert b.parents == ("a",)
        assert a.children == ("b",)
        assert a.successors == ("b", "c")
        assert c.predecessors == ("a", "b")
        assert chain_catalog.require("d").successors == ()

    def test_active_requirement_links_grandparent(self):
        """Test an active requirement links the required quest's parents instead."""
        catalog = make_catalog(
            quest("p"),
            quest("a", requires=["p"]),
            quest("x", requires=["a"], status=["active"]),
        )
        x = catalog.require("x")
        assert x.parents == ("p",)
        assert "a" not in x.parents

    def test_dependents_of(self, chain_catalog):
        """Test dependents carry the requirement that links them."""
        dependents = chain_catalog.dependents_of("a")
        assert [q.id for q, _ in dependents] == ["b"]
        assert dependents[0][1].requires_complete

    def test_unknown_requirement_warned(self, caplog):
        """Test a requirement on an unknown quest is skipped with a warning."""
        with caplog.at_level(logging.WARNING):
            catalog = make_catalog(quest("a", requires=["ghost"]))
        assert catalog.require("a").parents == ()
        assert any("ghost" in r.message for r in caplog.records)

    def test_cycle_detected(self, caplog):
        """Test cyclic requirements are reported, not fatal."""
        with caplog.at_level(logging.WARNING):
            catalog = make_catalog(
                quest("p", requires=["q"]),
                quest("q", requires=["p"]),
            )
        assert catalog.graph.find_cycles()
        assert any("cycle" in r.message for r in caplog.records)


class TestCatalog:
    """Test Catalog lookups."""

    def test_lenient_and_strict_lookup(self, chain_catalog):
        """Test get returns None and require raises for unknown ids."""
        assert chain_catalog.get("nope") is None
        with pytest.raises(UnknownQuestError):
            chain_catalog.require("nope")
        assert "a" in chain_catalog
        assert len(chain_catalog) == 4

    def test_duplicate_quest_keeps_first(self, caplog):
        """Test duplicate quest ids keep the first definition."""
        with caplog.at_level(logging.WARNING):
            catalog = make_catalog(quest("a", maps=["customs"]), quest("a", maps=["gz"]))
        assert len(catalog) == 1
        assert catalog.require("a").location_ids() == ["customs"]

    def test_objectives_indexed(self, chain_catalog):
        """Test objectives are indexed by id with their quest."""
        assert chain_catalog.objectives["b-obj"].quest_id == "b"

    def test_read_only_views(self, chain_catalog):
        """Test the quest mapping cannot be mutated."""
        with pytest.raises(TypeError):
            chain_catalog.quests["z"] = None

    def test_from_dict_rejects_non_mapping(self):
        """Test malformed catalog input raises CatalogError."""
        with pytest.raises(CatalogError):
            Catalog.from_dict([])
