"""
Unit tests for availability/team.py

Tests the "needed by" fold across team members.
"""

from conftest import make_catalog, quest, snapshot

from questline.availability import TeamAggregator, TeamView


class TestTeamAggregator:
    """Test TeamAggregator."""

    def test_needed_by_only_unlocked_members(self, chain_catalog):
        """Test B is needed only by the member who finished A."""
        team = TeamAggregator(chain_catalog, {
            "m1": snapshot({"a": {"complete": True}}),
            "m2": snapshot(),
        })
        assert team.needed_by("b") == ["m1"]
        assert team.needed_by("a") == ["m2"]

    def test_needed_by_respects_faction(self):
        """Test a faction quest is needed only by that faction."""
        catalog = make_catalog(quest("x", factionName="BEAR"))
        team = TeamAggregator(catalog, {
            "m1": snapshot(pmcFaction="BEAR"),
            "m2": snapshot(pmcFaction="USEC"),
        })
        assert team.needed_by("x") == ["m1"]

    def test_visible_members_subset(self, chain_catalog):
        """Test hidden members are left out."""
        team = TeamAggregator(chain_catalog, {"m1": snapshot(), "m2": snapshot()})
        assert team.needed_by("a", ["m2", "ghost"]) == ["m2"]

    def test_unknown_quest(self, chain_catalog):
        """Test an unknown quest is needed by nobody."""
        assert TeamAggregator(chain_catalog, {"m1": snapshot()}).needed_by("ghost") == []

    def test_needed_by_map(self, chain_catalog):
        """Test only quests someone needs appear in the map."""
        team = TeamAggregator(chain_catalog, {
            "m1": snapshot({"a": {"complete": True}}),
            "m2": snapshot(),
        })
        assert team.needed_by_map() == {"a": ["m2"], "b": ["m1"], "d": ["m1", "m2"]}

    def test_completion_maps(self, chain_catalog):
        """Test the per-member completion and faction lookups."""
        team = TeamAggregator(chain_catalog, {
            "m1": snapshot({"a": {"complete": True}}, {"a-obj": {"complete": True}}),
            "m2": snapshot(pmcFaction="BEAR"),
        })
        assert team.completion_map()["a"] == {"m1": True, "m2": False}
        assert team.objective_completion_map()["a-obj"] == {"m1": True, "m2": False}
        assert team.faction_map() == {"m1": "USEC", "m2": "BEAR"}


class TestTeamView:
    """Test TeamView defaults."""

    def test_defaults_to_all_members(self, chain_catalog):
        """Test every loaded member is visible by default."""
        view = TeamView(chain_catalog, {"m1": snapshot(), "m2": snapshot()})
        assert view.visible_members == ["m1", "m2"]
        assert view.needed_by()["a"] == ["m1", "m2"]
        assert view.resolver.is_available("a", "m1")
