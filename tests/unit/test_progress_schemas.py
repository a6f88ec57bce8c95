"""
Unit tests for progress/schemas.py and progress/modes.py

Tests record normalization, the mode-split/legacy union and migration.
"""

import pytest

from conftest import progress_doc, split_doc

from questline.core.enums import GameMode
from questline.progress import (
    DELETE,
    LegacyDocument,
    ModeProgress,
    ModeSplitDocument,
    QuestCompletion,
    extract_mode_data,
    is_mode_split,
    migrate_document,
    parse_document,
    select_mode,
)


class TestQuestCompletion:
    """Test QuestCompletion records."""

    def test_invalid_forces_not_complete(self):
        """Test a stored invalid+complete record is read as not complete."""
        record = QuestCompletion.from_dict({"complete": True, "invalid": True})
        assert record.invalid
        assert not record.complete

    def test_with_updates_keeps_invariant(self):
        """Test merging invalid into a complete record clears complete."""
        record = QuestCompletion(complete=True, timestamp=5)
        updated = record.with_updates({"invalid": True})
        assert updated.invalid
        assert not updated.complete
        assert record.complete

    def test_delete_resets_field(self):
        """Test the DELETE sentinel removes the timestamp."""
        record = QuestCompletion(complete=True, timestamp=5)
        updated = record.with_updates({"complete": False, "timestamp": DELETE})
        assert updated.timestamp is None
        assert "timestamp" not in updated.to_dict()

    def test_unknown_update_fields_ignored(self):
        """Test unknown fields in an update are dropped."""
        record = QuestCompletion().with_updates({"bogus": 1, "failed": True})
        assert record.failed

    def test_non_boolean_flags_read_false(self):
        """Test truthy non-bool values do not count as complete."""
        record = QuestCompletion.from_dict({"complete": "yes", "timestamp": "soon"})
        assert not record.complete
        assert record.timestamp is None

    def test_active_and_success(self):
        """Test the derived status properties."""
        assert QuestCompletion().is_active
        assert QuestCompletion(complete=True).completed_successfully
        assert not QuestCompletion(complete=True, failed=True).completed_successfully


class TestModeProgress:
    """Test ModeProgress parsing."""

    def test_defaults(self):
        """Test an empty mapping gives default scalars."""
        progress = ModeProgress.from_dict({})
        assert progress.level == 1
        assert progress.pmc_faction == "USEC"
        assert progress.quest_completions == {}

    def test_alternate_collection_spelling(self):
        """Test questCompletions is read when taskCompletions is absent."""
        progress = ModeProgress.from_dict({"questCompletions": {"a": {"complete": True}}})
        assert progress.is_quest_complete("a")
        assert "a" in progress.to_dict()["taskCompletions"]

    def test_string_game_edition(self):
        """Test a numeric string edition is parsed."""
        assert ModeProgress.from_dict({"gameEdition": "4"}).game_edition == 4
        assert ModeProgress.from_dict({"gameEdition": "eod"}).game_edition is None

    def test_copy_is_independent(self):
        """Test copy does not share collections."""
        progress = ModeProgress.from_dict(progress_doc({"a": {"complete": True}}))
        clone = progress.copy()
        clone.quest_completions["b"] = QuestCompletion(complete=True)
        assert "b" not in progress.quest_completions


class TestDocuments:
    """Test the document union and migration."""

    def test_mode_split_detection(self):
        """Test a document needs both a current mode and a mode key."""
        assert is_mode_split(split_doc())
        assert not is_mode_split(progress_doc())
        assert not is_mode_split({"currentGameMode": "pvp", "level": 3})

    def test_parse_legacy(self):
        """Test a flat document parses as legacy."""
        document = parse_document(progress_doc({"a": {"complete": True}}, level=12))
        assert isinstance(document, LegacyDocument)
        assert document.progress.level == 12
        assert document.declared_mode is None

    def test_migrate_legacy_into_pvp(self):
        """Test legacy data lands in pvp with pve empty."""
        migrated = migrate_document(progress_doc({"a": {"complete": True}}, level=10))
        assert isinstance(migrated, ModeSplitDocument)
        assert migrated.current_mode == GameMode.PVP
        assert migrated.pvp.is_quest_complete("a")
        assert migrated.pvp.level == 10
        assert migrated.pve.quest_completions == {}

    def test_migrate_legacy_declared_mode(self):
        """Test legacy data with a declared mode migrates into that mode."""
        raw = progress_doc({"a": {"complete": True}})
        raw["currentGameMode"] = "pve"
        migrated = migrate_document(raw)
        assert migrated.current_mode == GameMode.PVE
        assert migrated.pve.is_quest_complete("a")
        assert not migrated.pvp.is_quest_complete("a")

    def test_migrate_is_identity_on_split(self):
        """Test migrating a mode-split document keeps both modes."""
        raw = split_doc(pve=progress_doc({"x": {"complete": True}}), current="pve")
        migrated = migrate_document(raw)
        assert migrated.mode().is_quest_complete("x")
        assert migrated.to_dict()["currentGameMode"] == "pve"

    def test_with_mode_leaves_other_mode(self):
        """Test with_mode replaces only the selected mode."""
        document = migrate_document(split_doc())
        updated = document.with_mode(GameMode.PVE, ModeProgress(level=40))
        assert updated.pve.level == 40
        assert updated.pvp is document.pvp
        assert document.pve.level == 15


class TestModeSelection:
    """Test extract_mode_data and select_mode."""

    def test_extract_current_mode(self):
        """Test the current mode is used when none is requested."""
        raw = split_doc(pve=progress_doc(level=33), current="pve")
        assert extract_mode_data(raw)["level"] == 33

    def test_extract_requested_mode_missing(self):
        """Test a requested mode absent from a split document gives None."""
        raw = {"currentGameMode": "pvp", "pvp": progress_doc()}
        assert extract_mode_data(raw, "pve") is None

    def test_extract_legacy_with_declared_mode(self):
        """Test the declared mode key is stripped from legacy data."""
        raw = progress_doc(level=7)
        raw["currentGameMode"] = "pvp"
        data = extract_mode_data(raw)
        assert "currentGameMode" not in data
        assert data["level"] == 7

    def test_extract_empty(self):
        """Test no document gives None."""
        assert extract_mode_data(None) is None
        assert extract_mode_data({}) is None

    def test_select_mode(self):
        """Test select_mode migrates and picks."""
        raw = split_doc(pvp=progress_doc(level=2), pve=progress_doc(level=9))
        assert select_mode(raw).level == 2
        assert select_mode(raw, GameMode.PVE).level == 9
        assert select_mode(raw, "pve").level == 9

    def test_select_mode_rejects_unknown(self):
        """Test an unknown requested mode raises."""
        with pytest.raises(ValueError):
            select_mode(split_doc(), "arena")
