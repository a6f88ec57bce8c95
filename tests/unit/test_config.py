"""
Unit tests for bootstrap/config.py
"""

import json
import logging

import pytest

from questline.bootstrap import config as config_module
from questline.bootstrap.config import (
    EngineConfig,
    QuestlineConfig,
    ViewConfig,
    get_config,
    load_config,
)


@pytest.fixture(autouse=True)
def reset_global_config(monkeypatch):
    monkeypatch.setattr(config_module, "_config", None)


class TestDefaults:
    """Test default values."""

    def test_engine_defaults(self):
        """Test the engine defaults."""
        config = EngineConfig()
        assert config.fail_open is True
        assert config.max_transaction_attempts == 5
        assert config.max_invalidation_depth == 256

    def test_view_defaults(self):
        """Test the view defaults."""
        config = ViewConfig()
        assert (config.debounce_ms, config.initial_batch, config.batch_increment) == (100, 8, 16)

    def test_to_dict(self):
        """Test serialization includes every section."""
        data = QuestlineConfig().to_dict()
        assert set(data) >= {"engine", "view", "api", "storage", "logging"}
        assert data["version"] == "0.3.0"


class TestEnvironment:
    """Test environment overrides."""

    def test_from_env(self, monkeypatch):
        """Test environment variables override defaults."""
        monkeypatch.setenv("QUESTLINE_ENGINE_FAIL_OPEN", "false")
        monkeypatch.setenv("QUESTLINE_VIEW_DEBOUNCE_MS", "250")
        monkeypatch.setenv("QUESTLINE_API_PORT", "9100")
        monkeypatch.setenv("QUESTLINE_API_CORS_ORIGINS", "http://a,http://b")

        config = QuestlineConfig.from_env()
        assert config.engine.fail_open is False
        assert config.view.debounce_ms == 250
        assert config.api.port == 9100
        assert config.api.cors_origins == ["http://a", "http://b"]


class TestFile:
    """Test JSON file loading."""

    def test_from_file(self, tmp_path):
        """Test file values override sections."""
        path = tmp_path / "questline.json"
        path.write_text(json.dumps({
            "environment": "test",
            "engine": {"fail_open": False, "max_transaction_attempts": 2},
            "storage": {"catalog_file": "catalog.json"},
            "settings": {"region": "eu"},
        }))

        config = QuestlineConfig.from_file(str(path))
        assert config.environment == "test"
        assert config.engine.fail_open is False
        assert config.engine.max_transaction_attempts == 2
        assert config.storage.catalog_file == "catalog.json"
        assert config.settings == {"region": "eu"}

    def test_unknown_key_warned(self, tmp_path, caplog):
        """Test unknown section keys are ignored with a warning."""
        path = tmp_path / "questline.json"
        path.write_text(json.dumps({"view": {"page_size": 3}}))

        with caplog.at_level(logging.WARNING):
            config = QuestlineConfig.from_file(str(path))
        assert not hasattr(config.view, "page_size")
        assert any("view.page_size" in r.message for r in caplog.records)

    def test_missing_file_falls_back(self, tmp_path):
        """Test a missing file falls back to environment defaults."""
        config = QuestlineConfig.from_file(str(tmp_path / "absent.json"))
        assert config.engine.max_transaction_attempts == 5

    def test_load_config_sets_global(self, tmp_path):
        """Test load_config makes the loaded config current."""
        path = tmp_path / "questline.json"
        path.write_text(json.dumps({"environment": "staging"}))

        loaded = load_config(str(path))
        assert get_config() is loaded
        assert loaded.environment == "staging"
