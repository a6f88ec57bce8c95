"""
bootstrap/config.py - Application configuration

Loads configuration from JSON files, environment variables, and defaults.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from pathlib import Path
import os
import json
import logging

logger = logging.getLogger("bootstrap.config")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class EngineConfig:
    """Invalidation engine and transaction settings."""

    # Unreadable requirements count as satisfied
    fail_open: bool = True
    max_transaction_attempts: int = 5
    max_invalidation_depth: int = 256
    history_size: int = 1000

    @classmethod
    def from_env(cls) -> "EngineConfig":
        return cls(
            fail_open=_env_bool("QUESTLINE_ENGINE_FAIL_OPEN", "true"),
            max_transaction_attempts=int(os.getenv("QUESTLINE_ENGINE_MAX_ATTEMPTS", "5")),
            max_invalidation_depth=int(os.getenv("QUESTLINE_ENGINE_MAX_DEPTH", "256")),
            history_size=int(os.getenv("QUESTLINE_ENGINE_HISTORY_SIZE", "1000")),
        )


@dataclass
class ViewConfig:
    """Quest list view settings."""

    debounce_ms: int = 100
    initial_batch: int = 8
    batch_increment: int = 16

    @classmethod
    def from_env(cls) -> "ViewConfig":
        return cls(
            debounce_ms=int(os.getenv("QUESTLINE_VIEW_DEBOUNCE_MS", "100")),
            initial_batch=int(os.getenv("QUESTLINE_VIEW_INITIAL_BATCH", "8")),
            batch_increment=int(os.getenv("QUESTLINE_VIEW_BATCH_INCREMENT", "16")),
        )


@dataclass
class APIConfig:
    """API server configuration."""

    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1
    enable_docs: bool = True
    docs_url: str = "/docs"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "APIConfig":
        cors = os.getenv("QUESTLINE_API_CORS_ORIGINS", "*")
        return cls(
            host=os.getenv("QUESTLINE_API_HOST", "0.0.0.0"),
            port=int(os.getenv("QUESTLINE_API_PORT", "8000")),
            workers=int(os.getenv("QUESTLINE_API_WORKERS", "1")),
            enable_docs=_env_bool("QUESTLINE_API_ENABLE_DOCS", "true"),
            docs_url=os.getenv("QUESTLINE_API_DOCS_URL", "/docs"),
            cors_origins=cors.split(",") if cors else ["*"],
        )


@dataclass
class StorageConfig:
    """Catalog and seed data locations."""

    catalog_file: Optional[str] = None
    seed_documents_file: Optional[str] = None
    invalidation_log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "StorageConfig":
        return cls(
            catalog_file=os.getenv("QUESTLINE_CATALOG_FILE"),
            seed_documents_file=os.getenv("QUESTLINE_SEED_DOCUMENTS_FILE"),
            invalidation_log_file=os.getenv("QUESTLINE_INVALIDATION_LOG_FILE"),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv("QUESTLINE_LOG_LEVEL", "INFO"),
            format=os.getenv("QUESTLINE_LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            log_file=os.getenv("QUESTLINE_LOG_FILE"),
            json_logs=_env_bool("QUESTLINE_JSON_LOGS", "false"),
        )


_SECTIONS = ("engine", "view", "api", "storage", "logging")


@dataclass
class QuestlineConfig:
    """Root configuration for questline."""

    environment: str = "development"
    debug: bool = False
    version: str = "0.3.0"

    engine: EngineConfig = field(default_factory=EngineConfig)
    view: ViewConfig = field(default_factory=ViewConfig)
    api: APIConfig = field(default_factory=APIConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    settings: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "QuestlineConfig":
        """Create configuration from environment variables."""
        return cls(
            environment=os.getenv("QUESTLINE_ENVIRONMENT", "development"),
            debug=_env_bool("QUESTLINE_DEBUG", "false"),
            engine=EngineConfig.from_env(),
            view=ViewConfig.from_env(),
            api=APIConfig.from_env(),
            storage=StorageConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_file(cls, filepath: str) -> "QuestlineConfig":
        """Load configuration from JSON file."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        with open(path) as f:
            data = json.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "QuestlineConfig":
        """File values override the environment."""
        config = cls.from_env()

        if "environment" in data:
            config.environment = data["environment"]
        if "debug" in data:
            config.debug = data["debug"]

        for section_name in _SECTIONS:
            section = getattr(config, section_name)
            for key, value in (data.get(section_name) or {}).items():
                if hasattr(section, key):
                    setattr(section, key, value)
                else:
                    logger.warning(f"Unknown config key: {section_name}.{key}")

        if "settings" in data:
            config.settings.update(data["settings"])

        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            "environment": self.environment,
            "debug": self.debug,
            "version": self.version,
            "engine": {
                "fail_open": self.engine.fail_open,
                "max_transaction_attempts": self.engine.max_transaction_attempts,
                "max_invalidation_depth": self.engine.max_invalidation_depth,
                "history_size": self.engine.history_size,
            },
            "view": {
                "debounce_ms": self.view.debounce_ms,
                "initial_batch": self.view.initial_batch,
                "batch_increment": self.view.batch_increment,
            },
            "api": {
                "host": self.api.host,
                "port": self.api.port,
                "workers": self.api.workers,
            },
            "storage": {
                "catalog_file": self.storage.catalog_file,
                "seed_documents_file": self.storage.seed_documents_file,
            },
            "logging": {
                "level": self.logging.level,
                "json_logs": self.logging.json_logs,
            },
        }


# Global config instance
_config: Optional[QuestlineConfig] = None


def load_config(filepath: str = None) -> QuestlineConfig:
    """
    Load configuration from file or environment.

    Args:
        filepath: Optional path to JSON config file

    Returns:
        QuestlineConfig instance
    """
    global _config

    if filepath:
        _config = QuestlineConfig.from_file(filepath)
    else:
        default_paths = [
            "./questline.json",
            "./config/questline.json",
        ]

        for path in default_paths:
            if Path(path).exists():
                logger.info(f"Loading config from: {path}")
                _config = QuestlineConfig.from_file(path)
                return _config

        _config = QuestlineConfig.from_env()

    logger.info(f"Configuration loaded: environment={_config.environment}")
    return _config


def get_config() -> QuestlineConfig:
    """Get current configuration, loading if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config
