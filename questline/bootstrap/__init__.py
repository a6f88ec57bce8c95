"""
bootstrap/ - Configuration, logging and application lifecycle

The application builder lives in bootstrap.app and is imported from there
directly; domain modules import bootstrap.config for their settings.
"""

from .config import (
    QuestlineConfig,
    EngineConfig,
    ViewConfig,
    APIConfig,
    StorageConfig,
    LoggingConfig,
    load_config,
    get_config,
)

from .entrypoints import (
    cli_main,
    api_main,
    setup_logging,
)


__all__ = [
    # Config
    "QuestlineConfig",
    "EngineConfig",
    "ViewConfig",
    "APIConfig",
    "StorageConfig",
    "LoggingConfig",
    "load_config",
    "get_config",
    # Entry Points
    "cli_main",
    "api_main",
    "setup_logging",
]
