"""
bootstrap/app.py - Application builder and lifecycle

Wires the catalog, store, transaction manager and progress service
together. Everything is constructed here and injected; nothing is created
lazily as a module global.
"""

from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
import asyncio
import json
import logging
import time

from questline.catalog import Catalog
from questline.dependencies import InvalidationLog
from questline.services import ProgressService
from questline.store import InMemoryProgressStore, ProgressStore
from questline.transactions import DocumentTransactionManager

from .config import QuestlineConfig, load_config

logger = logging.getLogger("bootstrap.app")


class AppState(Enum):
    """Application lifecycle states."""
    CREATED = "created"
    CONFIGURING = "configuring"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass
class AppContext:
    """Runtime application context."""
    config: QuestlineConfig = None
    catalog: Catalog = None
    store: ProgressStore = None
    transactions: DocumentTransactionManager = None
    progress_service: ProgressService = None
    invalidation_log: InvalidationLog = None
    state: AppState = AppState.CREATED
    start_time: float = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def get_uptime(self) -> float:
        """Get application uptime in seconds."""
        if self.start_time == 0:
            return 0
        return time.time() - self.start_time


def load_catalog_file(path: str) -> Catalog:
    """Read a catalog JSON file ({"tasks": [...], "hideoutStations": [...], ...})."""
    with open(path) as f:
        data = json.load(f)
    catalog = Catalog.from_dict(data.get("data", data))
    logger.info(f"Loaded catalog from {path}: {len(catalog)} quests")
    return catalog


def load_seed_documents(path: str) -> Dict[str, Dict[str, Any]]:
    """Read {player_id: raw document} from a JSON file."""
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Seed documents file must hold an object: {path}")
    return data


class QuestlineApp:
    """
    Main application class.

    Usage:
        app = QuestlineApp(catalog=catalog).build()
        asyncio.run(app.start())
        app.context.progress_service.update_single_quest(...)
    """

    def __init__(
        self,
        config_file: str = None,
        catalog: Optional[Catalog] = None,
        store: Optional[ProgressStore] = None,
        config: Optional[QuestlineConfig] = None,
        configure_logging: bool = False,
    ):
        self._config_file = config_file
        self._context = AppContext(config=config, catalog=catalog, store=store)
        self._configure_logging = configure_logging
        self._startup_hooks: List[Callable] = []
        self._shutdown_hooks: List[Callable] = []
        self._initialized = False

    @property
    def config(self) -> QuestlineConfig:
        return self._context.config

    @property
    def context(self) -> AppContext:
        return self._context

    @property
    def progress_service(self) -> ProgressService:
        return self._context.progress_service

    def build(self) -> "QuestlineApp":
        """Load configuration and construct every component."""
        self._context.state = AppState.CONFIGURING

        if self._context.config is None:
            self._context.config = load_config(self._config_file)
        config = self._context.config

        if self._configure_logging:
            from .entrypoints import setup_logging
            setup_logging(
                level=config.logging.level,
                log_file=config.logging.log_file,
                json_format=config.logging.json_logs,
            )

        try:
            if self._context.catalog is None:
                if not config.storage.catalog_file:
                    raise ValueError("No catalog provided and storage.catalog_file is not set")
                self._context.catalog = load_catalog_file(config.storage.catalog_file)

            if self._context.store is None:
                seed = None
                if config.storage.seed_documents_file:
                    seed = load_seed_documents(config.storage.seed_documents_file)
                self._context.store = InMemoryProgressStore(seed)
            self._context.store.initialize()
        except Exception as e:
            self._context.state = AppState.FAILED
            logger.error(f"Application build failed: {e}")
            raise

        self._context.transactions = DocumentTransactionManager(
            self._context.store, max_attempts=config.engine.max_transaction_attempts,
        )
        self._context.invalidation_log = InvalidationLog(config.engine.history_size)
        self._context.progress_service = ProgressService(
            self._context.catalog,
            self._context.store,
            self._context.transactions,
            config=config.engine,
            log=self._context.invalidation_log,
        )

        self._initialized = True
        logger.info("Application built successfully")
        return self

    async def start(self) -> None:
        """Start application and run startup hooks."""
        if not self._initialized:
            self.build()

        self._context.state = AppState.STARTING
        self._context.start_time = time.time()

        for hook in self._startup_hooks:
            try:
                if asyncio.iscoroutinefunction(hook):
                    await hook(self._context)
                else:
                    hook(self._context)
            except Exception as e:
                logger.error(f"Startup hook failed: {e}")
                self._context.state = AppState.FAILED
                raise

        self._context.state = AppState.RUNNING
        logger.info("Application started")

    async def stop(self) -> None:
        """Run shutdown hooks, export the invalidation log if configured, dispose the store."""
        self._context.state = AppState.STOPPING

        for hook in reversed(self._shutdown_hooks):
            try:
                if asyncio.iscoroutinefunction(hook):
                    await hook(self._context)
                else:
                    hook(self._context)
            except Exception as e:
                logger.error(f"Shutdown hook failed: {e}")

        log_file = self.config.storage.invalidation_log_file if self.config else None
        if log_file and self._context.invalidation_log is not None:
            count = self._context.invalidation_log.export_to_json(Path(log_file))
            logger.info(f"Exported {count} invalidation events to {log_file}")

        if self._context.store is not None:
            self._context.store.dispose()

        self._context.state = AppState.STOPPED
        logger.info("Application stopped")

    def on_startup(self, hook: Callable) -> "QuestlineApp":
        """Register startup hook."""
        self._startup_hooks.append(hook)
        return self

    def on_shutdown(self, hook: Callable) -> "QuestlineApp":
        """Register shutdown hook."""
        self._shutdown_hooks.append(hook)
        return self

    def run_api(self) -> None:
        """Run API server."""
        import uvicorn

        if not self._initialized:
            self.build()

        from questline.deployment.api import create_fastapi_app

        app = create_fastapi_app(self._context)

        uvicorn.run(
            app,
            host=self.config.api.host,
            port=self.config.api.port,
            workers=self.config.api.workers,
        )


def create_app(config_file: str = None, **kwargs) -> QuestlineApp:
    """Create and build a questline application."""
    return QuestlineApp(config_file, **kwargs).build()
