"""
store/memory.py - In-memory progress store
"""

from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional
import copy
import logging
import threading

from questline.errors import (
    ProgressDocumentExists,
    ProgressDocumentNotFound,
    StoreNotInitializedError,
    WriteConflictError,
)

from .base import ProgressStore, VersionedDocument

logger = logging.getLogger(__name__)


class InMemoryProgressStore(ProgressStore):
    """
    Thread-safe dict-backed store.

    Documents are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self, seed: Optional[Mapping[str, Dict[str, Any]]] = None):
        self._lock = threading.RLock()
        self._documents: Dict[str, VersionedDocument] = {}
        self._seed = dict(seed or {})
        self._initialized = False

    def initialize(self) -> None:
        with self._lock:
            if self._initialized:
                return
            for player_id, data in self._seed.items():
                self._documents[player_id] = VersionedDocument(
                    player_id=player_id, version=1, data=copy.deepcopy(data),
                )
            self._initialized = True
            logger.info(f"Progress store initialized with {len(self._documents)} documents")

    def dispose(self) -> None:
        with self._lock:
            self._documents.clear()
            self._initialized = False
            logger.info("Progress store disposed")

    @property
    def initialized(self) -> bool:
        return self._initialized

    def _check(self) -> None:
        if not self._initialized:
            raise StoreNotInitializedError("Progress store used before initialize() or after dispose()")

    def get(self, player_id: str) -> VersionedDocument:
        with self._lock:
            self._check()
            stored = self._documents.get(player_id)
            if stored is None:
                raise ProgressDocumentNotFound(player_id)
            return copy.deepcopy(stored)

    def exists(self, player_id: str) -> bool:
        with self._lock:
            self._check()
            return player_id in self._documents

    def create(self, player_id: str, document: Dict[str, Any]) -> VersionedDocument:
        with self._lock:
            self._check()
            if player_id in self._documents:
                raise ProgressDocumentExists(player_id)
            stored = VersionedDocument(player_id=player_id, version=1, data=copy.deepcopy(document))
            self._documents[player_id] = stored
            logger.debug(f"Created progress document for {player_id}")
            return copy.deepcopy(stored)

    def compare_and_set(
        self,
        player_id: str,
        expected_version: int,
        document: Dict[str, Any],
    ) -> VersionedDocument:
        with self._lock:
            self._check()
            stored = self._documents.get(player_id)
            if stored is None:
                raise ProgressDocumentNotFound(player_id)
            if stored.version != expected_version:
                raise WriteConflictError(player_id, expected_version, stored.version)

            updated = VersionedDocument(
                player_id=player_id,
                version=stored.version + 1,
                data=copy.deepcopy(document),
            )
            self._documents[player_id] = updated
            return copy.deepcopy(updated)

    def list_players(self) -> List[str]:
        with self._lock:
            self._check()
            return sorted(self._documents)
