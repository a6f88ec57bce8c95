"""
store/base.py - Progress store interface

Documents are stored raw (mode-split or legacy) with a monotonically
increasing version used for compare-and-set commits.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class VersionedDocument:
    """A raw progress document and the version it was read at."""
    player_id: str
    version: int
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_id": self.player_id,
            "version": self.version,
            "data": self.data,
        }


class ProgressStore(ABC):
    """Versioned per-player document storage."""

    @abstractmethod
    def initialize(self) -> None:
        """Open the store. Must be called before any other method."""

    @abstractmethod
    def dispose(self) -> None:
        """Release resources; the store is unusable afterwards."""

    @abstractmethod
    def get(self, player_id: str) -> VersionedDocument:
        """Raises ProgressDocumentNotFound when the player has no document."""

    @abstractmethod
    def exists(self, player_id: str) -> bool:
        ...

    @abstractmethod
    def create(self, player_id: str, document: Dict[str, Any]) -> VersionedDocument:
        """Raises ProgressDocumentExists when a document is already stored."""

    @abstractmethod
    def compare_and_set(
        self,
        player_id: str,
        expected_version: int,
        document: Dict[str, Any],
    ) -> VersionedDocument:
        """Replace the document if it is still at expected_version."""

    @abstractmethod
    def list_players(self) -> List[str]:
        ...
