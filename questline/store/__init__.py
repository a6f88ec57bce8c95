"""
store/ - Versioned progress document storage
"""

from .base import ProgressStore, VersionedDocument
from .memory import InMemoryProgressStore

__all__ = [
    "ProgressStore",
    "VersionedDocument",
    "InMemoryProgressStore",
]
