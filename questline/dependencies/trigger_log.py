"""
questline Invalidation Log

Bounded audit trail of engine events, queryable by quest and player.
"""

from __future__ import annotations
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import logging
import threading

from .invalidation import InvalidationEvent

logger = logging.getLogger(__name__)


class InvalidationLog:
    """
    In-memory ring of InvalidationEvents.

    Oldest entries are dropped once max_entries is reached.
    """

    DEFAULT_MAX_ENTRIES = 1000

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        self._entries: List[InvalidationEvent] = []
        self._max_entries = max_entries
        self._lock = threading.Lock()

    def record(self, event: InvalidationEvent) -> str:
        """Add an event. Returns its id."""
        with self._lock:
            self._entries.append(event)
            if len(self._entries) > self._max_entries:
                self._entries = self._entries[-self._max_entries:]
        return event.event_id

    def get_history(self, limit: int = 20) -> List[InvalidationEvent]:
        """Most recent events, newest first."""
        with self._lock:
            return list(reversed(self._entries[-limit:]))

    def for_quest(self, quest_id: str, limit: int = 100) -> List[InvalidationEvent]:
        """Events triggered by or touching a quest, newest first."""
        with self._lock:
            matches = [
                e for e in self._entries
                if e.trigger_quest == quest_id
                or quest_id in e.unlocked
                or quest_id in e.relocked
                or quest_id in e.alternatives
                or quest_id in e.invalidated_quests
            ]
        return list(reversed(matches[-limit:]))

    def for_player(self, player_id: str, limit: int = 100) -> List[InvalidationEvent]:
        with self._lock:
            matches = [e for e in self._entries if e.player_id == player_id]
        return list(reversed(matches[-limit:]))

    def export_to_json(self, path: Path, limit: Optional[int] = None) -> int:
        """Write events to a JSON file for debugging. Returns the count written."""
        with self._lock:
            entries = self._entries[-limit:] if limit else list(self._entries)

        data = {
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "entry_count": len(entries),
            "entries": [e.to_dict() for e in entries],
        }
        with open(path, "w") as f:
            json.dump(data, f, indent=2)

        logger.info(f"Exported {len(entries)} invalidation events to {path}")
        return len(entries)

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "max_entries": self._max_entries,
                "entries": [e.to_dict() for e in self._entries],
            }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
