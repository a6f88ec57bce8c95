"""
transactions/schemas.py - Document transaction records
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
import uuid


class TransactionStatus(Enum):
    """Transaction status."""
    ACTIVE = "active"
    COMMITTED = "committed"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass
class DocumentTransaction:
    """Audit record for one read-modify-write on a player document."""

    transaction_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    player_id: str = ""
    status: TransactionStatus = TransactionStatus.ACTIVE
    description: str = ""

    attempts: int = 0
    read_version: Optional[int] = None
    committed_version: Optional[int] = None
    error: Optional[str] = None

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    @property
    def duration_ms(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds() * 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "player_id": self.player_id,
            "status": self.status.value,
            "description": self.description,
            "attempts": self.attempts,
            "read_version": self.read_version,
            "committed_version": self.committed_version,
            "error": self.error,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
        }
