"""
errors/taxonomy.py - Error classification system

Structured error records attached to exceptions and returned by the API.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from enum import Enum
import uuid


class ErrorSeverity(Enum):
    """Error severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""
    # Request validation (1xxx)
    VALIDATION = "validation"

    # Progress documents (2xxx)
    DOCUMENT = "document"

    # Per-document transactions (3xxx)
    TRANSACTION = "transaction"

    # Catalog input (4xxx)
    CATALOG = "catalog"

    # Configuration (6xxx)
    CONFIGURATION = "configuration"


class ErrorCode(Enum):
    """Specific error codes."""

    # Validation (1xxx)
    VAL_FAILED = 1001
    VAL_STATE = 1002
    VAL_BODY = 1003

    # Documents (2xxx)
    DOC_NOT_FOUND = 2001
    DOC_EXISTS = 2002

    # Transactions (3xxx)
    TXN_CONFLICT = 3001
    TXN_ABORTED = 3002

    # Catalog (4xxx)
    CAT_MALFORMED = 4001
    CAT_CYCLE = 4002

    # System (6xxx)
    SYS_CONFIG = 6001
    SYS_STORE = 6002


@dataclass
class QuestlineError:
    """Structured error representation."""

    error_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])

    code: ErrorCode = ErrorCode.VAL_FAILED
    category: ErrorCategory = ErrorCategory.VALIDATION
    severity: ErrorSeverity = ErrorSeverity.ERROR

    message: str = ""
    detail: str = ""

    # Context
    source: str = ""
    player_id: Optional[str] = None
    quest_id: Optional[str] = None

    # Values
    actual_value: Any = None
    expected_value: Any = None

    # Recovery
    recoverable: bool = True
    recovery_options: List[str] = field(default_factory=list)

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    transaction_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_id": self.error_id,
            "code": self.code.value,
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "source": self.source,
            "player_id": self.player_id,
            "quest_id": self.quest_id,
            "recoverable": self.recoverable,
            "transaction_id": self.transaction_id,
        }


def create_validation_error(
    message: str,
    source: str,
    actual: Any = None,
    expected: Any = None,
    code: ErrorCode = ErrorCode.VAL_FAILED,
) -> QuestlineError:
    """Factory for validation errors."""
    return QuestlineError(
        code=code,
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.ERROR,
        message=message,
        source=source,
        actual_value=actual,
        expected_value=expected,
        recoverable=False,
    )


def create_not_found_error(
    message: str,
    player_id: str,
    source: str = "progress_store",
) -> QuestlineError:
    """Factory for missing progress documents."""
    return QuestlineError(
        code=ErrorCode.DOC_NOT_FOUND,
        category=ErrorCategory.DOCUMENT,
        severity=ErrorSeverity.ERROR,
        message=message,
        source=source,
        player_id=player_id,
        recoverable=False,
    )


def create_transaction_error(
    message: str,
    transaction_id: str,
    player_id: Optional[str] = None,
    aborted: bool = False,
    source: str = "transaction_manager",
) -> QuestlineError:
    """Factory for transaction errors."""
    return QuestlineError(
        code=ErrorCode.TXN_ABORTED if aborted else ErrorCode.TXN_CONFLICT,
        category=ErrorCategory.TRANSACTION,
        severity=ErrorSeverity.ERROR if aborted else ErrorSeverity.WARNING,
        message=message,
        source=source,
        player_id=player_id,
        transaction_id=transaction_id,
        recovery_options=["retry"],
    )
