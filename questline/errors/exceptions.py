"""
errors/exceptions.py - Exception hierarchy

Every exception optionally carries a structured QuestlineError so the API
layer can serialize it without re-deriving codes.
"""

from __future__ import annotations
from typing import Optional

from .taxonomy import (
    QuestlineError,
    create_not_found_error,
    create_transaction_error,
    create_validation_error,
    ErrorCode,
)


class QuestlineException(Exception):
    """Base class for questline errors."""

    def __init__(self, message: str, error: Optional[QuestlineError] = None):
        self.message = message
        self.error = error
        super().__init__(message)


class ValidationFailed(QuestlineException):
    """Request rejected before any storage access."""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        value=None,
        code: ErrorCode = ErrorCode.VAL_FAILED,
    ):
        self.field_name = field_name
        self.value = value
        super().__init__(
            message,
            create_validation_error(
                message, source=field_name or "request", actual=value, code=code,
            ),
        )


class ProgressDocumentNotFound(QuestlineException):
    """The player has no progress document; update paths never create one."""

    def __init__(self, player_id: str):
        self.player_id = player_id
        message = f"Progress document not found for player {player_id}"
        super().__init__(message, create_not_found_error(message, player_id))


class ProgressDocumentExists(QuestlineException):
    """Raised when creating a document that is already stored."""

    def __init__(self, player_id: str):
        self.player_id = player_id
        super().__init__(f"Progress document already exists for player {player_id}")


class WriteConflictError(QuestlineException):
    """Compare-and-set lost against a concurrent commit."""

    def __init__(self, player_id: str, expected_version: int, actual_version: int):
        self.player_id = player_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Write conflict on {player_id}: expected v{expected_version}, "
            f"found v{actual_version}"
        )


class TransactionAbortedError(QuestlineException):
    """All retry attempts for a document transaction were exhausted."""

    def __init__(self, player_id: str, transaction_id: str, attempts: int):
        self.player_id = player_id
        self.transaction_id = transaction_id
        self.attempts = attempts
        message = (
            f"Transaction {transaction_id} for {player_id} aborted "
            f"after {attempts} attempts"
        )
        super().__init__(
            message,
            create_transaction_error(
                message, transaction_id, player_id=player_id, aborted=True,
            ),
        )


class StoreNotInitializedError(QuestlineException):
    """Store used outside its initialize()/dispose() window."""
