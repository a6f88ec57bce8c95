"""
errors/ - Error Taxonomy & Exceptions

Structured error classification shared by the engine, the store and the API.
"""

from .taxonomy import (
    ErrorSeverity,
    ErrorCategory,
    ErrorCode,
    QuestlineError,
    create_validation_error,
    create_not_found_error,
    create_transaction_error,
)

from .exceptions import (
    QuestlineException,
    ValidationFailed,
    ProgressDocumentNotFound,
    ProgressDocumentExists,
    WriteConflictError,
    TransactionAbortedError,
    StoreNotInitializedError,
)

__all__ = [
    # Taxonomy
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorCode",
    "QuestlineError",
    "create_validation_error",
    "create_not_found_error",
    "create_transaction_error",
    # Exceptions
    "QuestlineException",
    "ValidationFailed",
    "ProgressDocumentNotFound",
    "ProgressDocumentExists",
    "WriteConflictError",
    "TransactionAbortedError",
    "StoreNotInitializedError",
]
