"""
transactions/ - Per-document optimistic transactions
"""

from .schemas import TransactionStatus, DocumentTransaction
from .manager import DocumentTransactionManager, DEFAULT_MAX_ATTEMPTS

__all__ = [
    "TransactionStatus",
    "DocumentTransaction",
    "DocumentTransactionManager",
    "DEFAULT_MAX_ATTEMPTS",
]
