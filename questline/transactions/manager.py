"""
transactions/manager.py - Optimistic document transactions

Read a versioned document, compute the new document, commit with
compare-and-set. Lost races are retried from a fresh read.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from questline.errors import (
    ProgressDocumentNotFound,
    TransactionAbortedError,
    WriteConflictError,
)
from questline.store import ProgressStore, VersionedDocument

from .schemas import DocumentTransaction, TransactionStatus

DEFAULT_MAX_ATTEMPTS = 5

# fn(document) -> new document, or (new document, result)
TransactionFn = Callable[[Dict[str, Any]], Any]


class DocumentTransactionManager:
    """
    Runs read-modify-write functions against a ProgressStore.

    Usage:
        manager = DocumentTransactionManager(store)
        new_doc, result = manager.run("player-1", lambda doc: (updated(doc), event))
    """

    def __init__(self, store: ProgressStore, max_attempts: int = DEFAULT_MAX_ATTEMPTS, max_history: int = 100):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.store = store
        self.max_attempts = max_attempts
        self.logger = logging.getLogger("transactions")

        # Completed transactions (for audit)
        self._history: List[DocumentTransaction] = []
        self._max_history = max_history

    def run(
        self,
        player_id: str,
        fn: TransactionFn,
        description: str = "",
    ) -> Tuple[VersionedDocument, Any]:
        """
        Apply fn to the player's document and commit it.

        fn receives a private copy of the raw document. It returns either
        the new document or a (new document, result) pair; result is handed
        back to the caller. fn may run more than once, so it must not have
        side effects outside its return value.

        Raises:
            ProgressDocumentNotFound: no document for player_id (no retry)
            TransactionAbortedError: every attempt lost a write race
        """
        tx = DocumentTransaction(player_id=player_id, description=description)
        self.logger.debug(f"Transaction {tx.transaction_id} started for {player_id}: {description}")

        try:
            while tx.attempts < self.max_attempts:
                tx.attempts += 1
                current = self.store.get(player_id)
                tx.read_version = current.version

                outcome = fn(current.data)
                if isinstance(outcome, tuple):
                    new_document, result = outcome
                else:
                    new_document, result = outcome, None

                try:
                    committed = self.store.compare_and_set(player_id, current.version, new_document)
                except WriteConflictError as e:
                    self.logger.info(
                        f"Transaction {tx.transaction_id} attempt {tx.attempts}/{self.max_attempts} "
                        f"lost a write race: {e}"
                    )
                    continue

                tx.committed_version = committed.version
                self._finish(tx, TransactionStatus.COMMITTED)
                self.logger.debug(
                    f"Transaction {tx.transaction_id} committed v{committed.version} "
                    f"after {tx.attempts} attempt(s)"
                )
                return committed, result

        except ProgressDocumentNotFound as e:
            self._finish(tx, TransactionStatus.FAILED, str(e))
            raise
        except Exception as e:
            self._finish(tx, TransactionStatus.FAILED, str(e))
            self.logger.error(f"Transaction {tx.transaction_id} for {player_id} failed: {e}")
            raise

        self._finish(tx, TransactionStatus.ABORTED, "write conflicts exhausted")
        self.logger.warning(
            f"Transaction {tx.transaction_id} for {player_id} aborted after {tx.attempts} attempts"
        )
        raise TransactionAbortedError(player_id, tx.transaction_id, tx.attempts)

    def _finish(self, tx: DocumentTransaction, status: TransactionStatus, error: Optional[str] = None) -> None:
        tx.status = status
        tx.error = error
        tx.completed_at = datetime.now(timezone.utc)
        self._add_to_history(tx)

    def _add_to_history(self, tx: DocumentTransaction) -> None:
        self._history.append(tx)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

    def get_history(self, limit: int = 20) -> List[DocumentTransaction]:
        """Get transaction history."""
        return self._history[-limit:]
