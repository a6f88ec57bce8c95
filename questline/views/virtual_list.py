"""
views/virtual_list.py - Incremental reveal of long quest lists
"""

from __future__ import annotations
from typing import Generic, List, Sequence, TypeVar

T = TypeVar("T")

INITIAL_BATCH = 8
BATCH_INCREMENT = 16


class IncrementalReveal(Generic[T]):
    """
    Shows the first INITIAL_BATCH items, then BATCH_INCREMENT more per
    load_more(). reset() starts over with a new list.
    """

    def __init__(
        self,
        items: Sequence[T] = (),
        initial_batch: int = INITIAL_BATCH,
        batch_increment: int = BATCH_INCREMENT,
    ):
        if initial_batch < 1 or batch_increment < 1:
            raise ValueError("Batch sizes must be positive")
        self._initial_batch = initial_batch
        self._batch_increment = batch_increment
        self._items: List[T] = []
        self._rendered = 0
        self.reset(items)

    def reset(self, items: Sequence[T] = None) -> None:
        if items is not None:
            self._items = list(items)
        total = len(self._items)
        self._rendered = 0 if total == 0 else min(self._initial_batch, total)

    def load_more(self) -> List[T]:
        """Reveal the next batch; returns only the newly revealed items."""
        if not self.has_more:
            return []
        start = self._rendered
        self._rendered = min(self._rendered + self._batch_increment, len(self._items))
        return self._items[start:self._rendered]

    @property
    def visible(self) -> List[T]:
        return self._items[:self._rendered]

    @property
    def has_more(self) -> bool:
        return len(self._items) > self._rendered

    @property
    def total(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return self._rendered
