"""Bounded undo stack for applied suggestions."""

from __future__ import annotations

import logging
from collections import deque

from .models import UndoRecord

LOGGER = logging.getLogger(__name__)

DEFAULT_UNDO_CAPACITY = 10


class UndoHistory:
    """Most-recent-first stack of :class:`UndoRecord` with a fixed capacity.

    Pushing onto a full history evicts the oldest record. Undo consumes
    records monotonically; there is no redo.
    """

    __slots__ = ("_records", "_capacity")

    def __init__(self, capacity: int = DEFAULT_UNDO_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("UndoHistory capacity must be at least 1")
        self._capacity = capacity
        self._records: deque[UndoRecord] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._records)

    def __bool__(self) -> bool:
        return bool(self._records)

    def push(self, record: UndoRecord) -> None:
        if len(self._records) == self._capacity:
            evicted = self._records[-1]
            LOGGER.debug(
                "Undo history full; evicting record for suggestion %s",
                evicted.applied.id,
            )
        self._records.appendleft(record)

    def peek(self) -> UndoRecord | None:
        return self._records[0] if self._records else None

    def pop(self) -> UndoRecord | None:
        if not self._records:
            return None
        return self._records.popleft()

    def clear(self) -> None:
        self._records.clear()

    def records(self) -> tuple[UndoRecord, ...]:
        """Return the records, most recent first."""

        return tuple(self._records)


__all__ = ["DEFAULT_UNDO_CAPACITY", "UndoHistory"]
