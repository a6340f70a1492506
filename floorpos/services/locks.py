"""Per-table mutual exclusion for topology and billing operations."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class TableLocks:
    """Registry of re-entrant locks keyed by table id.

    :meth:`hold` always acquires in sorted id order so two operations touching
    overlapping table sets cannot deadlock each other.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}

    def _lock_for(self, table_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(table_id)
            if lock is None:
                lock = self._locks[table_id] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, *table_ids: str) -> Iterator[tuple[str, ...]]:
        """Hold the locks for ``table_ids`` for the duration of the block."""

        ordered = tuple(sorted({tid for tid in table_ids if tid}))
        acquired: list[threading.RLock] = []
        try:
            for tid in ordered:
                lock = self._lock_for(tid)
                lock.acquire()
                acquired.append(lock)
            yield ordered
        finally:
            for lock in reversed(acquired):
                lock.release()
