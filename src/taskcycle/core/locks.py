# src/taskcycle/core/locks.py

from __future__ import annotations

import contextlib
import threading
from collections.abc import Iterable, Iterator


class OwnerLocks:
    """
    Single-writer discipline for per-owner task sets.

    The daily reconciliation and on-demand scheduling both rewrite due dates and
    list membership, so they must never run concurrently for the same owner.
    Locks are re-entrant and always acquired in sorted key order to avoid deadlocks.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def _lock_for(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextlib.contextmanager
    def hold(self, keys: Iterable[str]) -> Iterator[None]:
        ordered = sorted(set(keys))
        acquired: list[threading.RLock] = []
        try:
            for key in ordered:
                lock = self._lock_for(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
