"""Per-key mutual exclusion."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class KeyedLock:
    """One lock per key, created on demand and dropped when unused.

    Example:
        >>> locks = KeyedLock()
        >>> with locks.hold("foo"):
        ...     install("foo")
    """

    def __init__(self, normalize=str.lower) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._waiters: dict[str, int] = {}
        self._normalize = normalize

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Hold the lock for a key for the duration of the block."""
        key = self._normalize(key)
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1

        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._waiters[key] -= 1
                if self._waiters[key] == 0:
                    del self._waiters[key]
                    del self._locks[key]

    def __len__(self) -> int:
        """Number of keys currently held or awaited."""
        with self._guard:
            return len(self._locks)
