"""Keyed mutual exclusion for filings.

Filings are serialised on two independent axes: per digest (so exactly
one filer of a digest wins) and per inventor (so filing ids are assigned
strictly in sequence). Filings on different keys never contend.

Locks are reference counted and dropped once no thread holds or waits
on them, so the pool does not grow with the number of distinct keys
ever seen.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Hashable, Iterator


class KeyedLocks:
    """A pool of threading.Lock objects addressed by key."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = {}
        self._refcounts: dict[Hashable, int] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
                self._refcounts[key] = 0
            self._refcounts[key] += 1
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._refcounts[key] -= 1
                if self._refcounts[key] == 0:
                    del self._refcounts[key]
                    del self._locks[key]

    def __len__(self) -> int:
        """Number of keys currently held or awaited."""
        with self._guard:
            return len(self._locks)
