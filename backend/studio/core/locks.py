"""Per-key mutual exclusion for session and track mutations.

Request handlers run on a thread pool, so two appends for the same
(session, speaker) can arrive concurrently. Each key gets its own lock;
unrelated keys never contend.
"""
from __future__ import annotations

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager


class KeyedLock:
    """A map of ``threading.Lock`` objects keyed by any hashable.

    Entries exist only while some caller holds or waits on the key; the last one out
    drops it, so the map stays bounded by the number of in-flight keys.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # key -> (lock, number of holders and waiters)
        self._locks: dict[Hashable, tuple[threading.Lock, int]] = {}

    def _acquire_ref(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock, refs = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[key] = (lock, refs + 1)
            return lock

    def _release_ref(self, key: Hashable) -> None:
        with self._guard:
            lock, refs = self._locks[key]
            if refs <= 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, refs - 1)

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._acquire_ref(key)
        try:
            with lock:
                yield
        finally:
            self._release_ref(key)

    def is_held(self, key: Hashable) -> bool:
        with self._guard:
            entry = self._locks.get(key)
        return entry is not None and entry[0].locked()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
