"""
DavSync - Parametrized Lock

Critical sections keyed by an arbitrary value (typically a remote path).
Two callers using the same key run strictly one after the other; callers using
different keys never block each other.

Author: DavSync Project
"""

import threading
from contextlib import contextmanager
from typing import Generic, Hashable, Iterator, TypeVar

from .bounded_ttl_map import BoundedTTLMap
from .cancellation import acquire_cancellable

K = TypeVar("K", bound=Hashable)


class _KeyedLock:
    """A lock plus the number of threads holding or waiting for it."""

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class ParametrizedLock(Generic[K]):
    """
    Registry of per-key locks.

    The registry is bounded (max_keys entries, expiring ttl_seconds after
    creation) but an entry is pinned while anyone holds or waits for it, so
    eviction never hands out a second lock for a key that is still in use.
    """

    def __init__(self, max_keys: int = 1000, ttl_seconds: float = 300.0):
        self._registry: BoundedTTLMap[K, _KeyedLock] = BoundedTTLMap(
            max_size=max_keys,
            ttl_seconds=ttl_seconds,
            is_pinned=lambda entry: entry.users > 0,
        )
        # Serializes registry lookups with users bookkeeping
        self._guard = threading.Lock()

    @contextmanager
    def locked(self, key: K) -> Iterator[None]:
        """Context manager holding the lock for key."""
        with self._guard:
            entry = self._registry.get_or_create(key, _KeyedLock)
            entry.users += 1
        try:
            acquire_cancellable(entry.lock)
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            with self._guard:
                entry.users -= 1

    def __len__(self) -> int:
        return len(self._registry)
