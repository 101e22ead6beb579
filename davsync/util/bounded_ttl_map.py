"""
DavSync - Bounded TTL Map

Size-bounded map whose entries expire a fixed time after they were written.
Used for the PROPFIND listing cache and for the keyed lock registry.

Author: DavSync Project
"""

import threading
import time
from collections import OrderedDict
from typing import Callable, Generic, Hashable, Optional, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class BoundedTTLMap(Generic[K, V]):
    """
    Thread-safe map with a maximum size and per-entry expiry after write.

    Pinned entries (see is_pinned) are never evicted, even once expired or
    when the map is over its size bound; they stay readable until unpinned.
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl_seconds: float = 300.0,
        is_pinned: Optional[Callable[[V], bool]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._is_pinned = is_pinned or (lambda value: False)
        self._clock = clock
        self._entries: "OrderedDict[K, Tuple[V, float]]" = OrderedDict()
        self._lock = threading.RLock()

    def _expired(self, written_at: float) -> bool:
        return self._clock() - written_at >= self.ttl_seconds

    def _evict(self) -> None:
        for key, (value, written_at) in list(self._entries.items()):
            if self._expired(written_at) and not self._is_pinned(value):
                del self._entries[key]

        # Oldest writes go first
        overflow = len(self._entries) - self.max_size
        if overflow > 0:
            for key, (value, _) in list(self._entries.items()):
                if overflow <= 0:
                    break
                if not self._is_pinned(value):
                    del self._entries[key]
                    overflow -= 1

    def get(self, key: K) -> Optional[V]:
        """Return the live value for key, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, written_at = entry
            if self._expired(written_at) and not self._is_pinned(value):
                del self._entries[key]
                return None
            return value

    def put(self, key: K, value: V) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (value, self._clock())
            self._evict()

    def get_or_create(self, key: K, factory: Callable[[], V]) -> V:
        """Atomically return the live value for key, creating it if needed."""
        with self._lock:
            value = self.get(key)
            if value is None:
                value = factory()
                self.put(key, value)
            return value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: K) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
