"""
Tests for the bounded TTL map
"""

from davsync.util import BoundedTTLMap


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_entries_expire_after_write():
    clock = FakeClock()
    cache = BoundedTTLMap(max_size=10, ttl_seconds=30, clock=clock)
    cache.put("/", ["listing"])

    clock.now = 29
    assert cache.get("/") == ["listing"]
    clock.now = 30
    assert cache.get("/") is None
    assert "/" not in cache


def test_oldest_entries_evicted_over_size():
    cache = BoundedTTLMap(max_size=2, ttl_seconds=300, clock=FakeClock())
    cache.put("a", 1)
    cache.put("b", 2)
    cache.put("c", 3)

    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3
    assert len(cache) == 2


def test_pinned_entries_are_never_evicted():
    clock = FakeClock()
    pinned = {"a"}
    cache = BoundedTTLMap(max_size=1, ttl_seconds=10, is_pinned=lambda value: value in pinned, clock=clock)
    cache.put("key-a", "a")
    cache.put("key-b", "b")

    assert cache.get("key-a") == "a"
    clock.now = 100
    assert cache.get("key-a") == "a"

    pinned.clear()
    assert cache.get("key-a") is None


def test_get_or_create():
    cache = BoundedTTLMap(clock=FakeClock())
    created = []

    def factory():
        created.append(1)
        return object()

    first = cache.get_or_create("k", factory)
    assert cache.get_or_create("k", factory) is first
    assert len(created) == 1

    cache.clear()
    assert cache.get_or_create("k", factory) is not first
    cache.clear()
    assert len(cache) == 0
