"""Tests for query keys and the in-memory cache."""

from orderbot.core.scheduler import cache_maintenance
from orderbot.services.query_cache import (
    MemoryQueryCache,
    commit_invalidation_keys,
    query_key,
    supplier_projects_key,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_keys_are_segment_terminated():
    assert query_key("supplier-orders", "s1") == "supplier-orders:s1:"
    assert supplier_projects_key("s1", "c7") == "supplier-projects:s1:c7:"
    assert supplier_projects_key("s1").startswith("supplier-projects:")


def test_invalidation_keys_include_client_projects_only_when_known():
    assert commit_invalidation_keys("s1", None) == ["supplier-orders:s1:", "supplier-leads:s1:"]
    assert commit_invalidation_keys("s1", "c1")[-1] == "supplier-projects:s1:c1:"


async def test_get_set_and_expiry():
    clock = FakeClock()
    cache = MemoryQueryCache(clock=clock)

    await cache.set("k:", [1, 2], ttl=10)
    assert await cache.get("k:") == [1, 2]

    clock.now += 11
    assert await cache.get("k:") is None


async def test_prefix_invalidation_spares_sibling_ids():
    cache = MemoryQueryCache()
    await cache.set(supplier_projects_key("s1", "c1"), ["a"])
    await cache.set(supplier_projects_key("s1", "c2"), ["b"])
    await cache.set(supplier_projects_key("s10", "c1"), ["c"])

    removed = await cache.invalidate(supplier_projects_key("s1"))

    assert removed == 2
    assert supplier_projects_key("s10", "c1") in cache


async def test_cached_computes_once():
    cache = MemoryQueryCache()
    calls = 0

    async def compute():
        nonlocal calls
        calls += 1
        return {"rows": calls}

    assert await cache.cached("q:", compute) == {"rows": 1}
    assert await cache.cached("q:", compute) == {"rows": 1}
    assert calls == 1


async def test_cleanup_removes_only_expired():
    clock = FakeClock()
    cache = MemoryQueryCache(clock=clock)
    await cache.set("old:", 1, ttl=5)
    await cache.set("new:", 2, ttl=60)
    clock.now += 10

    assert await cache_maintenance(cache) == 1
    assert "old:" not in cache
    assert "new:" in cache
