"""Tests for the in-process TTL cache."""

import threading

import pytest

from immova.infra.cache import TTLCache

from helpers import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(default_ttl=60, max_size=3, clock=clock)


class TestTTLCache:
    def test_miss_returns_none(self, cache):
        assert cache.get("nope") is None

    def test_hit_within_ttl(self, cache, clock):
        cache.set("k", "v")
        clock.advance(59)
        assert cache.get("k") == "v"

    def test_expires_at_ttl(self, cache, clock):
        cache.set("k", "v")
        clock.advance(60)
        assert cache.get("k") is None

    def test_per_entry_ttl_overrides_default(self, cache, clock):
        cache.set("short", 1, ttl=10)
        cache.set("long", 2)
        clock.advance(30)
        assert cache.get("short") is None
        assert cache.get("long") == 2

    def test_evicts_least_recently_used(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)
        cache.get("a")
        cache.set("d", 4)
        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("d") == 4

    def test_invalidate(self, cache):
        cache.set("k", "v")
        assert cache.invalidate("k") is True
        assert cache.invalidate("k") is False
        assert cache.get("k") is None

    def test_invalidate_prefix_only_touches_matching_keys(self, clock):
        cache = TTLCache(default_ttl=60, clock=clock)
        cache.set("touquet-pinede:rules", [])
        cache.set("touquet-pinede:daily:2025-07-01", 150)
        cache.set("valery-sources-baie:rules", [])

        assert cache.invalidate_prefix("touquet-pinede:") == 2
        assert cache.get("touquet-pinede:rules") is None
        assert cache.get("valery-sources-baie:rules") == []

    def test_clear(self, cache):
        cache.set("a", 1)
        cache.clear()
        assert cache.get("a") is None

    def test_stats(self, cache):
        cache.set("a", 1)
        cache.get("a")
        cache.get("b")
        stats = cache.stats()
        assert stats["entries"] == 1
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 50.0

    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ValueError):
            TTLCache(default_ttl=0)

    def test_concurrent_writers_respect_max_size(self):
        cache = TTLCache(default_ttl=60, max_size=50)
        barrier = threading.Barrier(8)

        def writer(n: int) -> None:
            barrier.wait()
            for i in range(100):
                cache.set(f"{n}:{i}", i)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert cache.stats()["entries"] == 50
