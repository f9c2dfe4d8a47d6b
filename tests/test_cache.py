"""Tests for the injectable in-memory cache."""

from unittest.mock import MagicMock

from pipeline.cache import MemoryCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestMemoryCache:
    def test_put_and_get(self):
        cache = MemoryCache()
        cache.put("a", 1)
        assert cache.get("a") == 1
        assert cache.get("missing") is None

    def test_ttl_expiry(self):
        clock = FakeClock()
        cache = MemoryCache(clock=clock)
        cache.put("a", "value", ttl=60)
        clock.now += 59
        assert cache.get("a") == "value"
        clock.now += 1
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_len_counts_only_live_entries(self):
        clock = FakeClock()
        cache = MemoryCache(clock=clock)
        cache.put("short", 1, ttl=10)
        cache.put("long", 2, ttl=100)
        cache.put("forever", 3)
        assert len(cache) == 3
        clock.now += 10
        assert len(cache) == 2

    def test_no_ttl_never_expires(self):
        clock = FakeClock()
        cache = MemoryCache(clock=clock)
        cache.put("a", "value")
        clock.now += 10 ** 9
        assert cache.get("a") == "value"

    def test_get_or_load_calls_loader_once(self):
        cache = MemoryCache()
        loader = MagicMock(return_value=42)
        assert cache.get_or_load("k", loader) == 42
        assert cache.get_or_load("k", loader) == 42
        loader.assert_called_once()

    def test_get_or_load_does_not_cache_none(self):
        cache = MemoryCache()
        loader = MagicMock(return_value=None)
        cache.get_or_load("k", loader)
        cache.get_or_load("k", loader)
        assert loader.call_count == 2

    def test_instances_are_independent(self):
        first, second = MemoryCache(), MemoryCache()
        first.put("a", 1)
        assert second.get("a") is None
