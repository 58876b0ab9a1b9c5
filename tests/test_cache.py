"""
Result Cache Tests

LRU + TTL behaviour, compute-on-miss, key isolation and statistics.
"""

from __future__ import annotations

import pytest

from draftclear.cache import ResultCache


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock(monkeypatch):
    fake = FakeClock()
    monkeypatch.setattr("draftclear.cache.time.monotonic", fake)
    return fake


class TestResultCache:

    def test_put_get(self):
        cache = ResultCache()
        cache.put("hello", {"score": 42})
        assert cache.get("hello") == {"score": 42}

    def test_miss_returns_none(self):
        assert ResultCache().get("never stored") is None

    def test_extra_isolates_keys(self):
        cache = ResultCache()
        cache.put("hello", "local", extra="local")
        cache.put("hello", "full", extra="full")
        assert cache.get("hello", extra="local") == "local"
        assert cache.get("hello", extra="full") == "full"
        assert cache.get("hello") is None

    def test_key_is_exact_text(self):
        assert ResultCache.make_key("a b") != ResultCache.make_key("a  b")
        assert ResultCache.make_key("x", "1") == ResultCache.make_key("x", "1")

    def test_get_or_compute_computes_once(self):
        cache = ResultCache()
        calls = []

        def compute():
            calls.append(1)
            return object()

        first = cache.get_or_compute("text", compute)
        second = cache.get_or_compute("text", compute)
        assert first is second
        assert len(calls) == 1

    def test_lru_eviction(self):
        cache = ResultCache(max_entries=2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.get("a")
        cache.put("c", 3)
        assert cache.get("a") == 1
        assert cache.get("b") is None
        assert cache.get("c") == 3

    def test_ttl_expiry(self, clock):
        cache = ResultCache(ttl_seconds=10)
        cache.put("a", 1)
        clock.now += 5
        assert cache.get("a") == 1
        clock.now += 6
        assert cache.get("a") is None
        assert cache.stats["entries"] == 0

    def test_zero_ttl_never_expires(self, clock):
        cache = ResultCache(ttl_seconds=0)
        cache.put("a", 1)
        clock.now += 10 ** 9
        assert cache.get("a") == 1

    def test_contains_and_invalidate(self):
        cache = ResultCache()
        cache.put("a", 1)
        assert cache.contains("a")
        cache.invalidate("a")
        assert not cache.contains("a")

    def test_clear_returns_count_and_resets_stats(self):
        cache = ResultCache()
        cache.put("a", 1)
        cache.put("b", 2)
        cache.get("a")
        assert cache.clear() == 2
        stats = cache.stats
        assert stats["entries"] == 0
        assert stats["hits"] == 0

    def test_stats(self):
        cache = ResultCache(ttl_seconds=60, max_entries=5)
        cache.put("a", 1)
        cache.get("a")
        cache.get("b")
        stats = cache.stats
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5
        assert stats["max_entries"] == 5
        assert stats["ttl_seconds"] == 60
