"""Tests for the smart cache: bounds, eviction order, TTL and tags."""

from __future__ import annotations

import pytest

from Boostlly.QuoteCore.cache import CacheEntry, SmartCache, estimate_size, eviction_score
from Boostlly.QuoteCore.config import CacheSettings


@pytest.fixture
def cache(clock) -> SmartCache:
    return SmartCache(max_size_bytes=1000, max_items=3, default_ttl_s=60.0, clock=clock, start_sweeper=False)


# ============================================================================
# Basic operations
# ============================================================================


class TestBasics:
    def test_set_and_get(self, cache):
        assert cache.set("a", {"text": "hello"})
        assert cache.get("a") == {"text": "hello"}
        assert "a" in cache

    def test_missing_key_returns_default(self, cache):
        assert cache.get("nope") is None
        assert cache.get("nope", "fallback") == "fallback"

    def test_replacing_key_updates_size(self, cache):
        cache.set("a", "x", size=100)
        cache.set("a", "y", size=40)
        assert cache.current_size == 40
        assert len(cache) == 1

    def test_delete_and_clear(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.delete("a")
        assert not cache.delete("a")
        cache.clear()
        assert len(cache) == 0
        assert cache.current_size == 0

    def test_get_or_set_calls_producer_once(self, cache):
        calls = []

        def produce():
            calls.append(1)
            return ["q1", "q2"]

        assert cache.get_or_set("k", produce) == ["q1", "q2"]
        assert cache.get_or_set("k", produce) == ["q1", "q2"]
        assert len(calls) == 1

    def test_estimate_size_is_utf8_json_length(self):
        assert estimate_size("é") == len('"é"'.encode("utf-8"))
        assert estimate_size(object()) == 1024

    def test_from_settings(self, clock):
        settings = CacheSettings(max_items=7, max_size_bytes=2048, cleanup_interval_s=0)
        with SmartCache.from_settings(settings, clock=clock) as cache:
            assert cache.max_items == 7
            assert cache.max_size_bytes == 2048


# ============================================================================
# TTL
# ============================================================================


class TestExpiry:
    def test_expired_entry_dropped_on_read(self, cache, clock):
        cache.set("a", "value", ttl_s=10)
        clock.advance(11)
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_entry_alive_until_ttl(self, cache, clock):
        cache.set("a", "value", ttl_s=10)
        clock.advance(10)
        assert cache.get("a") == "value"

    def test_sweep_removes_expired(self, cache, clock):
        cache.set("short", 1, ttl_s=5)
        cache.set("long", 2, ttl_s=500)
        clock.advance(6)
        assert cache.sweep_expired() == 1
        assert "long" in cache
        assert "short" not in cache


# ============================================================================
# Eviction
# ============================================================================


class TestEviction:
    def test_item_bound_holds(self, cache):
        for i in range(10):
            cache.set(f"k{i}", i)
            assert len(cache) <= 3

    def test_lowest_priority_evicted_first(self, cache):
        cache.set("low", 1, priority=0.5)
        cache.set("high-1", 2, priority=5.0)
        cache.set("high-2", 3, priority=5.0)
        cache.set("new", 4, priority=5.0)
        assert "low" not in cache
        assert all(k in cache for k in ("high-1", "high-2", "new"))

    def test_idle_entry_evicted_before_busy_one(self, cache, clock):
        cache.set("busy", 1, ttl_s=86400)
        cache.set("idle", 2, ttl_s=86400)
        cache.set("other", 3, ttl_s=86400)
        clock.advance(3600 * 5)
        cache.get("busy")
        cache.get("other")
        cache.set("new", 4)
        assert "idle" not in cache
        assert "busy" in cache

    def test_size_bound_holds(self, cache):
        cache.set("a", "x", size=400)
        cache.set("b", "y", size=400)
        evicted = cache.ensure_space(400)
        assert len(evicted) == 1
        cache.set("c", "z", size=400)
        assert cache.current_size <= 1000

    def test_oversized_value_is_rejected(self, cache):
        cache.set("keep", 1)
        assert cache.set("huge", "x", size=5000) is False
        assert "huge" not in cache
        assert "keep" in cache

    def test_zero_priority_does_not_crash_scoring(self, clock):
        now = clock()
        entry = CacheEntry(key="k", data=1, timestamp=now, last_accessed=now, expires_at=now + 1, size=1, priority=0)
        assert eviction_score(entry, now) > 1000

    def test_score_orders_by_priority(self, clock):
        now = clock()

        def entry(priority):
            return CacheEntry("k", 1, now, now, now + 60, 1, priority=priority)

        assert eviction_score(entry(0.5), now) > eviction_score(entry(2.0), now)


# ============================================================================
# Tags & stats
# ============================================================================


class TestTagsAndStats:
    def test_invalidate_tag(self, cache):
        cache.set("s1", 1, tags=("search", "Quotable"))
        cache.set("s2", 2, tags=("search",))
        cache.set("c1", 3, tags=("category",))
        assert cache.invalidate_tag("search") == 2
        assert "c1" in cache
        assert len(cache) == 1

    def test_stats(self, cache, clock):
        cache.set("a", "aa")
        clock.advance(5)
        cache.set("b", "bb")
        cache.get("a")
        cache.get("a")
        cache.get("missing")

        stats = cache.get_stats()
        assert stats.item_count == 2
        assert stats.hits == 2
        assert stats.misses == 1
        assert stats.hit_rate == pytest.approx(2 / 3)
        assert stats.average_access_count == pytest.approx(1.0)
        assert stats.newest_item - stats.oldest_item == pytest.approx(5)
        assert stats.size == cache.current_size

    def test_empty_stats(self, cache):
        stats = cache.get_stats()
        assert stats.hit_rate == 0.0
        assert stats.oldest_item is None
