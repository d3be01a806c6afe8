"""Tests for the TTL cache."""

import asyncio

import pytest

from ecocorr.utils.ttl_cache import TTLCache


def test_set_returns_value_and_get_hits(cache):
    value = {"a": 1}
    assert cache.set("k", value) is value
    assert cache.get("k") is value
    assert "k" in cache
    assert len(cache) == 1


def test_unknown_key_is_absent(cache):
    assert cache.get("missing") is None
    assert "missing" not in cache


def test_entry_visible_up_to_ttl_inclusive(cache, clock):
    cache.set("k", 1)
    clock.advance(1.0)  # exactly ttl
    assert cache.get("k") == 1


def test_stale_entry_is_absent_and_purged(cache, clock):
    cache.set("k", 1)
    clock.advance(1.001)
    assert "k" not in cache
    assert len(cache) == 1  # lazy: still stored until looked up
    assert cache.get("k") is None
    assert len(cache) == 0


def test_rewrite_refreshes_timestamp(cache, clock):
    cache.set("k", 1)
    clock.advance(0.8)
    cache.set("k", 2)
    clock.advance(0.8)
    assert cache.get("k") == 2


def test_clear(cache):
    cache.set("a", 1)
    cache.set("b", 2)
    cache.clear()
    assert len(cache) == 0
    assert cache.get("a") is None


def test_purge_expired(cache, clock):
    cache.set("old", 1)
    clock.advance(0.6)
    cache.set("new", 2)
    clock.advance(0.6)
    assert cache.purge_expired() == 1
    assert cache.get("new") == 2


def test_max_size_evicts_oldest_write(clock):
    cache = TTLCache(ttl_ms=10_000, max_size=2, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("c", 3)
    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_max_size_prefers_dropping_stale_entries(clock):
    cache = TTLCache(ttl_ms=1_000, max_size=2, clock=clock)
    cache.set("a", 1)
    clock.advance(0.5)
    cache.set("b", 2)
    clock.advance(0.6)  # "a" stale, "b" fresh
    cache.set("c", 3)
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_stats_counts_hits_and_misses(cache):
    cache.set("k", 1)
    cache.get("k")
    cache.get("nope")
    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["size"] == 1


def test_invalid_configuration():
    with pytest.raises(ValueError):
        TTLCache(ttl_ms=-1)
    with pytest.raises(ValueError):
        TTLCache(max_size=0)


@pytest.mark.asyncio
async def test_background_sweep_removes_stale_entries(clock):
    cache = TTLCache(ttl_ms=1_000, check_interval_ms=10, clock=clock)
    cache.set("k", 1)
    clock.advance(5)
    await cache.start()
    try:
        for _ in range(50):
            if len(cache) == 0:
                break
            await asyncio.sleep(0.01)
        assert len(cache) == 0
    finally:
        await cache.stop()
