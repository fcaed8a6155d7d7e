"""
Tests for the TTL Cache Store.

============================================================
PURPOSE
============================================================
Verify expiry, capacity and key behaviour of the process-wide cache.

TEST PRINCIPLES:
- Time is driven by MockClock, never by sleeping
- Boundary instants are tested exactly (t+ttl-1, t+ttl)
- Eviction order: expired first, then oldest-inserted

============================================================
"""

import asyncio
from datetime import datetime, timezone

import pytest

from cache_store import CacheHousekeeper, TTLCacheStore, make_cache_key
from core.clock import MockClock
from core.exceptions import ConfigurationError
from providers.models import Capability


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def clock():
    """Mock clock fixed at a known instant."""
    return MockClock(datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(clock):
    """Small store for capacity tests."""
    return TTLCacheStore(clock=clock, capacity=3)


# ============================================================
# EXPIRY TESTS
# ============================================================

class TestExpiry:
    """Tests for TTL boundaries."""

    def test_value_available_until_just_before_expiry(self, store, clock):
        store.set("k", "v", 1000)

        clock.advance(milliseconds=999)

        assert store.get("k") == "v"

    def test_value_absent_at_expiry_instant(self, store, clock):
        store.set("k", "v", 1000)

        clock.advance(milliseconds=1000)

        assert store.get("k") is None

    def test_expired_entry_is_deleted_on_access(self, store, clock):
        store.set("k", "v", 1000)
        clock.advance(seconds=5)

        assert store.get("k") is None
        assert len(store) == 0
        assert store.stats()["expirations"] == 1

    def test_has_respects_expiry(self, store, clock):
        store.set("k", "v", 1000)
        assert store.has("k") is True

        clock.advance(seconds=1)

        assert store.has("k") is False

    def test_non_positive_ttl_stores_nothing(self, store):
        store.set("k", "v", 0)
        store.set("j", "v", -5)

        assert store.get("k") is None
        assert store.get("j") is None
        assert len(store) == 0

    def test_non_positive_ttl_drops_previous_entry(self, store):
        store.set("k", "old", 10_000)

        store.set("k", "new", 0)

        assert store.get("k") is None

    def test_entry_timestamps(self, store, clock):
        store.set("k", "v", 2500)

        entry = store.get_entry("k")

        assert entry is not None
        assert entry.expires_at - entry.stored_at == 2500
        assert entry.stored_at == clock.timestamp_ms()

    def test_falsy_values_are_cached(self, store):
        store.set("zero", 0, 1000)
        store.set("empty", "", 1000)

        assert store.get("zero") == 0
        assert store.get("empty") == ""


# ============================================================
# CAPACITY TESTS
# ============================================================

class TestCapacity:
    """Tests for bounded capacity and eviction order."""

    def test_size_never_exceeds_capacity(self, store):
        for i in range(10):
            store.set(f"k{i}", i, 60_000)
            assert len(store) <= store.capacity

    def test_evicts_oldest_inserted_first(self, store):
        store.set("a", 1, 60_000)
        store.set("b", 2, 60_000)
        store.set("c", 3, 60_000)

        store.set("d", 4, 60_000)

        assert store.get("a") is None
        assert store.get("b") == 2
        assert store.get("c") == 3
        assert store.get("d") == 4
        assert store.stats()["evictions"] == 1

    def test_expired_entries_evicted_before_live_ones(self, store, clock):
        store.set("a", 1, 60_000)
        store.set("short", 2, 1_000)
        store.set("c", 3, 60_000)
        clock.advance(seconds=2)

        store.set("d", 4, 60_000)

        assert store.get("a") == 1
        assert store.get("c") == 3
        assert store.get("d") == 4
        assert store.stats()["evictions"] == 0

    def test_reset_key_counts_as_fresh_insertion(self, store):
        store.set("a", 1, 60_000)
        store.set("b", 2, 60_000)
        store.set("c", 3, 60_000)
        store.set("a", 10, 60_000)

        store.set("d", 4, 60_000)

        assert store.get("a") == 10
        assert store.get("b") is None

    def test_invalid_capacity_raises(self, clock):
        with pytest.raises(ConfigurationError):
            TTLCacheStore(clock=clock, capacity=0)


# ============================================================
# MAINTENANCE TESTS
# ============================================================

class TestMaintenance:
    """Tests for delete/clear/purge/stats."""

    def test_delete_and_clear(self, store):
        store.set("a", 1, 60_000)
        store.set("b", 2, 60_000)

        assert store.delete("a") is True
        assert store.delete("a") is False

        store.clear()

        assert len(store) == 0

    def test_purge_expired(self, store, clock):
        store.set("a", 1, 1_000)
        store.set("b", 2, 1_000)
        store.set("c", 3, 60_000)
        clock.advance(seconds=1)

        removed = store.purge_expired()

        assert removed == 2
        assert len(store) == 1

    def test_stats_counts_expired_and_active(self, store, clock):
        store.set("a", 1, 1_000)
        store.set("b", 2, 60_000)
        clock.advance(seconds=1)

        stats = store.stats()

        assert stats["total"] == 2
        assert stats["expired"] == 1
        assert stats["active"] == 1
        assert stats["capacity"] == 3

    def test_hit_rate(self, store):
        store.set("a", 1, 60_000)
        store.get("a")
        store.get("missing")

        assert store.stats()["hit_rate_pct"] == 50.0


# ============================================================
# KEY TESTS
# ============================================================

class TestCacheKeys:
    """Tests for make_cache_key."""

    def test_key_is_namespaced_and_lowercased(self):
        key = make_cache_key("provider", Capability.SOCIAL_MENTIONS, "X", " Pepe ")

        assert key == "provider:social_mentions|x|pepe"

    def test_equivalent_inputs_collide(self):
        assert make_cache_key("provider", "SOCIAL_MENTIONS", "X", "PEPE") == make_cache_key(
            "provider", Capability.SOCIAL_MENTIONS, "x", "pepe"
        )

    def test_mapping_parts_ignore_argument_order(self):
        a = make_cache_key("search", {"q": "pepe", "limit": 10})
        b = make_cache_key("search", {"limit": 10, "q": "pepe"})

        assert a == b

    def test_none_part_renders_empty(self):
        assert make_cache_key("ns", "a", None, "b") == "ns:a||b"

    def test_blank_namespace_rejected(self):
        with pytest.raises(ValueError):
            make_cache_key("  ", "a")


# ============================================================
# HOUSEKEEPING TESTS
# ============================================================

class TestHousekeeper:
    """Tests for the periodic purge task."""

    def test_run_once_purges(self, store, clock):
        housekeeper = CacheHousekeeper(store, interval_seconds=300)
        store.set("a", 1, 1_000)
        clock.advance(seconds=2)

        removed = housekeeper.run_once()

        assert removed == 1
        assert housekeeper.runs == 1
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_loop_purges_on_interval(self, store, clock):
        housekeeper = CacheHousekeeper(store, interval_seconds=0.01)
        store.set("a", 1, 1_000)
        clock.advance(seconds=2)

        await housekeeper.start()
        assert housekeeper.is_running
        await asyncio.sleep(0.05)
        await housekeeper.stop()

        assert housekeeper.runs >= 1
        assert not housekeeper.is_running
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, store):
        housekeeper = CacheHousekeeper(store, interval_seconds=60)

        await housekeeper.start()
        await housekeeper.start()
        await housekeeper.stop()

        assert housekeeper.runs == 0
