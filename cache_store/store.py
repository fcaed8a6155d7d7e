"""
TTL Cache Store - Bounded, lock-protected key/value store with expiry.

============================================================
RESPONSIBILITY
============================================================
Holds every cached provider result of the process.

- Each entry expires ``ttl_ms`` after it was stored
- An entry at or after its expiry instant is treated as absent
- Size never exceeds capacity after an insert
- Eviction order: expired entries first, then oldest-inserted

============================================================
DESIGN PRINCIPLES
============================================================
- Time comes from an injected clock (MockClock in tests)
- Never raises on set/get
- One instance per process, passed in explicitly

============================================================
"""

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from core.clock import ClockProtocol, SystemClock
from core.exceptions import ConfigurationError


logger = logging.getLogger(__name__)

T = TypeVar("T")


# ============================================================
# ENTRY
# ============================================================

@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A single stored value with its lifetime (epoch milliseconds)."""
    key: str
    value: T
    stored_at: float
    expires_at: float

    def is_expired(self, now_ms: float) -> bool:
        return now_ms >= self.expires_at

    def remaining_ms(self, now_ms: float) -> float:
        return max(0.0, self.expires_at - now_ms)


# ============================================================
# STORE
# ============================================================

class TTLCacheStore:
    """
    In-memory TTL cache with bounded capacity.

    Usage:
        store = TTLCacheStore(clock=SystemClock(), capacity=1000)
        store.set("provider:market_snapshot|dexscreener|pepe", result, 120_000)
        cached = store.get("provider:market_snapshot|dexscreener|pepe")
    """

    DEFAULT_CAPACITY = 1000

    def __init__(
        self,
        clock: Optional[ClockProtocol] = None,
        capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        if capacity < 1:
            raise ConfigurationError(
                "Cache capacity must be at least 1",
                config_key="cache_capacity",
                actual_value=capacity,
            )

        self._clock = clock or SystemClock()
        self._capacity = capacity
        self._entries: "OrderedDict[str, CacheEntry[Any]]" = OrderedDict()
        self._lock = threading.RLock()

        self._stats = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "evictions": 0,
            "expirations": 0,
        }

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ─────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────

    def get(self, key: str) -> Optional[Any]:
        """
        Get a live value.

        Expired entries are deleted on access and reported as absent.
        """
        now = self._clock.timestamp_ms()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats["misses"] += 1
                return None

            if entry.is_expired(now):
                del self._entries[key]
                self._stats["expirations"] += 1
                self._stats["misses"] += 1
                return None

            self._stats["hits"] += 1
            return entry.value

    def get_entry(self, key: str) -> Optional[CacheEntry[Any]]:
        """Get the live entry (value plus timestamps) without touching stats."""
        now = self._clock.timestamp_ms()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.is_expired(now):
                return None
            return entry

    def set(self, key: str, value: Any, ttl_ms: float) -> None:
        """
        Store a value for ``ttl_ms`` milliseconds.

        A non-positive TTL stores nothing and drops any previous entry.
        """
        now = self._clock.timestamp_ms()
        with self._lock:
            if ttl_ms <= 0:
                self._entries.pop(key, None)
                logger.debug(f"[cache] Non-positive TTL for {key}, not stored")
                return

            # Re-setting a key counts as a fresh insertion
            self._entries.pop(key, None)

            if len(self._entries) >= self._capacity:
                self._purge_expired_locked(now)

            while len(self._entries) >= self._capacity:
                evicted_key, _ = self._entries.popitem(last=False)
                self._stats["evictions"] += 1
                logger.debug(f"[cache] Evicted oldest entry {evicted_key}")

            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                stored_at=now,
                expires_at=now + ttl_ms,
            )
            self._stats["sets"] += 1

    def has(self, key: str) -> bool:
        """Check for a live entry (expired entries are removed)."""
        now = self._clock.timestamp_ms()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.is_expired(now):
                del self._entries[key]
                self._stats["expirations"] += 1
                return False
            return True

    def delete(self, key: str) -> bool:
        """Remove an entry. Returns True if something was removed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """
        Physically remove all expired entries.

        Returns:
            Number of entries removed
        """
        now = self._clock.timestamp_ms()
        with self._lock:
            removed = self._purge_expired_locked(now)
        if removed:
            logger.debug(f"[cache] Purged {removed} expired entries")
        return removed

    def stats(self) -> dict[str, Any]:
        """Get store statistics."""
        now = self._clock.timestamp_ms()
        with self._lock:
            total = len(self._entries)
            expired = sum(1 for e in self._entries.values() if e.is_expired(now))
            lookups = self._stats["hits"] + self._stats["misses"]
            hit_rate = self._stats["hits"] / lookups * 100 if lookups > 0 else 0

            return {
                **self._stats,
                "total": total,
                "active": total - expired,
                "expired": expired,
                "capacity": self._capacity,
                "hit_rate_pct": round(hit_rate, 2),
            }

    # ─────────────────────────────────────────────────────────────
    # Internal methods
    # ─────────────────────────────────────────────────────────────

    def _purge_expired_locked(self, now: float) -> int:
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for k in expired:
            del self._entries[k]
        self._stats["expirations"] += len(expired)
        return len(expired)


__all__ = ["CacheEntry", "TTLCacheStore"]
