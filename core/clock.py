"""
Core Module - Clock.

============================================================
RESPONSIBILITY
============================================================
Time source for cache expiry, provider backoff and report timestamps.

Cache entries and TTLs are expressed in epoch milliseconds, so every
clock answers timestamp_ms() as its primary reading.

============================================================
DESIGN PRINCIPLES
============================================================
- Injected explicitly, never looked up from a global
- UTC only
- MockClock moves only when a test advances it

============================================================
"""

import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


def _as_utc(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt.astimezone(timezone.utc)


# ============================================================
# CLOCK PROTOCOL
# ============================================================

class ClockProtocol(ABC):
    """What the engine needs from a clock."""

    @abstractmethod
    def timestamp_ms(self) -> float:
        """Current epoch time in milliseconds."""
        pass

    def timestamp(self) -> float:
        """Current epoch time in seconds."""
        return self.timestamp_ms() / 1000.0

    def now(self) -> datetime:
        """Current time as an aware UTC datetime."""
        return from_epoch_ms(self.timestamp_ms())


# ============================================================
# SYSTEM CLOCK
# ============================================================

class SystemClock(ClockProtocol):
    """Wall-clock time."""

    def timestamp_ms(self) -> float:
        return time.time() * 1000.0

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


# ============================================================
# MOCK CLOCK (TESTING)
# ============================================================

class MockClock(ClockProtocol):
    """
    Manually driven clock for TTL and backoff tests.

    Usage:
        clock = MockClock(datetime(2025, 1, 1, tzinfo=timezone.utc))
        store = TTLCacheStore(clock=clock)
        clock.advance(milliseconds=999)
    """

    def __init__(self, initial_time: Optional[datetime] = None):
        start = _as_utc(initial_time) if initial_time is not None else datetime.now(timezone.utc)
        self._now_ms = start.timestamp() * 1000.0
        self._lock = threading.Lock()

    def timestamp_ms(self) -> float:
        with self._lock:
            return self._now_ms

    def advance(self, seconds: float = 0, **kwargs) -> None:
        """
        Move time forward.

        Args:
            seconds: Seconds to add
            **kwargs: Extra timedelta units (milliseconds, minutes, hours)
        """
        delta = timedelta(seconds=seconds, **kwargs)
        if delta < timedelta(0):
            raise ValueError("MockClock cannot move backwards")
        with self._lock:
            self._now_ms += delta / timedelta(milliseconds=1)


# ============================================================
# CONVERSIONS
# ============================================================

def from_epoch_ms(value_ms: float) -> datetime:
    """Epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(value_ms / 1000.0, tz=timezone.utc)


def from_iso8601(iso_string: str) -> datetime:
    """Parse provider timestamps such as '2025-01-01T12:00:00.000Z'."""
    if iso_string.endswith("Z"):
        iso_string = iso_string[:-1] + "+00:00"
    return _as_utc(datetime.fromisoformat(iso_string))


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "from_epoch_ms",
    "from_iso8601",
]
