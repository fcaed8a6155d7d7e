"""
Cache Housekeeping - Periodic purge of expired cache entries.

Lazy expiry already hides stale entries; this loop frees their memory.
"""

import asyncio
import logging
from typing import Optional

from .store import TTLCacheStore


logger = logging.getLogger(__name__)


class CacheHousekeeper:
    """
    Background task that purges expired entries on an interval.

    Usage:
        housekeeper = CacheHousekeeper(store, interval_seconds=300)
        await housekeeper.start()
        ...
        await housekeeper.stop()
    """

    DEFAULT_INTERVAL = 300  # 5 minutes

    def __init__(
        self,
        store: TTLCacheStore,
        interval_seconds: float = DEFAULT_INTERVAL,
    ) -> None:
        self._store = store
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self.runs = 0

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the purge loop. No-op if already running."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Started cache housekeeping (interval={self._interval}s)")

    async def stop(self) -> None:
        """Stop the purge loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Stopped cache housekeeping")

    def run_once(self) -> int:
        """Purge expired entries now."""
        removed = self._store.purge_expired()
        self.runs += 1
        return removed

    async def _loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self._interval)
                self.run_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Cache housekeeping error: {e}")
