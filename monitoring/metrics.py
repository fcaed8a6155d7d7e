"""
Fetch Metrics - In-process aggregation of FetchEvents.

============================================================
METRICS TRACKED
============================================================
- Latency per capability and per provider
- Cache hit / miss / bypass counts
- Outcome counts (success / empty / failure)
- Failure counts by ErrorKind

============================================================
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List

from .events import FetchEvent


logger = logging.getLogger(__name__)


@dataclass
class LatencyStats:
    """Latency statistics."""

    count: int = 0
    total_ms: float = 0.0
    min_ms: float = float("inf")
    max_ms: float = 0.0

    @property
    def avg_ms(self) -> float:
        """Average latency in ms."""
        return self.total_ms / self.count if self.count > 0 else 0.0

    def record(self, latency_ms: float) -> None:
        """Record a latency measurement."""
        self.count += 1
        self.total_ms += latency_ms
        self.min_ms = min(self.min_ms, latency_ms)
        self.max_ms = max(self.max_ms, latency_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "avg_ms": round(self.avg_ms, 2),
            "min_ms": round(self.min_ms, 2) if self.count else None,
            "max_ms": round(self.max_ms, 2),
        }


class FetchMetrics:
    """
    Metrics collector fed by the aggregator's EventEmitter.

    Usage:
        metrics = FetchMetrics()
        emitter.subscribe(metrics.record_event)
        ...
        print(metrics.get_summary())
    """

    def __init__(self, max_recent: int = 100):
        self._start_time = datetime.now(timezone.utc)

        self._latency_by_capability: Dict[str, LatencyStats] = defaultdict(LatencyStats)
        self._latency_by_provider: Dict[str, LatencyStats] = defaultdict(LatencyStats)

        self._cache_status: Dict[str, int] = defaultdict(int)
        self._outcomes: Dict[str, int] = defaultdict(int)
        self._error_kinds: Dict[str, int] = defaultdict(int)

        # Last N events for debugging
        self._recent: List[FetchEvent] = []
        self._max_recent = max_recent

    # --------------------------------------------------------
    # RECORDING
    # --------------------------------------------------------

    def record_event(self, event: FetchEvent) -> None:
        """Record one fetch event."""
        self._latency_by_capability[event.capability].record(event.elapsed_ms)
        self._latency_by_capability["_all"].record(event.elapsed_ms)
        if event.provider:
            self._latency_by_provider[event.provider].record(event.elapsed_ms)

        self._cache_status[event.cache_status] += 1
        self._outcomes[event.outcome] += 1
        if event.error_kind:
            self._error_kinds[event.error_kind] += 1

        self._recent.append(event)
        if len(self._recent) > self._max_recent:
            self._recent.pop(0)

    # --------------------------------------------------------
    # QUERIES
    # --------------------------------------------------------

    @property
    def total_events(self) -> int:
        return self._latency_by_capability["_all"].count

    @property
    def cache_hit_rate(self) -> float:
        """Cache hit rate in percent over all fetches."""
        total = sum(self._cache_status.values())
        return self._cache_status["hit"] / total * 100 if total > 0 else 0.0

    @property
    def failure_rate(self) -> float:
        """Failure rate in percent over all fetches."""
        total = sum(self._outcomes.values())
        return self._outcomes["failure"] / total * 100 if total > 0 else 0.0

    def get_recent(self, limit: int = 20) -> List[FetchEvent]:
        return self._recent[-limit:]

    def get_summary(self) -> Dict[str, Any]:
        """Get metrics summary."""
        uptime = (datetime.now(timezone.utc) - self._start_time).total_seconds()

        return {
            "uptime_seconds": round(uptime, 1),
            "total_events": self.total_events,
            "cache_hit_rate_pct": round(self.cache_hit_rate, 2),
            "failure_rate_pct": round(self.failure_rate, 2),
            "cache_status": dict(self._cache_status),
            "outcomes": dict(self._outcomes),
            "error_kinds": dict(self._error_kinds),
            "latency_by_capability": {
                k: v.to_dict() for k, v in self._latency_by_capability.items()
            },
            "latency_by_provider": {
                k: v.to_dict() for k, v in self._latency_by_provider.items()
            },
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self.__init__(max_recent=self._max_recent)
        logger.info("Fetch metrics reset")
