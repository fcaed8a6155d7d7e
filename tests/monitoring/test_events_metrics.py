"""
Tests for fetch events and metrics.

============================================================
PURPOSE
============================================================
Verify event fan-out and metrics aggregation.

TEST PRINCIPLES:
- Verify read-only behavior
- A failing listener never affects other listeners

============================================================
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from monitoring import EventEmitter, FetchEvent, FetchMetrics, LatencyStats


# ============================================================
# FIXTURES
# ============================================================

def make_event(
    capability: str = "market_snapshot",
    provider: str = "dexscreener",
    cache_status: str = "miss",
    elapsed_ms: float = 100.0,
    outcome: str = "success",
    error_kind: str = None,
) -> FetchEvent:
    return FetchEvent(
        token_key="PEPE",
        capability=capability,
        provider=provider,
        cache_status=cache_status,
        elapsed_ms=elapsed_ms,
        outcome=outcome,
        error_kind=error_kind,
        timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def metrics():
    return FetchMetrics(max_recent=3)


# ============================================================
# EMITTER TESTS
# ============================================================

class TestEventEmitter:
    """Tests for EventEmitter."""

    def test_delivers_to_all_listeners(self):
        emitter = EventEmitter()
        first, second = MagicMock(), MagicMock()
        emitter.subscribe(first)
        emitter.subscribe(second)
        event = make_event()

        emitter.emit(event)

        first.assert_called_once_with(event)
        second.assert_called_once_with(event)

    def test_failing_listener_is_isolated(self):
        emitter = EventEmitter()
        broken = MagicMock(side_effect=RuntimeError("down"))
        healthy = MagicMock()
        emitter.subscribe(broken)
        emitter.subscribe(healthy)

        emitter.emit(make_event())

        healthy.assert_called_once()

    def test_unsubscribe(self):
        emitter = EventEmitter()
        listener = MagicMock()
        emitter.subscribe(listener)

        assert emitter.unsubscribe(listener) is True
        assert emitter.unsubscribe(listener) is False
        assert emitter.listener_count == 0

        emitter.emit(make_event())
        listener.assert_not_called()

    def test_event_to_dict(self):
        data = make_event(error_kind="timeout", outcome="failure", elapsed_ms=1.234).to_dict()

        assert data["error_kind"] == "timeout"
        assert data["elapsed_ms"] == 1.23
        assert data["timestamp"] == "2025-01-01T00:00:00+00:00"


# ============================================================
# METRICS TESTS
# ============================================================

class TestFetchMetrics:
    """Tests for FetchMetrics."""

    def test_latency_stats(self):
        stats = LatencyStats()
        for latency in (10, 30, 20):
            stats.record(latency)

        assert stats.avg_ms == 20
        assert stats.min_ms == 10
        assert stats.max_ms == 30

    def test_empty_metrics(self, metrics):
        assert metrics.total_events == 0
        assert metrics.cache_hit_rate == 0.0
        assert metrics.failure_rate == 0.0

    def test_summary(self, metrics):
        metrics.record_event(make_event(cache_status="hit", elapsed_ms=0.0))
        metrics.record_event(make_event(capability="social_mentions", provider="x"))
        metrics.record_event(make_event(
            capability="whale_activity",
            provider=None,
            outcome="failure",
            error_kind="timeout",
        ))
        metrics.record_event(make_event(capability="social_mentions", provider="reddit", outcome="empty"))

        summary = metrics.get_summary()

        assert summary["total_events"] == 4
        assert summary["cache_hit_rate_pct"] == 25.0
        assert summary["failure_rate_pct"] == 25.0
        assert summary["outcomes"] == {"success": 2, "failure": 1, "empty": 1}
        assert summary["error_kinds"] == {"timeout": 1}
        assert summary["latency_by_capability"]["social_mentions"]["count"] == 2
        assert set(summary["latency_by_provider"]) == {"dexscreener", "x", "reddit"}

    def test_recent_is_bounded(self, metrics):
        for i in range(5):
            metrics.record_event(make_event(elapsed_ms=float(i)))

        recent = metrics.get_recent()

        assert [e.elapsed_ms for e in recent] == [2.0, 3.0, 4.0]

    def test_reset(self, metrics):
        metrics.record_event(make_event())

        metrics.reset()

        assert metrics.total_events == 0
        assert metrics.get_recent() == []
