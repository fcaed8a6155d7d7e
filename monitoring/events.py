"""
Fetch Events - Structured record of every capability fetch.

============================================================
PURPOSE
============================================================
The aggregator emits one FetchEvent per requested capability per report.
Consumers (metrics, log shippers, tests) subscribe to the EventEmitter;
the aggregator never formats instrumentation text itself.

EVENT FIELDS:
- capability: capability value ("social_mentions", ...)
- provider: name of the provider whose result was used (None if none)
- cache_status: hit / miss / bypass
- elapsed_ms: wall time spent on the capability
- outcome: success / empty / failure
- error_kind: ErrorKind value for failures

============================================================
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchEvent:
    """One capability fetch, as seen by the aggregator."""
    token_key: str
    capability: str
    provider: Optional[str]
    cache_status: str
    elapsed_ms: float
    outcome: str
    error_kind: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "token_key": self.token_key,
            "capability": self.capability,
            "provider": self.provider,
            "cache_status": self.cache_status,
            "elapsed_ms": round(self.elapsed_ms, 2),
            "outcome": self.outcome,
            "error_kind": self.error_kind,
            "timestamp": self.timestamp.isoformat(),
        }


EventListener = Callable[[FetchEvent], None]


class EventEmitter:
    """
    Synchronous fan-out of FetchEvents to registered listeners.

    A failing listener is logged and never affects the report or the
    other listeners.

    Usage:
        emitter = EventEmitter()
        emitter.subscribe(metrics.record_event)
        emitter.emit(event)
    """

    def __init__(self) -> None:
        self._listeners: list[EventListener] = []

    def subscribe(self, listener: EventListener) -> None:
        """Register a listener."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> bool:
        """Remove a listener. Returns True if it was registered."""
        if listener in self._listeners:
            self._listeners.remove(listener)
            return True
        return False

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def emit(self, event: FetchEvent) -> None:
        """Deliver an event to every listener."""
        for listener in self._listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Fetch event listener error: {e}")
