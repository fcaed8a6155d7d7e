"""
Monitoring Package.

============================================================
PURPOSE
============================================================
Strictly observational view of the report engine.

PRINCIPLES:
1. READ-ONLY - Listeners never change a report
2. STRUCTURED - Events, not formatted log text
3. RESILIENT - A failing listener never fails a report

============================================================
"""

from .events import EventEmitter, EventListener, FetchEvent
from .metrics import FetchMetrics, LatencyStats


__all__ = [
    "EventEmitter",
    "EventListener",
    "FetchEvent",
    "FetchMetrics",
    "LatencyStats",
]
