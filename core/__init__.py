"""
Core Module Package.

Infrastructure shared by every other package of the report engine.

Components:
- clock: Injectable time source (epoch milliseconds)
- exceptions: Deployment / request error hierarchy
"""

from .clock import ClockProtocol, MockClock, SystemClock, from_epoch_ms, from_iso8601
from .exceptions import (
    ConfigurationError,
    InvalidReportRequestError,
    ReportEngineError,
)


__all__ = [
    "ClockProtocol",
    "MockClock",
    "SystemClock",
    "from_epoch_ms",
    "from_iso8601",
    "ConfigurationError",
    "InvalidReportRequestError",
    "ReportEngineError",
]
