"""
Report Models - Per-capability outcomes and the consolidated report.

A Report is built fresh for every request and owned by the caller; only
the underlying provider results are ever cached.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from indicators.models import Indicator, IndicatorName
from providers.models import Capability, ErrorKind, ProviderResult


class CacheStatus(Enum):
    HIT = "hit"
    MISS = "miss"
    BYPASS = "bypass"


class Availability(Enum):
    """What a report can say about one capability."""
    AVAILABLE = "available"
    EMPTY = "empty"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class FetchOutcome:
    """Result of one capability for one report (request-scoped)."""
    capability: Capability
    provider_name: Optional[str]
    result: ProviderResult
    cache_status: CacheStatus
    elapsed_ms: float = 0.0

    @property
    def data(self) -> Optional[Any]:
        return self.result.data if self.result.is_success else None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.result.error_kind if self.result.is_failure else None

    @property
    def availability(self) -> Availability:
        if self.result.is_success:
            return Availability.AVAILABLE
        if self.result.is_empty:
            return Availability.EMPTY
        return Availability.UNAVAILABLE

    def to_dict(self) -> dict[str, Any]:
        data = self.data
        return {
            "capability": self.capability.value,
            "provider": self.provider_name,
            "availability": self.availability.value,
            "cache_status": self.cache_status.value,
            "elapsed_ms": round(self.elapsed_ms, 2),
            "data": data.to_dict() if hasattr(data, "to_dict") else data,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "message": self.result.message or None,
            "sub_errors": [s.to_dict() for s in self.result.sub_errors],
        }


@dataclass(frozen=True)
class ReportWarning:
    """A capability that could not be determined."""
    capability: Capability
    reason: ErrorKind
    detail: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "capability": self.capability.value,
            "reason": self.reason.value,
            "detail": self.detail,
        }


@dataclass
class Report:
    """
    Consolidated token research report.

    Unavailable data is None, never 0: callers must check availability()
    before reading a capability.
    """
    token_key: str
    generated_at: datetime
    per_capability: dict[Capability, FetchOutcome] = field(default_factory=dict)
    indicators: dict[IndicatorName, Indicator] = field(default_factory=dict)
    warnings: list[ReportWarning] = field(default_factory=list)

    @property
    def capabilities(self) -> list[Capability]:
        return list(self.per_capability)

    @property
    def is_complete(self) -> bool:
        """True when no requested capability failed."""
        return not self.warnings

    def availability(self, capability: Capability) -> Availability:
        outcome = self.per_capability.get(capability)
        if outcome is None:
            return Availability.UNAVAILABLE
        return outcome.availability

    def data(self, capability: Capability) -> Optional[Any]:
        outcome = self.per_capability.get(capability)
        return outcome.data if outcome else None

    def indicator(self, name: IndicatorName) -> Optional[Indicator]:
        return self.indicators.get(name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "token_key": self.token_key,
            "generated_at": self.generated_at.isoformat(),
            "capabilities": {
                cap.value: outcome.to_dict() for cap, outcome in self.per_capability.items()
            },
            "indicators": {
                name.value: indicator.to_dict() for name, indicator in self.indicators.items()
            },
            "warnings": [w.to_dict() for w in self.warnings],
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)
