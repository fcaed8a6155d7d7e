"""
Provider Data Models - Result variant, error taxonomy and capability payloads.

Every provider answers with a ProviderResult:
- SUCCESS: data was retrieved
- EMPTY: the source has nothing to report (no pairs, no mentions, ...)
- FAILURE: the data could not be determined, with an ErrorKind

EMPTY and FAILURE are different facts and must never be conflated.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


# ============================================================
# ENUMS
# ============================================================

class Capability(Enum):
    """A category of data the report needs."""
    MARKET_SNAPSHOT = "market_snapshot"
    SOCIAL_MENTIONS = "social_mentions"
    WHALE_ACTIVITY = "whale_activity"
    TECHNICAL_SIGNALS = "technical_signals"
    HOLDER_DISTRIBUTION = "holder_distribution"

    @classmethod
    def parse(cls, value: "str | Capability") -> "Capability":
        """Accept an enum member, its value or its name (case-insensitive)."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized or member.name.lower() == normalized:
                return member
        raise ValueError(f"Unknown capability: {value!r}")


class ErrorKind(Enum):
    """Why a capability could not be determined."""
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    UNCONFIGURED = "unconfigured"
    UNKNOWN = "unknown"
    ALL_PROVIDERS_FAILED = "all_providers_failed"


class ResultStatus(Enum):
    SUCCESS = "success"
    EMPTY = "empty"
    FAILURE = "failure"


class SourceStatus(Enum):
    """Health status of a provider."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    UNCONFIGURED = "unconfigured"
    UNKNOWN = "unknown"


# ============================================================
# RESULT VARIANT
# ============================================================

@dataclass(frozen=True)
class SubError:
    """One provider's failure inside an ALL_PROVIDERS_FAILED result."""
    provider: str
    error_kind: ErrorKind
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "error_kind": self.error_kind.value,
            "message": self.message,
        }


@dataclass(frozen=True)
class ProviderResult:
    """
    Tagged result of a provider or chain call.

    Build with the ``success``/``empty``/``failure`` constructors rather
    than the dataclass initializer.

    ``deadline_truncated`` marks a TIMEOUT caused by the caller's
    deadline rather than by the provider itself; such results are not
    cached.
    """
    status: ResultStatus
    data: Any = None
    error_kind: Optional[ErrorKind] = None
    message: str = ""
    sub_errors: tuple[SubError, ...] = ()
    deadline_truncated: bool = False

    @classmethod
    def success(cls, data: Any) -> "ProviderResult":
        return cls(status=ResultStatus.SUCCESS, data=data)

    @classmethod
    def empty(cls, message: str = "") -> "ProviderResult":
        return cls(status=ResultStatus.EMPTY, message=message)

    @classmethod
    def failure(
        cls,
        error_kind: ErrorKind,
        message: str = "",
        sub_errors: tuple[SubError, ...] = (),
        deadline_truncated: bool = False,
    ) -> "ProviderResult":
        return cls(
            status=ResultStatus.FAILURE,
            error_kind=error_kind,
            message=message,
            sub_errors=tuple(sub_errors),
            deadline_truncated=deadline_truncated,
        )

    @property
    def is_success(self) -> bool:
        return self.status == ResultStatus.SUCCESS

    @property
    def is_empty(self) -> bool:
        return self.status == ResultStatus.EMPTY

    @property
    def is_failure(self) -> bool:
        return self.status == ResultStatus.FAILURE

    @property
    def is_settled(self) -> bool:
        """True for SUCCESS or EMPTY: the chain stops here."""
        return self.status != ResultStatus.FAILURE

    def to_dict(self) -> dict[str, Any]:
        data = self.data
        if data is not None and hasattr(data, "to_dict"):
            data = data.to_dict()
        return {
            "status": self.status.value,
            "data": data,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "message": self.message or None,
            "sub_errors": [s.to_dict() for s in self.sub_errors],
        }


# ============================================================
# CAPABILITY PAYLOADS
# ============================================================

def _serialize(obj: Any) -> dict[str, Any]:
    """asdict() with datetimes and enums rendered for JSON."""
    def convert(value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, dict):
            return {k: convert(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [convert(v) for v in value]
        return value

    return convert(asdict(obj))


@dataclass(frozen=True)
class MarketSnapshot:
    """Price / liquidity / volume snapshot of the token's most liquid pair."""
    token_address: str
    symbol: str
    name: str
    chain: str
    price_usd: Optional[float] = None
    liquidity_usd: Optional[float] = None
    market_cap: Optional[float] = None
    fdv: Optional[float] = None
    volume_24h: Optional[float] = None
    price_change_24h: Optional[float] = None  # percent
    age_days: Optional[float] = None
    buys_24h: int = 0
    sells_24h: int = 0
    pair_address: str = ""
    dex_id: str = ""
    url: str = ""
    source: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _serialize(self)


@dataclass(frozen=True)
class Mention:
    """One social post mentioning the token."""
    platform: str
    content: str
    engagement: int = 0
    author: str = ""
    url: str = ""
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class SocialMentions:
    """Mention volume, sentiment split and reach over a rolling window."""
    current_count: int
    previous_count: int
    positive: int = 0
    negative: int = 0
    neutral: int = 0
    total_reach: int = 0
    window_hours: int = 24
    top_mentions: tuple[Mention, ...] = ()
    source: str = ""

    @property
    def change(self) -> int:
        return self.current_count - self.previous_count

    @property
    def change_percent(self) -> float:
        if self.previous_count > 0:
            return self.change / self.previous_count * 100
        return 100.0 if self.current_count > 0 else 0.0

    @property
    def sentiment_balance(self) -> float:
        """(positive - negative) / total, in [-1, 1]; 0 when nothing was classified."""
        total = self.positive + self.negative + self.neutral
        if total == 0:
            return 0.0
        return (self.positive - self.negative) / total

    def to_dict(self) -> dict[str, Any]:
        data = _serialize(self)
        data["change"] = self.change
        data["change_percent"] = round(self.change_percent, 2)
        data["sentiment_balance"] = round(self.sentiment_balance, 4)
        return data


@dataclass(frozen=True)
class WhaleActivity:
    """Estimated large-holder flow over the last 24 hours."""
    chain: str
    whale_threshold_usd: float
    whale_volume_usd: float
    total_buys_usd: float
    total_sells_usd: float
    net_flow_usd: float
    unique_whales: int
    largest_transaction_usd: float = 0.0
    smart_money_following: int = 0
    smart_money_active: bool = False
    smart_money_confidence: float = 0.0  # 0-95
    source: str = ""

    @property
    def trend(self) -> str:
        if self.net_flow_usd > 10_000:
            return "bullish"
        if self.net_flow_usd < -10_000:
            return "bearish"
        return "neutral"

    @property
    def activity(self) -> str:
        total = self.total_buys_usd + self.total_sells_usd
        if total > 100_000:
            return "high"
        if total > 25_000:
            return "medium"
        return "low"

    def to_dict(self) -> dict[str, Any]:
        data = _serialize(self)
        data["trend"] = self.trend
        data["activity"] = self.activity
        return data


@dataclass(frozen=True)
class TechnicalSignals:
    """Indicator-style signals derived from 24h market data."""
    rsi: float
    rsi_signal: str  # overbought / oversold / neutral
    macd: float
    macd_signal: float
    momentum_score: float  # signed, ~[-100, 100]
    momentum_strength: float  # 0-100
    volume_ratio: float
    support: Optional[float] = None
    resistance: Optional[float] = None
    overall: str = "neutral"  # bullish / bearish / neutral
    confidence: float = 50.0  # 0-100
    source: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _serialize(self)


@dataclass(frozen=True)
class HolderDistribution:
    """Holder count, concentration and contract security flags."""
    holder_count: Optional[int] = None
    top10_pct: Optional[float] = None
    risk_score: Optional[float] = None  # 0-100, source-reported
    mint_authority: Optional[bool] = None
    freeze_authority: Optional[bool] = None
    lp_locked: Optional[bool] = None
    lp_locked_pct: Optional[float] = None
    danger_count: int = 0
    warn_count: int = 0
    risks: tuple[str, ...] = ()
    source: str = ""

    @property
    def has_security_data(self) -> bool:
        """True when the contract-security fields were reported."""
        return self.risk_score is not None or self.mint_authority is not None

    def to_dict(self) -> dict[str, Any]:
        return _serialize(self)


# ============================================================
# HEALTH / METADATA
# ============================================================

@dataclass
class SourceHealth:
    """Health status of a provider."""
    status: SourceStatus
    last_check: datetime
    latency_ms: Optional[float] = None
    error_count: int = 0
    last_error: Optional[str] = None
    last_error_kind: Optional[ErrorKind] = None
    last_error_time: Optional[datetime] = None
    consecutive_failures: int = 0
    backoff_until: Optional[datetime] = None

    def is_healthy(self) -> bool:
        return self.status == SourceStatus.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "last_check": self.last_check.isoformat(),
            "latency_ms": self.latency_ms,
            "error_count": self.error_count,
            "last_error": self.last_error,
            "last_error_kind": self.last_error_kind.value if self.last_error_kind else None,
            "consecutive_failures": self.consecutive_failures,
            "backoff_until": self.backoff_until.isoformat() if self.backoff_until else None,
        }


@dataclass
class ProviderMetadata:
    """Static description of a provider."""
    name: str
    display_name: str
    capabilities: tuple[Capability, ...]
    requires_api_key: bool = False
    base_url: str = ""
    documentation_url: str = ""
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "capabilities": [c.value for c in self.capabilities],
            "requires_api_key": self.requires_api_key,
            "base_url": self.base_url,
            "documentation_url": self.documentation_url,
            "tags": self.tags,
        }


__all__ = [
    "Capability",
    "ErrorKind",
    "ResultStatus",
    "SourceStatus",
    "SubError",
    "ProviderResult",
    "MarketSnapshot",
    "Mention",
    "SocialMentions",
    "WhaleActivity",
    "TechnicalSignals",
    "HolderDistribution",
    "SourceHealth",
    "ProviderMetadata",
]
