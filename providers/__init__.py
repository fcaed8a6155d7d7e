"""
Providers Module - Unified contract for unreliable external data sources.

Every provider:
- Serves exactly one Capability per instance
- Answers fetch(token_key, deadline_ms) with a ProviderResult
- NEVER raises to the caller

Usage:
    from providers.sources import DexScreenerMarketSource

    provider = DexScreenerMarketSource()
    result = await provider.fetch("So11111111111111111111111111111111111111112", 5000)
    if result.is_success:
        print(result.data.liquidity_usd)
"""

from .base import BaseProvider, HttpProvider
from .exceptions import (
    AuthenticationError,
    FetchError,
    ParseError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    UnconfiguredError,
    error_kind_for,
)
from .models import (
    Capability,
    ErrorKind,
    HolderDistribution,
    MarketSnapshot,
    Mention,
    ProviderMetadata,
    ProviderResult,
    ResultStatus,
    SocialMentions,
    SourceHealth,
    SourceStatus,
    SubError,
    TechnicalSignals,
    WhaleActivity,
)


__all__ = [
    # Base
    "BaseProvider",
    "HttpProvider",
    # Exceptions
    "AuthenticationError",
    "FetchError",
    "ParseError",
    "ProviderError",
    "ProviderTimeoutError",
    "RateLimitError",
    "UnconfiguredError",
    "error_kind_for",
    # Models
    "Capability",
    "ErrorKind",
    "HolderDistribution",
    "MarketSnapshot",
    "Mention",
    "ProviderMetadata",
    "ProviderResult",
    "ResultStatus",
    "SocialMentions",
    "SourceHealth",
    "SourceStatus",
    "SubError",
    "TechnicalSignals",
    "WhaleActivity",
]
