"""
Aggregation Package.

Concurrent, cached, fallback-aware fetching of report capabilities.

Modules:
- config: ReportConfig, ChainConfig, ProviderConfig
- chain: CachedProviderCall, FallbackChain
- aggregator: ReportAggregator
- factory: build_aggregator
"""

from .aggregator import ReportAggregator
from .chain import CachedProviderCall, FallbackChain
from .config import ChainConfig, ProviderConfig, ReportConfig
from .factory import PROVIDER_TYPES, build_aggregator, build_chain, create_provider


__all__ = [
    "CachedProviderCall",
    "ChainConfig",
    "FallbackChain",
    "PROVIDER_TYPES",
    "ProviderConfig",
    "ReportAggregator",
    "ReportConfig",
    "build_aggregator",
    "build_chain",
    "create_provider",
]
