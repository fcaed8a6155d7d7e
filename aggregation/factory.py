"""
Aggregator Factory - Wire configuration into a ready ReportAggregator.

Builds, per call:
- one TTLCacheStore (the only shared mutable state) and its housekeeper
- one provider instance per chain entry
- one FallbackChain per capability
"""

import logging
from typing import Optional

from cache_store import CacheHousekeeper, TTLCacheStore
from core.clock import ClockProtocol, SystemClock
from core.exceptions import ConfigurationError
from indicators import IndicatorScorer
from monitoring.events import EventEmitter
from providers.base import BaseProvider
from providers.models import Capability
from providers.sources import (
    BirdeyeHolderSource,
    DemoDataProvider,
    DexScreenerMarketSource,
    DexScreenerTechnicalSource,
    DexScreenerWhaleSource,
    EtherscanHolderSource,
    RedditMentionsSource,
    RedditOAuthMentionsSource,
    RugCheckHolderSource,
    XMentionsSource,
)
from reporting import ReportAssembler

from .aggregator import ReportAggregator
from .chain import CachedProviderCall, FallbackChain
from .config import ChainConfig, ProviderConfig, ReportConfig


logger = logging.getLogger(__name__)


# Provider type name -> provider class, per capability
PROVIDER_TYPES: dict[str, dict[Capability, type[BaseProvider]]] = {
    "dexscreener": {
        Capability.MARKET_SNAPSHOT: DexScreenerMarketSource,
        Capability.WHALE_ACTIVITY: DexScreenerWhaleSource,
        Capability.TECHNICAL_SIGNALS: DexScreenerTechnicalSource,
    },
    "x": {Capability.SOCIAL_MENTIONS: XMentionsSource},
    "reddit_oauth": {Capability.SOCIAL_MENTIONS: RedditOAuthMentionsSource},
    "reddit": {Capability.SOCIAL_MENTIONS: RedditMentionsSource},
    "rugcheck": {Capability.HOLDER_DISTRIBUTION: RugCheckHolderSource},
    "etherscan": {Capability.HOLDER_DISTRIBUTION: EtherscanHolderSource},
    "birdeye": {Capability.HOLDER_DISTRIBUTION: BirdeyeHolderSource},
    "demo": {capability: DemoDataProvider for capability in Capability},
}

DEMO_PROVIDER_TYPE = "demo"


def create_provider(
    capability: Capability,
    provider_config: ProviderConfig,
    chain_config: ChainConfig,
    config: ReportConfig,
    clock: Optional[ClockProtocol] = None,
) -> BaseProvider:
    """
    Instantiate one chain entry.

    Provider-level TTLs override the chain's; an explicit api_key
    overrides the credential looked up by credential_key.

    Raises:
        ConfigurationError: unknown provider type, or a type that cannot
            serve the capability
    """
    classes = PROVIDER_TYPES.get(provider_config.type)
    if classes is None:
        raise ConfigurationError(
            f"Unknown provider type '{provider_config.type}'",
            config_key=f"chains.{capability.value}.providers",
            actual_value=provider_config.type,
        )

    provider_cls = classes.get(capability)
    if provider_cls is None:
        raise ConfigurationError(
            f"Provider '{provider_config.type}' cannot serve {capability.value}",
            config_key=f"chains.{capability.value}.providers",
            actual_value=provider_config.type,
        )

    api_key = provider_config.api_key or config.credential(provider_config.credential_key)

    return provider_cls(
        capability=capability,
        api_key=api_key,
        timeout=provider_config.timeout_seconds,
        success_ttl_ms=(
            provider_config.success_ttl_ms
            if provider_config.success_ttl_ms is not None
            else chain_config.success_ttl_ms
        ),
        error_ttl_ms=(
            provider_config.error_ttl_ms
            if provider_config.error_ttl_ms is not None
            else chain_config.error_ttl_ms
        ),
        max_retries=provider_config.max_retries,
        clock=clock,
    )


def build_chain(
    chain_config: ChainConfig,
    config: ReportConfig,
    cached_call: CachedProviderCall,
    clock: Optional[ClockProtocol] = None,
) -> FallbackChain:
    """Build the fallback chain for one capability."""
    entries = list(chain_config.enabled_providers)
    if config.enable_demo and all(p.type != DEMO_PROVIDER_TYPE for p in entries):
        entries.append(ProviderConfig(type=DEMO_PROVIDER_TYPE))

    providers = [
        create_provider(chain_config.capability, entry, chain_config, config, clock)
        for entry in entries
    ]

    unconfigured = [p.name for p in providers if not p.is_configured]
    if unconfigured:
        logger.warning(
            f"{chain_config.capability.value}: providers without credentials: {unconfigured}"
        )

    return FallbackChain(chain_config.capability, providers, cached_call)


def build_aggregator(
    config: Optional[ReportConfig] = None,
    clock: Optional[ClockProtocol] = None,
    emitter: Optional[EventEmitter] = None,
    store: Optional[TTLCacheStore] = None,
) -> ReportAggregator:
    """
    Build a ReportAggregator from configuration.

    Usage:
        config = ReportConfig.from_env()
        async with build_aggregator(config) as aggregator:
            report = await aggregator.build_full_report("PEPE")
    """
    config = config or ReportConfig.default()
    config.validate()
    clock = clock or SystemClock()

    store = store or TTLCacheStore(clock=clock, capacity=config.cache_capacity)
    cached_call = CachedProviderCall(store)

    chains = {
        capability: build_chain(chain_config, config, cached_call, clock)
        for capability, chain_config in config.chains.items()
    }

    logger.info(
        "Built report aggregator: "
        + ", ".join(f"{c.value}={chain.provider_names}" for c, chain in chains.items())
    )

    return ReportAggregator(
        chains=chains,
        scorer=IndicatorScorer(),
        assembler=ReportAssembler(),
        emitter=emitter,
        clock=clock,
        default_deadline_ms=config.deadline_ms,
        housekeeper=CacheHousekeeper(store, interval_seconds=config.housekeeping_interval_seconds),
    )
