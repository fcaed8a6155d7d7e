"""
Fallback Chain - Ordered, cached provider attempts for one capability.

Provides:
- Cache-wrapped provider calls with independent success / error TTLs
- Sequential fallback to the next provider on failure
- Short-circuit on the first SUCCESS or EMPTY
- Deadline sharing between attempts
"""

import logging
import time
from typing import Callable, Optional, Protocol, Sequence

from cache_store import TTLCacheStore, make_cache_key
from providers.models import Capability, ErrorKind, ProviderResult, SubError
from reporting.models import CacheStatus, FetchOutcome


logger = logging.getLogger(__name__)


class Provider(Protocol):
    """What the chain needs from a provider."""

    name: str
    success_ttl_ms: float
    error_ttl_ms: float

    async def fetch(self, token_key: str, deadline_ms: Optional[float] = None) -> ProviderResult:
        ...


class CachedProviderCall:
    """
    Calls a provider through the shared TTL cache.

    - HIT: the cached ProviderResult (failures included), no I/O
    - MISS: call the provider and store the result
    - BYPASS (use_cache=False): skip the read, still store the result

    SUCCESS and EMPTY are stored for the provider's success TTL, FAILURE
    for its error TTL. Timeouts caused by the caller's deadline are not
    stored.
    """

    NAMESPACE = "provider"

    def __init__(self, store: TTLCacheStore) -> None:
        self._store = store

    @staticmethod
    def cache_key(capability: Capability, provider_name: str, token_key: str) -> str:
        return make_cache_key(CachedProviderCall.NAMESPACE, capability, provider_name, token_key)

    async def call(
        self,
        capability: Capability,
        provider: Provider,
        token_key: str,
        deadline_ms: Optional[float] = None,
        use_cache: bool = True,
    ) -> tuple[ProviderResult, CacheStatus]:
        """
        Fetch through the cache.

        Returns:
            (result, cache_status)
        """
        key = self.cache_key(capability, provider.name, token_key)

        if use_cache:
            cached = self._store.get(key)
            if cached is not None:
                logger.debug(f"[{provider.name}] Cache hit for {key}")
                return cached, CacheStatus.HIT
            logger.debug(f"[{provider.name}] Cache miss for {key}")

        try:
            result = await provider.fetch(token_key, deadline_ms)
        except Exception as e:
            logger.error(f"[{provider.name}] Provider raised instead of returning a result: {e}")
            result = ProviderResult.failure(ErrorKind.UNKNOWN, f"{type(e).__name__}: {e}")

        self._store_result(key, provider, result)
        return result, CacheStatus.MISS if use_cache else CacheStatus.BYPASS

    def _store_result(self, key: str, provider: Provider, result: ProviderResult) -> None:
        if result.is_failure and result.deadline_truncated:
            logger.debug(f"[{provider.name}] Deadline-truncated timeout not cached")
            return

        ttl = provider.error_ttl_ms if result.is_failure else provider.success_ttl_ms
        self._store.set(key, result, ttl)


class FallbackChain:
    """
    Ordered providers for one capability.

    Features:
    - Providers are tried strictly one after another
    - The first SUCCESS or EMPTY wins; later providers are not called
    - All failing -> ALL_PROVIDERS_FAILED with per-provider sub-errors
      (a single-provider chain returns that provider's failure as is)
    - No providers -> UNCONFIGURED, without I/O

    Usage:
        chain = FallbackChain(Capability.SOCIAL_MENTIONS, [x, reddit], cached_call)
        outcome = await chain.fetch("PEPE", deadline_ms=5000)
    """

    def __init__(
        self,
        capability: Capability,
        providers: Sequence[Provider],
        cached_call: CachedProviderCall,
    ) -> None:
        self.capability = capability
        self._providers = list(providers)
        self._cached_call = cached_call

        # Event callbacks
        self._on_fallback_callbacks: list[Callable[[Capability, str, str], None]] = []

    @property
    def providers(self) -> list[Provider]:
        return list(self._providers)

    @property
    def provider_names(self) -> list[str]:
        return [p.name for p in self._providers]

    def on_fallback(self, callback: Callable[[Capability, str, str], None]) -> None:
        """Register callback for provider fallback (capability, from, to)."""
        self._on_fallback_callbacks.append(callback)

    async def fetch(
        self,
        token_key: str,
        deadline_ms: Optional[float] = None,
        use_cache: bool = True,
    ) -> FetchOutcome:
        """
        Run the chain.

        Never raises; the outcome carries a SUCCESS, EMPTY or FAILURE result.

        Args:
            token_key: Token address or symbol
            deadline_ms: Time budget shared by all attempts
            use_cache: False bypasses cache reads (results are still stored)
        """
        start = time.monotonic()
        miss_status = CacheStatus.MISS if use_cache else CacheStatus.BYPASS

        if not self._providers:
            logger.warning(f"No providers configured for {self.capability.value}")
            return FetchOutcome(
                capability=self.capability,
                provider_name=None,
                result=ProviderResult.failure(
                    ErrorKind.UNCONFIGURED,
                    f"No providers configured for {self.capability.value}",
                ),
                cache_status=miss_status,
                elapsed_ms=0.0,
            )

        deadline_at = start + deadline_ms / 1000.0 if deadline_ms is not None else None
        failures: list[tuple[str, ProviderResult, CacheStatus]] = []

        for provider in self._providers:
            remaining_ms = None
            if deadline_at is not None:
                remaining_ms = (deadline_at - time.monotonic()) * 1000.0
                if remaining_ms <= 0:
                    failures.append((
                        provider.name,
                        ProviderResult.failure(
                            ErrorKind.TIMEOUT,
                            "Deadline exhausted before this provider was tried",
                            deadline_truncated=True,
                        ),
                        miss_status,
                    ))
                    continue

            result, cache_status = await self._cached_call.call(
                self.capability, provider, token_key, remaining_ms, use_cache
            )

            if result.is_settled:
                if failures:
                    self._on_fallback(failures[-1][0], provider.name)
                return FetchOutcome(
                    capability=self.capability,
                    provider_name=provider.name,
                    result=result,
                    cache_status=cache_status,
                    elapsed_ms=(time.monotonic() - start) * 1000.0,
                )

            logger.warning(
                f"[{provider.name}] {self.capability.value} failed: "
                f"{result.error_kind.value if result.error_kind else 'unknown'}"
            )
            failures.append((provider.name, result, cache_status))

        return self._all_failed(failures, start)

    def _all_failed(
        self,
        failures: list[tuple[str, ProviderResult, CacheStatus]],
        start: float,
    ) -> FetchOutcome:
        elapsed = (time.monotonic() - start) * 1000.0

        if len(failures) == 1:
            name, result, cache_status = failures[0]
            return FetchOutcome(
                capability=self.capability,
                provider_name=name,
                result=result,
                cache_status=cache_status,
                elapsed_ms=elapsed,
            )

        sub_errors = tuple(
            SubError(provider=name, error_kind=result.error_kind or ErrorKind.UNKNOWN, message=result.message)
            for name, result, _ in failures
        )
        statuses = {status for _, _, status in failures}
        cache_status = statuses.pop() if len(statuses) == 1 else CacheStatus.MISS

        logger.error(
            f"All providers failed for {self.capability.value}: "
            f"{[s.provider for s in sub_errors]}"
        )

        return FetchOutcome(
            capability=self.capability,
            provider_name=None,
            result=ProviderResult.failure(
                ErrorKind.ALL_PROVIDERS_FAILED,
                f"All {len(failures)} providers failed",
                sub_errors=sub_errors,
            ),
            cache_status=cache_status,
            elapsed_ms=elapsed,
        )

    def _on_fallback(self, from_provider: str, to_provider: str) -> None:
        """Handle provider fallback."""
        logger.warning(f"Fallback for {self.capability.value}: {from_provider} -> {to_provider}")

        for callback in self._on_fallback_callbacks:
            try:
                callback(self.capability, from_provider, to_provider)
            except Exception as e:
                logger.error(f"Fallback callback error: {e}")

    async def close(self) -> None:
        """Close all providers."""
        for provider in self._providers:
            close = getattr(provider, "close", None)
            if close is None:
                continue
            try:
                await close()
            except Exception as e:
                logger.error(f"Error closing provider {provider.name}: {e}")
