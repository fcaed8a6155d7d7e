"""
Tests for the fallback chain and cache-wrapped provider calls.

============================================================
PURPOSE
============================================================
Verify ordering, short-circuiting, caching policy and failure
aggregation of FallbackChain / CachedProviderCall.

TEST PRINCIPLES:
- Providers are AsyncMock-backed stubs counting their calls
- Cache time is driven by MockClock

============================================================
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from aggregation.chain import CachedProviderCall, FallbackChain
from cache_store import TTLCacheStore
from core.clock import MockClock
from providers.models import Capability, ErrorKind, ProviderResult
from reporting import CacheStatus


SOCIAL = Capability.SOCIAL_MENTIONS


# ============================================================
# FIXTURES
# ============================================================

def stub_provider(
    name: str,
    result: Optional[ProviderResult] = None,
    success_ttl_ms: int = 900_000,
    error_ttl_ms: int = 300_000,
    side_effect=None,
) -> MagicMock:
    """Provider stub with an AsyncMock fetch()."""
    provider = MagicMock()
    provider.name = name
    provider.success_ttl_ms = success_ttl_ms
    provider.error_ttl_ms = error_ttl_ms
    provider.fetch = AsyncMock(return_value=result, side_effect=side_effect)
    provider.close = AsyncMock()
    return provider


@pytest.fixture
def clock():
    return MockClock(datetime(2025, 1, 1, tzinfo=timezone.utc))


@pytest.fixture
def store(clock):
    return TTLCacheStore(clock=clock, capacity=100)


@pytest.fixture
def cached_call(store):
    return CachedProviderCall(store)


def ok(data="data") -> ProviderResult:
    return ProviderResult.success(data)


def fail(kind: ErrorKind = ErrorKind.NETWORK_ERROR) -> ProviderResult:
    return ProviderResult.failure(kind, f"{kind.value} happened")


# ============================================================
# CACHED PROVIDER CALL TESTS
# ============================================================

class TestCachedProviderCall:
    """Tests for cache hit / miss / bypass and TTL policy."""

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, cached_call):
        provider = stub_provider("x", ok())

        first, first_status = await cached_call.call(SOCIAL, provider, "PEPE")
        second, second_status = await cached_call.call(SOCIAL, provider, "PEPE")

        assert first_status == CacheStatus.MISS
        assert second_status == CacheStatus.HIT
        assert second == first
        assert provider.fetch.await_count == 1

    @pytest.mark.asyncio
    async def test_key_is_case_insensitive(self, cached_call):
        provider = stub_provider("x", ok())

        await cached_call.call(SOCIAL, provider, "PEPE")
        _, status = await cached_call.call(SOCIAL, provider, "pepe")

        assert status == CacheStatus.HIT

    @pytest.mark.asyncio
    async def test_error_and_empty_ttls_differ(self, cached_call, clock):
        failing = stub_provider("x", fail(ErrorKind.RATE_LIMITED))
        empty = stub_provider("reddit", ProviderResult.empty())

        await cached_call.call(SOCIAL, failing, "PEPE")
        await cached_call.call(SOCIAL, empty, "PEPE")

        clock.advance(seconds=301)
        await cached_call.call(SOCIAL, failing, "PEPE")
        await cached_call.call(SOCIAL, empty, "PEPE")

        assert failing.fetch.await_count == 2
        assert empty.fetch.await_count == 1

    @pytest.mark.asyncio
    async def test_cached_failure_is_a_hit(self, cached_call):
        provider = stub_provider("x", fail(ErrorKind.UNAUTHORIZED))

        await cached_call.call(SOCIAL, provider, "PEPE")
        result, status = await cached_call.call(SOCIAL, provider, "PEPE")

        assert status == CacheStatus.HIT
        assert result.error_kind == ErrorKind.UNAUTHORIZED
        assert provider.fetch.await_count == 1

    @pytest.mark.asyncio
    async def test_bypass_skips_read_but_stores(self, cached_call):
        provider = stub_provider("x", ok())

        await cached_call.call(SOCIAL, provider, "PEPE")
        _, bypass_status = await cached_call.call(SOCIAL, provider, "PEPE", use_cache=False)
        _, hit_status = await cached_call.call(SOCIAL, provider, "PEPE")

        assert bypass_status == CacheStatus.BYPASS
        assert hit_status == CacheStatus.HIT
        assert provider.fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_deadline_truncated_timeout_not_cached(self, cached_call):
        truncated = ProviderResult.failure(ErrorKind.TIMEOUT, "late", deadline_truncated=True)
        provider = stub_provider("x", truncated)

        await cached_call.call(SOCIAL, provider, "PEPE", deadline_ms=10)
        _, status = await cached_call.call(SOCIAL, provider, "PEPE")

        assert status == CacheStatus.MISS
        assert provider.fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_own_timeout_is_cached(self, cached_call):
        provider = stub_provider("x", fail(ErrorKind.TIMEOUT))

        await cached_call.call(SOCIAL, provider, "PEPE")
        _, status = await cached_call.call(SOCIAL, provider, "PEPE")

        assert status == CacheStatus.HIT

    @pytest.mark.asyncio
    async def test_raising_provider_becomes_unknown_failure(self, cached_call):
        provider = stub_provider("x", side_effect=RuntimeError("bug"))

        result, _ = await cached_call.call(SOCIAL, provider, "PEPE")

        assert result.error_kind == ErrorKind.UNKNOWN

    @pytest.mark.asyncio
    async def test_deadline_is_forwarded(self, cached_call):
        provider = stub_provider("x", ok())

        await cached_call.call(SOCIAL, provider, "PEPE", deadline_ms=1234)

        provider.fetch.assert_awaited_once_with("PEPE", 1234)

    def test_cache_key(self):
        key = CachedProviderCall.cache_key(SOCIAL, "X", "PEPE")

        assert key == "provider:social_mentions|x|pepe"


# ============================================================
# FALLBACK CHAIN TESTS
# ============================================================

class TestFallbackChain:
    """Tests for ordering and failure aggregation."""

    @pytest.mark.asyncio
    async def test_first_success_short_circuits(self, cached_call):
        primary = stub_provider("x", ok("from x"))
        secondary = stub_provider("reddit", ok("from reddit"))
        chain = FallbackChain(SOCIAL, [primary, secondary], cached_call)

        outcome = await chain.fetch("PEPE")

        assert outcome.data == "from x"
        assert outcome.provider_name == "x"
        secondary.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_falls_back_on_failure(self, cached_call):
        primary = stub_provider("x", fail(ErrorKind.UNCONFIGURED))
        secondary = stub_provider("reddit", ok("from reddit"))
        chain = FallbackChain(SOCIAL, [primary, secondary], cached_call)
        fallbacks = []
        chain.on_fallback(lambda cap, src, dst: fallbacks.append((cap, src, dst)))

        outcome = await chain.fetch("PEPE")

        assert outcome.data == "from reddit"
        assert outcome.provider_name == "reddit"
        assert fallbacks == [(SOCIAL, "x", "reddit")]

    @pytest.mark.asyncio
    async def test_empty_stops_the_chain(self, cached_call):
        primary = stub_provider("x", ProviderResult.empty("nothing"))
        secondary = stub_provider("reddit", ok())
        chain = FallbackChain(SOCIAL, [primary, secondary], cached_call)

        outcome = await chain.fetch("PEPE")

        assert outcome.result.is_empty
        assert outcome.data is None
        assert outcome.error_kind is None
        secondary.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_all_failed_carries_sub_errors(self, cached_call):
        primary = stub_provider("x", fail(ErrorKind.RATE_LIMITED))
        secondary = stub_provider("reddit", fail(ErrorKind.NETWORK_ERROR))
        chain = FallbackChain(SOCIAL, [primary, secondary], cached_call)

        outcome = await chain.fetch("PEPE")

        assert outcome.error_kind == ErrorKind.ALL_PROVIDERS_FAILED
        assert outcome.provider_name is None
        assert [(s.provider, s.error_kind) for s in outcome.result.sub_errors] == [
            ("x", ErrorKind.RATE_LIMITED),
            ("reddit", ErrorKind.NETWORK_ERROR),
        ]

    @pytest.mark.asyncio
    async def test_single_provider_failure_passes_through(self, cached_call):
        only = stub_provider("dexscreener", fail(ErrorKind.TIMEOUT))
        chain = FallbackChain(Capability.WHALE_ACTIVITY, [only], cached_call)

        outcome = await chain.fetch("PEPE")

        assert outcome.error_kind == ErrorKind.TIMEOUT
        assert outcome.provider_name == "dexscreener"
        assert outcome.result.sub_errors == ()

    @pytest.mark.asyncio
    async def test_zero_providers_is_unconfigured(self, cached_call, store):
        chain = FallbackChain(SOCIAL, [], cached_call)

        outcome = await chain.fetch("PEPE")

        assert outcome.error_kind == ErrorKind.UNCONFIGURED
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_second_call_served_from_cache(self, cached_call):
        primary = stub_provider("x", fail(ErrorKind.UNCONFIGURED))
        secondary = stub_provider("reddit", ok())
        chain = FallbackChain(SOCIAL, [primary, secondary], cached_call)

        await chain.fetch("PEPE")
        outcome = await chain.fetch("PEPE")

        assert outcome.cache_status == CacheStatus.HIT
        assert primary.fetch.await_count == 1
        assert secondary.fetch.await_count == 1

    @pytest.mark.asyncio
    async def test_exhausted_deadline_skips_remaining_providers(self, cached_call):
        async def slow(token_key, deadline_ms=None):
            await asyncio.sleep(0.05)
            return fail(ErrorKind.NETWORK_ERROR)

        primary = stub_provider("x", side_effect=slow)
        secondary = stub_provider("reddit", ok())
        chain = FallbackChain(SOCIAL, [primary, secondary], cached_call)

        outcome = await chain.fetch("PEPE", deadline_ms=20)

        assert outcome.error_kind == ErrorKind.ALL_PROVIDERS_FAILED
        assert outcome.result.sub_errors[1].error_kind == ErrorKind.TIMEOUT
        secondary.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remaining_deadline_is_shared(self, cached_call):
        primary = stub_provider("x", fail())
        secondary = stub_provider("reddit", ok())
        chain = FallbackChain(SOCIAL, [primary, secondary], cached_call)

        await chain.fetch("PEPE", deadline_ms=5000)

        first_deadline = primary.fetch.await_args.args[1]
        second_deadline = secondary.fetch.await_args.args[1]
        assert 0 < second_deadline <= first_deadline <= 5000

    @pytest.mark.asyncio
    async def test_close_closes_providers(self, cached_call):
        providers = [stub_provider("x", ok()), stub_provider("reddit", ok())]
        chain = FallbackChain(SOCIAL, providers, cached_call)

        await chain.close()

        for provider in providers:
            provider.close.assert_awaited_once()

    def test_provider_names(self, cached_call):
        chain = FallbackChain(SOCIAL, [stub_provider("x"), stub_provider("reddit")], cached_call)

        assert chain.provider_names == ["x", "reddit"]
