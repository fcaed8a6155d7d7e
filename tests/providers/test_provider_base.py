"""
Tests for the provider adapter contract.

============================================================
PURPOSE
============================================================
Verify that BaseProvider.fetch() turns every outcome into a
ProviderResult and honours deadlines, backoff and credentials.

TEST CATEGORIES:
- Result mapping (success / empty / failure kinds)
- Timeouts and deadline truncation
- Rate-limit backoff on the injected clock
- Retries of transient errors
- HTTP status mapping in HttpProvider

============================================================
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Optional
from unittest.mock import AsyncMock

import aiohttp
import pytest

from core.clock import MockClock
from providers.base import BaseProvider, HttpProvider
from providers.exceptions import (
    AuthenticationError,
    FetchError,
    ParseError,
    RateLimitError,
    error_kind_for,
)
from providers.models import (
    Capability,
    ErrorKind,
    ProviderMetadata,
    ResultStatus,
    SourceStatus,
)


# ============================================================
# FAKES
# ============================================================

class FakeProvider(BaseProvider):
    """Provider whose _fetch_data replays a scripted list of steps."""

    RETRY_DELAY = 0

    def __init__(self, steps: Optional[list] = None, requires_key: bool = False, **kwargs: Any):
        self.requires_key = requires_key
        self.steps = list(steps or [])
        self.calls = 0
        super().__init__(Capability.MARKET_SNAPSHOT, **kwargs)

    @classmethod
    def supported_capabilities(cls) -> tuple[Capability, ...]:
        return (Capability.MARKET_SNAPSHOT,)

    @property
    def metadata(self) -> ProviderMetadata:
        return ProviderMetadata(
            name="fake",
            display_name="Fake",
            capabilities=(Capability.MARKET_SNAPSHOT,),
            requires_api_key=self.requires_key,
        )

    async def _fetch_data(self, token_key: str) -> Optional[Any]:
        self.calls += 1
        step = self.steps.pop(0) if self.steps else None
        if isinstance(step, BaseException):
            raise step
        if isinstance(step, float):
            await asyncio.sleep(step)
            return {"slow": True}
        return step


class FakeResponse:
    """Minimal aiohttp response stand-in."""

    def __init__(self, status: int, payload: Any = None, headers: Optional[dict] = None, text: str = ""):
        self.status = status
        self._payload = payload
        self.headers = headers or {}
        self._text = text
        self.url = "https://api.example.test/resource"

    async def json(self, content_type=None):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Records GET calls and returns a fixed response."""

    def __init__(self, response: Any):
        self.response = response
        self.closed = False
        self.requests: list[dict] = []

    def get(self, url, params=None, headers=None):
        self.requests.append({"url": url, "params": params, "headers": headers})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    def post(self, url, data=None, headers=None, auth=None):
        self.requests.append({"method": "POST", "url": url, "data": data, "headers": headers, "auth": auth})
        return self.response

    async def close(self):
        self.closed = True


class FakeHttpProvider(HttpProvider):
    """HttpProvider returning the raw JSON document."""

    @classmethod
    def supported_capabilities(cls) -> tuple[Capability, ...]:
        return (Capability.HOLDER_DISTRIBUTION,)

    @property
    def metadata(self) -> ProviderMetadata:
        return ProviderMetadata(
            name="fakehttp",
            display_name="Fake HTTP",
            capabilities=(Capability.HOLDER_DISTRIBUTION,),
        )

    async def _fetch_data(self, token_key: str) -> Optional[Any]:
        return await self._get_json(f"https://api.example.test/{token_key}")


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def clock():
    return MockClock(datetime(2025, 1, 1, tzinfo=timezone.utc))


def http_provider(response: Any) -> tuple[FakeHttpProvider, FakeSession]:
    provider = FakeHttpProvider(Capability.HOLDER_DISTRIBUTION, max_retries=0)
    session = FakeSession(response)
    provider._get_session = AsyncMock(return_value=session)
    return provider, session


# ============================================================
# RESULT MAPPING TESTS
# ============================================================

class TestResultMapping:
    """Tests for success / empty / failure mapping."""

    @pytest.mark.asyncio
    async def test_payload_becomes_success(self, clock):
        provider = FakeProvider(steps=[{"price": 1.0}], clock=clock)

        result = await provider.fetch("PEPE")

        assert result.status == ResultStatus.SUCCESS
        assert result.data == {"price": 1.0}
        assert provider.get_health().status == SourceStatus.HEALTHY

    @pytest.mark.asyncio
    async def test_none_becomes_empty(self, clock):
        provider = FakeProvider(steps=[None], clock=clock)

        result = await provider.fetch("PEPE")

        assert result.is_empty
        assert not result.is_failure
        assert provider.get_stats()["empty_results"] == 1

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_unknown(self, clock):
        provider = FakeProvider(steps=[KeyError("boom")], clock=clock)

        result = await provider.fetch("PEPE")

        assert result.is_failure
        assert result.error_kind == ErrorKind.UNKNOWN

    @pytest.mark.asyncio
    async def test_authentication_error_becomes_unauthorized(self, clock):
        provider = FakeProvider(steps=[AuthenticationError("bad key")], clock=clock)

        result = await provider.fetch("PEPE")

        assert result.error_kind == ErrorKind.UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_unconfigured_provider_does_no_io(self, clock):
        provider = FakeProvider(steps=[{"price": 1.0}], requires_key=True, clock=clock)

        result = await provider.fetch("PEPE")

        assert result.error_kind == ErrorKind.UNCONFIGURED
        assert provider.calls == 0
        assert provider.get_health().status == SourceStatus.UNCONFIGURED

    @pytest.mark.asyncio
    async def test_token_outside_coverage_does_no_io(self, clock):
        provider = FakeProvider(steps=[{"price": 1.0}], clock=clock)
        provider.serves = lambda token_key: not token_key.startswith("0x")

        result = await provider.fetch("0xabc")

        assert result.error_kind == ErrorKind.UNCONFIGURED
        assert provider.calls == 0
        assert provider.get_health().consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_configured_provider_with_key(self, clock):
        provider = FakeProvider(steps=[{"price": 1.0}], requires_key=True, api_key="k", clock=clock)

        result = await provider.fetch("PEPE")

        assert result.is_success

    def test_unsupported_capability_rejected(self):
        with pytest.raises(ValueError):
            FakeHttpProvider(Capability.SOCIAL_MENTIONS)

    def test_consecutive_failures_mark_unavailable(self, clock):
        provider = FakeProvider(clock=clock)
        for _ in range(3):
            provider._record_failure(ErrorKind.NETWORK_ERROR, "down")

        assert provider.get_health().status == SourceStatus.UNAVAILABLE


# ============================================================
# TIMEOUT TESTS
# ============================================================

class TestTimeouts:
    """Tests for own timeout vs caller deadline."""

    @pytest.mark.asyncio
    async def test_own_timeout_is_not_deadline_truncated(self, clock):
        provider = FakeProvider(steps=[1.0], timeout=0.05, clock=clock)

        result = await provider.fetch("PEPE", deadline_ms=5000)

        assert result.error_kind == ErrorKind.TIMEOUT
        assert result.deadline_truncated is False

    @pytest.mark.asyncio
    async def test_deadline_shorter_than_timeout_is_truncated(self, clock):
        provider = FakeProvider(steps=[1.0], timeout=10, clock=clock)

        result = await provider.fetch("PEPE", deadline_ms=50)

        assert result.error_kind == ErrorKind.TIMEOUT
        assert result.deadline_truncated is True

    @pytest.mark.asyncio
    async def test_exhausted_deadline_does_no_io(self, clock):
        provider = FakeProvider(steps=[{"price": 1.0}], clock=clock)

        result = await provider.fetch("PEPE", deadline_ms=0)

        assert result.error_kind == ErrorKind.TIMEOUT
        assert provider.calls == 0

    @pytest.mark.asyncio
    async def test_fast_answer_within_deadline(self, clock):
        provider = FakeProvider(steps=[0.0], clock=clock)

        result = await provider.fetch("PEPE", deadline_ms=1000)

        assert result.is_success


# ============================================================
# BACKOFF TESTS
# ============================================================

class TestRateLimitBackoff:
    """Tests for persistent rate-limit backoff."""

    @pytest.mark.asyncio
    async def test_backoff_suppresses_calls_until_cooldown_ends(self, clock):
        provider = FakeProvider(
            steps=[RateLimitError("429"), {"price": 1.0}],
            clock=clock,
        )

        first = await provider.fetch("PEPE")
        second = await provider.fetch("PEPE")

        assert first.error_kind == ErrorKind.RATE_LIMITED
        assert second.error_kind == ErrorKind.RATE_LIMITED
        assert provider.calls == 1
        assert provider.get_stats()["suppressed_by_backoff"] == 1

        clock.advance(minutes=15)
        third = await provider.fetch("PEPE")

        assert third.is_success
        assert provider.calls == 2

    @pytest.mark.asyncio
    async def test_retry_after_overrides_default_cooldown(self, clock):
        provider = FakeProvider(
            steps=[RateLimitError("429", retry_after_seconds=30), {"price": 1.0}],
            clock=clock,
        )

        await provider.fetch("PEPE")
        clock.advance(seconds=29)
        assert provider.in_backoff()

        clock.advance(seconds=1)
        result = await provider.fetch("PEPE")

        assert result.is_success

    @pytest.mark.asyncio
    async def test_backoff_shows_in_health(self, clock):
        provider = FakeProvider(steps=[RateLimitError("429")], clock=clock)

        await provider.fetch("PEPE")

        health = provider.get_health()
        assert health.status == SourceStatus.RATE_LIMITED
        assert health.backoff_until is not None


# ============================================================
# RETRY TESTS
# ============================================================

class TestRetries:
    """Tests for bounded retries of transient errors."""

    @pytest.mark.asyncio
    async def test_transient_error_is_retried(self, clock):
        provider = FakeProvider(
            steps=[FetchError("reset"), {"price": 1.0}],
            max_retries=2,
            clock=clock,
        )

        result = await provider.fetch("PEPE")

        assert result.is_success
        assert provider.calls == 2
        assert provider.get_stats()["retries"] == 1

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, clock):
        provider = FakeProvider(
            steps=[FetchError("bad request", status_code=400), {"price": 1.0}],
            max_retries=2,
            clock=clock,
        )

        result = await provider.fetch("PEPE")

        assert result.error_kind == ErrorKind.NETWORK_ERROR
        assert provider.calls == 1

    @pytest.mark.asyncio
    async def test_retries_are_bounded(self, clock):
        provider = FakeProvider(
            steps=[FetchError("503", status_code=503)] * 5,
            max_retries=2,
            clock=clock,
        )

        result = await provider.fetch("PEPE")

        assert result.error_kind == ErrorKind.NETWORK_ERROR
        assert provider.calls == 3


# ============================================================
# ERROR KIND MAPPING
# ============================================================

class TestErrorKindFor:
    """Tests for exception -> ErrorKind mapping."""

    def test_mapping(self):
        assert error_kind_for(RateLimitError("x")) == ErrorKind.RATE_LIMITED
        assert error_kind_for(asyncio.TimeoutError()) == ErrorKind.TIMEOUT
        assert error_kind_for(ConnectionResetError()) == ErrorKind.NETWORK_ERROR
        assert error_kind_for(ParseError("x")) == ErrorKind.UNKNOWN
        assert error_kind_for(ValueError("x")) == ErrorKind.UNKNOWN

    def test_fetch_error_retryable(self):
        assert FetchError("x").retryable is True
        assert FetchError("x", status_code=502).retryable is True
        assert FetchError("x", status_code=404).retryable is False


# ============================================================
# HTTP PROVIDER TESTS
# ============================================================

class TestHttpProvider:
    """Tests for HTTP status mapping."""

    @pytest.mark.asyncio
    async def test_ok_returns_json(self):
        provider, session = http_provider(FakeResponse(200, {"holders": 10}))

        result = await provider.fetch("abc")

        assert result.data == {"holders": 10}
        assert session.requests[0]["url"] == "https://api.example.test/abc"
        assert session.requests[0]["headers"]["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_404_is_empty(self):
        provider, _ = http_provider(FakeResponse(404))

        result = await provider.fetch("abc")

        assert result.is_empty

    @pytest.mark.asyncio
    async def test_429_is_rate_limited_with_retry_after(self):
        provider, _ = http_provider(FakeResponse(429, headers={"Retry-After": "60"}))

        result = await provider.fetch("abc")

        assert result.error_kind == ErrorKind.RATE_LIMITED
        assert provider.in_backoff()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_auth_statuses_are_unauthorized(self, status):
        provider, _ = http_provider(FakeResponse(status))

        result = await provider.fetch("abc")

        assert result.error_kind == ErrorKind.UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_server_error_is_network_error(self):
        provider, _ = http_provider(FakeResponse(500, text="oops"))

        result = await provider.fetch("abc")

        assert result.error_kind == ErrorKind.NETWORK_ERROR

    @pytest.mark.asyncio
    async def test_invalid_json_is_unknown(self):
        provider, _ = http_provider(FakeResponse(200, ValueError("not json"), text="<html>"))

        result = await provider.fetch("abc")

        assert result.error_kind == ErrorKind.UNKNOWN

    @pytest.mark.asyncio
    async def test_client_error_is_network_error(self):
        provider, _ = http_provider(aiohttp.ClientConnectionError("refused"))

        result = await provider.fetch("abc")

        assert result.error_kind == ErrorKind.NETWORK_ERROR

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [asyncio.TimeoutError(), aiohttp.ServerTimeoutError("read timeout")])
    async def test_socket_timeout_is_timeout_and_not_retried(self, error):
        provider = FakeHttpProvider(Capability.HOLDER_DISTRIBUTION, max_retries=2)
        session = FakeSession(error)
        provider._get_session = AsyncMock(return_value=session)

        result = await provider.fetch("abc")

        assert result.error_kind == ErrorKind.TIMEOUT
        assert result.deadline_truncated is False
        assert len(session.requests) == 1
        assert provider.get_stats()["timeouts"] == 1

    @pytest.mark.asyncio
    async def test_post_json_sends_form_and_auth(self):
        provider, session = http_provider(FakeResponse(200, {"access_token": "t"}))
        auth = aiohttp.BasicAuth("id", "secret")

        data = await provider._post_json("https://auth.example.test/token", data={"grant_type": "x"}, auth=auth)

        assert data == {"access_token": "t"}
        request = session.requests[0]
        assert request["method"] == "POST"
        assert request["data"] == {"grant_type": "x"}
        assert request["auth"] is auth
        assert request["headers"]["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_close_closes_session(self):
        provider = FakeHttpProvider(Capability.HOLDER_DISTRIBUTION)
        session = FakeSession(FakeResponse(200, {}))
        provider._session = session

        await provider.close()

        assert session.closed is True
        assert provider._session is None
