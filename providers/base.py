"""
Base Provider - Abstract interface for all capability adapters.

All providers follow non-blocking, never-raising, graceful degradation
patterns: whatever happens inside an adapter, the caller receives a
ProviderResult.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

import aiohttp

from core.clock import ClockProtocol, SystemClock

from .exceptions import (
    AuthenticationError,
    FetchError,
    ParseError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    error_kind_for,
)
from .models import (
    Capability,
    ErrorKind,
    ProviderMetadata,
    ProviderResult,
    SourceHealth,
    SourceStatus,
)


logger = logging.getLogger(__name__)


class BaseProvider(ABC):
    """
    Abstract base class for capability providers.

    DESIGN PRINCIPLES:
    1. NEVER raise - every outcome is a ProviderResult
    2. NEVER exceed the caller's deadline or the provider's own timeout
    3. RATE LIMIT aware - back off after a 429 without further I/O
    4. UNCONFIGURED providers answer immediately without I/O
    5. EMPTY is not FAILURE - "nothing to report" is a valid answer

    All subclasses must implement:
    - metadata - Provider metadata property
    - _fetch_data() - Return the capability payload, or None when the
      source has nothing to report. Raise ProviderError on failure.
    """

    # Default configuration
    DEFAULT_TIMEOUT = 10.0  # seconds
    DEFAULT_SUCCESS_TTL_MS = 300_000  # 5 minutes
    DEFAULT_ERROR_TTL_MS = 60_000  # 1 minute
    DEFAULT_RATE_LIMIT_COOLDOWN = 900  # 15 minutes
    MAX_RETRIES = 2
    RETRY_DELAY = 1.0

    def __init__(
        self,
        capability: Capability,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        success_ttl_ms: Optional[int] = None,
        error_ttl_ms: Optional[int] = None,
        max_retries: Optional[int] = None,
        rate_limit_cooldown: Optional[float] = None,
        clock: Optional[ClockProtocol] = None,
    ) -> None:
        if capability not in self.supported_capabilities():
            raise ValueError(
                f"{type(self).__name__} does not serve {capability.value}"
            )

        self.capability = capability
        self.api_key = api_key
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.success_ttl_ms = (
            success_ttl_ms if success_ttl_ms is not None else self.DEFAULT_SUCCESS_TTL_MS
        )
        self.error_ttl_ms = (
            error_ttl_ms if error_ttl_ms is not None else self.DEFAULT_ERROR_TTL_MS
        )
        self.max_retries = max_retries if max_retries is not None else self.MAX_RETRIES
        self.rate_limit_cooldown = rate_limit_cooldown or self.DEFAULT_RATE_LIMIT_COOLDOWN
        self._clock = clock or SystemClock()

        # Backoff state persists across calls
        self._backoff_until: Optional[float] = None

        # Health tracking
        self._health = SourceHealth(
            status=SourceStatus.UNKNOWN,
            last_check=self._clock.now(),
        )

        # Statistics
        self._stats = {
            "total_requests": 0,
            "successful_fetches": 0,
            "empty_results": 0,
            "errors": 0,
            "rate_limits_hit": 0,
            "suppressed_by_backoff": 0,
            "timeouts": 0,
            "retries": 0,
        }

    @property
    @abstractmethod
    def metadata(self) -> ProviderMetadata:
        """Return provider metadata."""
        pass

    @classmethod
    @abstractmethod
    def supported_capabilities(cls) -> tuple[Capability, ...]:
        """Capabilities this provider class can serve."""
        pass

    def serves(self, token_key: str) -> bool:
        """False for tokens outside the chains this provider covers."""
        return True

    @abstractmethod
    async def _fetch_data(self, token_key: str) -> Optional[Any]:
        """
        Fetch and normalize the capability payload.

        Must be implemented by subclasses.
        Returns None when the source has nothing to report.
        Should raise ProviderError subclasses on failure.
        """
        pass

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def is_configured(self) -> bool:
        """False when the provider needs credentials that are missing."""
        if self.metadata.requires_api_key:
            return bool(self.api_key)
        return True

    # ─────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────

    async def fetch(
        self,
        token_key: str,
        deadline_ms: Optional[float] = None,
    ) -> ProviderResult:
        """
        Fetch the capability payload for a token.

        NEVER raises - every failure becomes ProviderResult.failure().

        Args:
            token_key: Token address or symbol
            deadline_ms: Remaining time budget of the caller

        Returns:
            SUCCESS with payload, EMPTY, or FAILURE with an ErrorKind
        """
        self._stats["total_requests"] += 1

        if not self.is_configured:
            self._health.status = SourceStatus.UNCONFIGURED
            logger.debug(f"[{self.name}] Not configured, skipping")
            return ProviderResult.failure(
                ErrorKind.UNCONFIGURED,
                f"{self.metadata.display_name} credentials are not configured",
            )

        if not self.serves(token_key):
            logger.debug(f"[{self.name}] Does not cover {token_key}, skipping")
            return ProviderResult.failure(
                ErrorKind.UNCONFIGURED,
                f"{self.metadata.display_name} does not cover {token_key}",
            )

        if self.in_backoff():
            self._stats["suppressed_by_backoff"] += 1
            remaining = self._backoff_until - self._clock.timestamp()
            logger.debug(f"[{self.name}] In rate-limit backoff ({remaining:.0f}s left)")
            return ProviderResult.failure(
                ErrorKind.RATE_LIMITED,
                f"Rate limited, backing off for {remaining:.0f}s",
            )

        budget = self.timeout
        truncated = False
        if deadline_ms is not None:
            deadline_s = deadline_ms / 1000.0
            if deadline_s <= 0:
                self._stats["timeouts"] += 1
                return ProviderResult.failure(
                    ErrorKind.TIMEOUT,
                    "No time left before the report deadline",
                    deadline_truncated=True,
                )
            if deadline_s < budget:
                budget = deadline_s
                truncated = True

        start = time.monotonic()
        try:
            data = await asyncio.wait_for(self._fetch_with_retry(token_key), timeout=budget)
        except asyncio.TimeoutError:
            self._stats["timeouts"] += 1
            return self._record_failure(
                ErrorKind.TIMEOUT,
                f"No answer within {budget:.2f}s",
                deadline_truncated=truncated,
            )
        except RateLimitError as e:
            self._start_backoff(e.retry_after_seconds)
            return self._record_failure(ErrorKind.RATE_LIMITED, e.message)
        except ProviderError as e:
            if e.error_kind == ErrorKind.TIMEOUT:
                self._stats["timeouts"] += 1
            return self._record_failure(e.error_kind, e.message, error=e)
        except Exception as e:
            return self._record_failure(error_kind_for(e), f"{type(e).__name__}: {e}", error=e)

        latency = (time.monotonic() - start) * 1000
        self._health.latency_ms = latency
        self._health.status = SourceStatus.HEALTHY
        self._health.consecutive_failures = 0
        self._health.last_check = self._clock.now()

        if data is None:
            self._stats["empty_results"] += 1
            logger.debug(f"[{self.name}] Nothing to report for {token_key}")
            return ProviderResult.empty(f"{self.metadata.display_name} has no data for {token_key}")

        self._stats["successful_fetches"] += 1
        return ProviderResult.success(data)

    def in_backoff(self) -> bool:
        """True while the provider is cooling down after a rate limit."""
        if self._backoff_until is None:
            return False
        if self._clock.timestamp() >= self._backoff_until:
            self._backoff_until = None
            self._health.backoff_until = None
            return False
        return True

    def get_health(self) -> SourceHealth:
        """Get current health status."""
        if self._health.status == SourceStatus.RATE_LIMITED and not self.in_backoff():
            self._health.status = SourceStatus.DEGRADED
        return self._health

    def get_stats(self) -> dict[str, Any]:
        """Get provider statistics."""
        total = self._stats["total_requests"]
        error_rate = self._stats["errors"] / total * 100 if total > 0 else 0

        return {
            **self._stats,
            "error_rate_pct": round(error_rate, 2),
            "source_name": self.name,
            "capability": self.capability.value,
        }

    async def close(self) -> None:
        """Cleanup resources. Override if needed."""
        pass

    # ─────────────────────────────────────────────────────────────
    # Internal methods
    # ─────────────────────────────────────────────────────────────

    async def _fetch_with_retry(self, token_key: str) -> Optional[Any]:
        """Fetch with retry logic for transient failures."""
        for attempt in range(self.max_retries + 1):
            try:
                return await self._fetch_data(token_key)
            except ProviderError as e:
                if not e.retryable or attempt >= self.max_retries:
                    raise
                self._stats["retries"] += 1
                logger.warning(
                    f"[{self.name}] Transient error (attempt {attempt + 1}): {e}"
                )
            await asyncio.sleep(self.RETRY_DELAY * (attempt + 1))
        return None

    def _start_backoff(self, retry_after_seconds: Optional[float]) -> None:
        cooldown = retry_after_seconds or self.rate_limit_cooldown
        self._backoff_until = self._clock.timestamp() + cooldown
        self._stats["rate_limits_hit"] += 1
        self._health.status = SourceStatus.RATE_LIMITED
        self._health.backoff_until = datetime.fromtimestamp(self._backoff_until, tz=timezone.utc)
        logger.warning(f"[{self.name}] Rate limit hit, backing off for {cooldown:.0f}s")

    def _record_failure(
        self,
        kind: ErrorKind,
        message: str,
        error: Optional[BaseException] = None,
        deadline_truncated: bool = False,
    ) -> ProviderResult:
        self._stats["errors"] += 1
        self._health.error_count += 1
        self._health.consecutive_failures += 1
        self._health.last_error = message
        self._health.last_error_kind = kind
        self._health.last_error_time = self._clock.now()

        if kind != ErrorKind.RATE_LIMITED:
            if self._health.consecutive_failures >= 3:
                self._health.status = SourceStatus.UNAVAILABLE
            else:
                self._health.status = SourceStatus.DEGRADED

        if kind == ErrorKind.UNKNOWN:
            logger.error(
                f"[{self.name}] Unexpected error for {self.capability.value}: {message}",
                exc_info=error,
            )
        else:
            logger.warning(f"[{self.name}] {kind.value}: {message}")

        return ProviderResult.failure(kind, message, deadline_truncated=deadline_truncated)


class HttpProvider(BaseProvider):
    """
    Base class for providers backed by a JSON HTTP API.

    Owns one lazily-created aiohttp session per provider instance and maps
    HTTP outcomes to provider exceptions:
    - 429 -> RateLimitError (Retry-After honoured)
    - 401/403 -> AuthenticationError
    - 404 -> None (nothing to report)
    - other non-200 -> FetchError
    - socket / read timeout -> ProviderTimeoutError
    - aiohttp.ClientError -> FetchError
    """

    def __init__(self, capability: Capability, **kwargs: Any) -> None:
        super().__init__(capability, **kwargs)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    def _default_headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    async def _get_json(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Optional[Any]:
        """GET a JSON document. Returns None on 404."""
        return await self._request_json("GET", url, headers, params=params)

    async def _post_json(
        self,
        url: str,
        data: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        auth: Optional[aiohttp.BasicAuth] = None,
    ) -> Optional[Any]:
        """POST a form body and read a JSON document. Returns None on 404."""
        return await self._request_json("POST", url, headers, data=data, auth=auth)

    async def _request_json(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        **kwargs: Any,
    ) -> Optional[Any]:
        session = await self._get_session()
        request_headers = {**self._default_headers(), **(headers or {})}
        send = session.post if method == "POST" else session.get

        try:
            async with send(url, headers=request_headers, **kwargs) as response:
                if response.status == 429:
                    retry_after = response.headers.get("Retry-After")
                    raise RateLimitError(
                        f"{self.metadata.display_name} rate limit exceeded",
                        source_name=self.name,
                        retry_after_seconds=int(retry_after) if retry_after and retry_after.isdigit() else None,
                    )

                if response.status in (401, 403):
                    raise AuthenticationError(
                        f"{self.metadata.display_name} rejected credentials ({response.status})",
                        source_name=self.name,
                    )

                if response.status == 404:
                    return None

                if response.status != 200:
                    text = await response.text()
                    raise FetchError(
                        f"{self.metadata.display_name} API error: {response.status}",
                        source_name=self.name,
                        status_code=response.status,
                        url=str(response.url),
                        details={"response": text[:500]},
                    )

                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    text = await response.text()
                    raise ParseError(
                        f"Invalid JSON from {self.metadata.display_name}: {e}",
                        source_name=self.name,
                        raw_data=text,
                    )

        except asyncio.TimeoutError:
            # aiohttp.ServerTimeoutError is also a ClientError
            raise ProviderTimeoutError(
                f"{self.metadata.display_name} did not answer within {self.timeout:.1f}s",
                source_name=self.name,
            )
        except aiohttp.ClientError as e:
            raise FetchError(
                f"Network error: {e}",
                source_name=self.name,
                url=url,
            )

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
