"""
Provider Exceptions - Custom error hierarchy.

These exceptions are raised inside adapters only. Providers NEVER raise
to the caller; BaseProvider.fetch() maps every exception to a
ProviderResult failure via error_kind_for().
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Optional

from .models import ErrorKind


class ProviderError(Exception):
    """Base exception for all provider errors."""

    error_kind: ErrorKind = ErrorKind.UNKNOWN
    retryable: bool = False

    def __init__(
        self,
        message: str,
        source_name: str = "",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.source_name = source_name
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "error_kind": self.error_kind.value,
            "message": self.message,
            "source_name": self.source_name,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class FetchError(ProviderError):
    """Failed to fetch data from the provider (network or non-2xx status)."""

    error_kind = ErrorKind.NETWORK_ERROR

    def __init__(
        self,
        message: str,
        source_name: str = "",
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, details)
        self.status_code = status_code
        self.url = url

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        # Connection failures and 5xx are transient; 4xx are not
        return self.status_code is None or self.status_code >= 500

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "status_code": self.status_code,
            "url": self.url,
        })
        return data


class RateLimitError(ProviderError):
    """Rate limit exceeded for the provider."""

    error_kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        message: str,
        source_name: str = "",
        retry_after_seconds: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, details)
        self.retry_after_seconds = retry_after_seconds

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "retry_after_seconds": self.retry_after_seconds,
        })
        return data


class AuthenticationError(ProviderError):
    """Credentials were rejected (401/403)."""

    error_kind = ErrorKind.UNAUTHORIZED


class UnconfiguredError(ProviderError):
    """Required credentials are not configured."""

    error_kind = ErrorKind.UNCONFIGURED


class ProviderTimeoutError(ProviderError):
    """The provider did not answer in time."""

    error_kind = ErrorKind.TIMEOUT


class ParseError(ProviderError):
    """Failed to parse the provider's response."""

    error_kind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        source_name: str = "",
        raw_data: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, details)
        self.raw_data = raw_data[:500] if raw_data else None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "raw_data_preview": self.raw_data[:100] if self.raw_data else None,
        })
        return data


def error_kind_for(error: BaseException) -> ErrorKind:
    """Map any exception raised inside an adapter to an ErrorKind."""
    if isinstance(error, ProviderError):
        return error.error_kind
    if isinstance(error, asyncio.TimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorKind.NETWORK_ERROR
    return ErrorKind.UNKNOWN


__all__ = [
    "ProviderError",
    "FetchError",
    "RateLimitError",
    "AuthenticationError",
    "UnconfiguredError",
    "ProviderTimeoutError",
    "ParseError",
    "error_kind_for",
]
