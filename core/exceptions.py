"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Errors the report engine raises to its callers.

Provider and chain failures NEVER surface as exceptions; they are
values (see providers.models.ProviderResult). The exceptions below
signal a bad deployment or a bad call only.

============================================================
EXCEPTION HIERARCHY
============================================================
ReportEngineError (base)
├── ConfigurationError         - engine cannot be built as configured
└── InvalidReportRequestError  - build_report() called with bad arguments

============================================================
"""

from typing import Any, Dict, Optional


# ============================================================
# BASE EXCEPTION
# ============================================================

class ReportEngineError(Exception):
    """
    Base exception for report engine errors.

    Carries a context dict naming the offending setting or argument,
    and the underlying cause when one exists.
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.cause = cause

        if cause is not None:
            self.context["cause"] = f"{type(cause).__name__}: {cause}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "message": self.message,
            "context": self.context,
        }

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(ReportEngineError):
    """Unknown provider type, unreadable YAML, non-positive deadline, ..."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        actual_value: Optional[Any] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if config_key:
            context["config_key"] = config_key
        if actual_value is not None:
            context["actual_value"] = str(actual_value)[:100]
        super().__init__(message, context=context, **kwargs)


# ============================================================
# REQUEST ERRORS
# ============================================================

class InvalidReportRequestError(ReportEngineError):
    """Blank token, empty or unknown capabilities, bad deadline."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = repr(value)[:100]
        super().__init__(message, context=context, **kwargs)


__all__ = [
    "ReportEngineError",
    "ConfigurationError",
    "InvalidReportRequestError",
]
