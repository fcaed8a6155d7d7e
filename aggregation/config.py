"""
Report Engine - Configuration.

============================================================
CONFIGURATION
============================================================

All report engine settings are injected as plain data:
- Per-capability fallback chains (ordered provider lists)
- Per-capability success / error cache TTLs
- Report deadline, cache capacity, housekeeping interval
- Provider credentials

Sources, in increasing precedence:
1. Built-in defaults (ReportConfig.default())
2. YAML file (ReportConfig.from_yaml())
3. Environment variables (ReportConfig.from_env())

============================================================
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from core.exceptions import ConfigurationError
from providers.models import Capability


logger = logging.getLogger(__name__)


# =============================================================
# DEFAULTS
# =============================================================

MINUTE_MS = 60_000

DEFAULT_SUCCESS_TTL_MS: Dict[Capability, int] = {
    Capability.MARKET_SNAPSHOT: 2 * MINUTE_MS,
    Capability.SOCIAL_MENTIONS: 15 * MINUTE_MS,
    Capability.WHALE_ACTIVITY: 5 * MINUTE_MS,
    Capability.TECHNICAL_SIGNALS: 5 * MINUTE_MS,
    Capability.HOLDER_DISTRIBUTION: 5 * MINUTE_MS,
}

DEFAULT_ERROR_TTL_MS: Dict[Capability, int] = {
    Capability.MARKET_SNAPSHOT: 1 * MINUTE_MS,
    Capability.SOCIAL_MENTIONS: 5 * MINUTE_MS,
    Capability.WHALE_ACTIVITY: 1 * MINUTE_MS,
    Capability.TECHNICAL_SIGNALS: 1 * MINUTE_MS,
    Capability.HOLDER_DISTRIBUTION: 1 * MINUTE_MS,
}

# Provider type names, in fallback order, per capability
DEFAULT_CHAINS: Dict[Capability, List[str]] = {
    Capability.MARKET_SNAPSHOT: ["dexscreener"],
    Capability.SOCIAL_MENTIONS: ["x", "reddit_oauth", "reddit"],
    Capability.WHALE_ACTIVITY: ["dexscreener"],
    Capability.TECHNICAL_SIGNALS: ["dexscreener"],
    Capability.HOLDER_DISTRIBUTION: ["rugcheck", "etherscan", "birdeye"],
}

# Credential key each provider type reads
DEFAULT_CREDENTIAL_KEYS: Dict[str, str] = {
    "x": "X_BEARER_TOKEN",
    "reddit_oauth": "REDDIT_CLIENT_CREDENTIALS",  # "client_id:client_secret"
    "etherscan": "ETHERSCAN_API_KEY",
    "birdeye": "BIRDEYE_API_KEY",
}

CREDENTIAL_ENV_VARS = tuple(DEFAULT_CREDENTIAL_KEYS.values())


def _coerce(value: Any, kind: type, config_key: str, default: Any = None) -> Any:
    """Convert a YAML / env value to int or float, or raise ConfigurationError."""
    if value is None:
        return default
    if isinstance(value, bool):
        raise ConfigurationError(
            f"{config_key} must be a number",
            config_key=config_key,
            actual_value=value,
        )
    try:
        return kind(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise ConfigurationError(
            f"{config_key} must be a number",
            config_key=config_key,
            actual_value=value,
            cause=e,
        )


def _mapping(value: Any, config_key: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(
            f"{config_key} must be a mapping",
            config_key=config_key,
            actual_value=value,
        )
    return value



# =============================================================
# PROVIDER / CHAIN CONFIG
# =============================================================


@dataclass
class ProviderConfig:
    """One entry of a fallback chain."""

    type: str
    enabled: bool = True
    api_key: Optional[str] = None
    credential_key: Optional[str] = None
    timeout_seconds: Optional[float] = None
    success_ttl_ms: Optional[int] = None
    error_ttl_ms: Optional[int] = None
    max_retries: Optional[int] = None

    def __post_init__(self) -> None:
        self.type = self.type.strip().lower()
        if self.credential_key is None:
            self.credential_key = DEFAULT_CREDENTIAL_KEYS.get(self.type)

    @classmethod
    def from_dict(cls, data: Any) -> "ProviderConfig":
        if isinstance(data, str):
            return cls(type=data)
        if not isinstance(data, dict) or "type" not in data:
            raise ConfigurationError(
                "Provider entry must be a name or a mapping with a 'type'",
                config_key="providers",
                actual_value=data,
            )
        key = f"providers.{data['type']}"
        return cls(
            type=str(data["type"]),
            enabled=bool(data.get("enabled", True)),
            api_key=data.get("api_key"),
            credential_key=data.get("credential_key"),
            timeout_seconds=_coerce(data.get("timeout_seconds"), float, f"{key}.timeout_seconds"),
            success_ttl_ms=_coerce(data.get("success_ttl_ms"), int, f"{key}.success_ttl_ms"),
            error_ttl_ms=_coerce(data.get("error_ttl_ms"), int, f"{key}.error_ttl_ms"),
            max_retries=_coerce(data.get("max_retries"), int, f"{key}.max_retries"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "enabled": self.enabled,
            "api_key": "***" if self.api_key else None,
            "credential_key": self.credential_key,
            "timeout_seconds": self.timeout_seconds,
            "success_ttl_ms": self.success_ttl_ms,
            "error_ttl_ms": self.error_ttl_ms,
            "max_retries": self.max_retries,
        }


@dataclass
class ChainConfig:
    """Ordered providers and cache TTLs for one capability."""

    capability: Capability
    providers: List[ProviderConfig] = field(default_factory=list)
    success_ttl_ms: Optional[int] = None
    error_ttl_ms: Optional[int] = None

    def __post_init__(self) -> None:
        if self.success_ttl_ms is None:
            self.success_ttl_ms = DEFAULT_SUCCESS_TTL_MS[self.capability]
        if self.error_ttl_ms is None:
            self.error_ttl_ms = DEFAULT_ERROR_TTL_MS[self.capability]

    @property
    def enabled_providers(self) -> List[ProviderConfig]:
        return [p for p in self.providers if p.enabled]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "providers": [p.to_dict() for p in self.providers],
            "success_ttl_ms": self.success_ttl_ms,
            "error_ttl_ms": self.error_ttl_ms,
        }


# =============================================================
# REPORT CONFIG
# =============================================================


@dataclass
class ReportConfig:
    """
    Complete report engine configuration.

    Usage:
        config = ReportConfig.from_yaml(Path("report.yaml"))
        config = ReportConfig.from_env(base=config)
    """

    chains: Dict[Capability, ChainConfig] = field(default_factory=dict)
    deadline_ms: int = 20_000
    cache_capacity: int = 1000
    housekeeping_interval_seconds: float = 300.0
    enable_demo: bool = False
    credentials: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for capability in Capability:
            if capability not in self.chains:
                self.chains[capability] = ChainConfig(
                    capability=capability,
                    providers=[ProviderConfig(type=t) for t in DEFAULT_CHAINS[capability]],
                )

    @classmethod
    def default(cls) -> "ReportConfig":
        return cls()

    def validate(self) -> None:
        """Raise ConfigurationError for values the engine cannot run with."""
        if self.deadline_ms <= 0:
            raise ConfigurationError(
                "deadline_ms must be positive",
                config_key="deadline_ms",
                actual_value=self.deadline_ms,
            )
        if self.cache_capacity < 1:
            raise ConfigurationError(
                "cache_capacity must be at least 1",
                config_key="cache_capacity",
                actual_value=self.cache_capacity,
            )
        if self.housekeeping_interval_seconds <= 0:
            raise ConfigurationError(
                "housekeeping_interval_seconds must be positive",
                config_key="housekeeping_interval_seconds",
                actual_value=self.housekeeping_interval_seconds,
            )
        for capability, chain in self.chains.items():
            for key in ("success_ttl_ms", "error_ttl_ms"):
                value = getattr(chain, key)
                if value is None or value < 0:
                    raise ConfigurationError(
                        f"{capability.value}.{key} must be >= 0",
                        config_key=f"chains.{capability.value}.{key}",
                        actual_value=value,
                    )

    def credential(self, key: Optional[str]) -> Optional[str]:
        if not key:
            return None
        return self.credentials.get(key) or None

    @classmethod
    def from_env(cls, base: Optional["ReportConfig"] = None) -> "ReportConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - REPORT_DEADLINE_MS
        - REPORT_CACHE_CAPACITY
        - REPORT_HOUSEKEEPING_INTERVAL
        - REPORT_ENABLE_DEMO (true/false)
        - X_BEARER_TOKEN
        - REDDIT_CLIENT_CREDENTIALS (client_id:client_secret)
        - ETHERSCAN_API_KEY
        - BIRDEYE_API_KEY
        """
        config = base or cls()

        if os.getenv("REPORT_DEADLINE_MS"):
            config.deadline_ms = _coerce(os.getenv("REPORT_DEADLINE_MS"), int, "REPORT_DEADLINE_MS")
        if os.getenv("REPORT_CACHE_CAPACITY"):
            config.cache_capacity = _coerce(os.getenv("REPORT_CACHE_CAPACITY"), int, "REPORT_CACHE_CAPACITY")
        if os.getenv("REPORT_HOUSEKEEPING_INTERVAL"):
            config.housekeeping_interval_seconds = _coerce(
                os.getenv("REPORT_HOUSEKEEPING_INTERVAL"), float, "REPORT_HOUSEKEEPING_INTERVAL"
            )
        if os.getenv("REPORT_ENABLE_DEMO"):
            config.enable_demo = os.getenv("REPORT_ENABLE_DEMO", "").strip().lower() in ("1", "true", "yes", "on")

        for name in CREDENTIAL_ENV_VARS:
            value = os.getenv(name)
            if value:
                config.credentials[name] = value

        return config

    @classmethod
    def from_yaml(cls, path: Path) -> "ReportConfig":
        """
        Load configuration from a YAML file.

        Example:
            deadline_ms: 15000
            enable_demo: true
            chains:
              social_mentions:
                success_ttl_ms: 900000
                providers: [x, reddit]
              holder_distribution:
                providers:
                  - type: rugcheck
                    timeout_seconds: 8
        """
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to load YAML config from {path}: {e}",
                config_key="config_file",
                cause=e,
            )

        if not isinstance(data, dict):
            raise ConfigurationError(
                "YAML config must be a mapping",
                config_key="config_file",
                actual_value=type(data).__name__,
            )

        chains: Dict[Capability, ChainConfig] = {}
        for name, chain_data in _mapping(data.get("chains"), "chains").items():
            key = f"chains.{name}"
            try:
                capability = Capability.parse(name)
            except ValueError as e:
                raise ConfigurationError(str(e), config_key=key)
            chain_data = chain_data or {}
            if isinstance(chain_data, list):
                chain_data = {"providers": chain_data}
            chain_data = _mapping(chain_data, key)
            providers = chain_data.get("providers") or []
            if not isinstance(providers, list):
                raise ConfigurationError(
                    f"{key}.providers must be a list",
                    config_key=f"{key}.providers",
                    actual_value=providers,
                )
            chains[capability] = ChainConfig(
                capability=capability,
                providers=[ProviderConfig.from_dict(p) for p in providers],
                success_ttl_ms=_coerce(chain_data.get("success_ttl_ms"), int, f"{key}.success_ttl_ms"),
                error_ttl_ms=_coerce(chain_data.get("error_ttl_ms"), int, f"{key}.error_ttl_ms"),
            )

        config = cls(
            chains=chains,
            deadline_ms=_coerce(data.get("deadline_ms"), int, "deadline_ms", 20_000),
            cache_capacity=_coerce(data.get("cache_capacity"), int, "cache_capacity", 1000),
            housekeeping_interval_seconds=_coerce(
                data.get("housekeeping_interval_seconds"), float, "housekeeping_interval_seconds", 300.0
            ),
            enable_demo=bool(data.get("enable_demo", False)),
            credentials={k: str(v) for k, v in _mapping(data.get("credentials"), "credentials").items()},
        )
        logger.info(f"Loaded report config from {path}")
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deadline_ms": self.deadline_ms,
            "cache_capacity": self.cache_capacity,
            "housekeeping_interval_seconds": self.housekeeping_interval_seconds,
            "enable_demo": self.enable_demo,
            "credentials": {k: "***" for k in self.credentials},
            "chains": {cap.value: chain.to_dict() for cap, chain in self.chains.items()},
        }
