"""
DexScreener Sources - Free, key-less DEX pair data.

DexScreener provides:
- Pair data by token address (/latest/dex/tokens/{address})
- Pair search by symbol (/latest/dex/search?q=...)
- Price, liquidity, market cap, 24h volume / price change / transactions

Three capabilities are served from the same pair document:
- MARKET_SNAPSHOT: the most liquid pair, normalized
- WHALE_ACTIVITY: flow estimated from the pair (see estimators)
- TECHNICAL_SIGNALS: signals estimated from the pair (see estimators)
"""

import logging
import re
from typing import Any, Optional

from ..base import HttpProvider
from ..exceptions import ParseError
from ..models import (
    Capability,
    MarketSnapshot,
    ProviderMetadata,
    TechnicalSignals,
    WhaleActivity,
)
from .estimators import estimate_technical_signals, estimate_whale_activity


logger = logging.getLogger(__name__)


_EVM_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")
_BASE58_ADDRESS = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def looks_like_address(token_key: str) -> bool:
    """True for EVM (0x...) or Solana-style base58 addresses."""
    return bool(_EVM_ADDRESS.match(token_key) or _BASE58_ADDRESS.match(token_key))


def is_evm_address(token_key: str) -> bool:
    return bool(_EVM_ADDRESS.match(token_key.strip()))


def _float_or_none(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class DexScreenerSource(HttpProvider):
    """
    Shared DexScreener pair lookup.

    Subclasses turn the most liquid pair into their capability payload
    via _build_payload().
    """

    BASE_URL = "https://api.dexscreener.com/latest/dex"
    DEFAULT_TIMEOUT = 10.0

    CAPABILITIES: tuple[Capability, ...] = ()

    def __init__(self, capability: Optional[Capability] = None, **kwargs: Any) -> None:
        super().__init__(capability or self.CAPABILITIES[0], **kwargs)

    @classmethod
    def supported_capabilities(cls) -> tuple[Capability, ...]:
        return cls.CAPABILITIES

    @property
    def metadata(self) -> ProviderMetadata:
        return ProviderMetadata(
            name="dexscreener",
            display_name="DexScreener",
            capabilities=self.CAPABILITIES,
            requires_api_key=False,
            base_url=self.BASE_URL,
            documentation_url="https://docs.dexscreener.com/api/reference",
            tags=["dex", "market", "free"],
        )

    async def _fetch_data(self, token_key: str) -> Optional[Any]:
        pair = await self._fetch_best_pair(token_key)
        if pair is None:
            return None
        snapshot = self._snapshot_from_pair(token_key, pair)
        return self._build_payload(snapshot)

    def _build_payload(self, snapshot: MarketSnapshot) -> Optional[Any]:
        return snapshot

    # ─────────────────────────────────────────────────────────────
    # Pair lookup
    # ─────────────────────────────────────────────────────────────

    async def _fetch_best_pair(self, token_key: str) -> Optional[dict[str, Any]]:
        """Return the most liquid pair for the token, or None."""
        if looks_like_address(token_key):
            data = await self._get_json(f"{self.BASE_URL}/tokens/{token_key}")
            pairs = self._extract_pairs(data)
        else:
            data = await self._get_json(f"{self.BASE_URL}/search", params={"q": token_key})
            symbol = token_key.strip().lstrip("$").upper()
            pairs = [
                p for p in self._extract_pairs(data)
                if str((p.get("baseToken") or {}).get("symbol", "")).upper() == symbol
            ]

        if not pairs:
            logger.debug(f"[{self.name}] No pairs found for {token_key}")
            return None

        return max(pairs, key=lambda p: _float_or_none((p.get("liquidity") or {}).get("usd")) or 0.0)

    def _extract_pairs(self, data: Any) -> list[dict[str, Any]]:
        if data is None:
            return []
        if isinstance(data, list):
            pairs = data
        elif isinstance(data, dict):
            pairs = data.get("pairs") or []
        else:
            raise ParseError(
                f"Unexpected DexScreener payload type: {type(data).__name__}",
                source_name=self.name,
            )
        return [p for p in pairs if isinstance(p, dict)]

    def _snapshot_from_pair(self, token_key: str, pair: dict[str, Any]) -> MarketSnapshot:
        base = pair.get("baseToken") or {}
        liquidity = pair.get("liquidity") or {}
        volume = pair.get("volume") or {}
        change = pair.get("priceChange") or {}
        txns = (pair.get("txns") or {}).get("h24") or {}

        age_days = None
        created_at = _float_or_none(pair.get("pairCreatedAt"))
        if created_at:
            age_days = max(0.0, (self._clock.timestamp_ms() - created_at) / 86_400_000)

        market_cap = _float_or_none(pair.get("marketCap"))
        fdv = _float_or_none(pair.get("fdv"))

        return MarketSnapshot(
            token_address=base.get("address") or token_key,
            symbol=base.get("symbol", ""),
            name=base.get("name", ""),
            chain=pair.get("chainId", ""),
            price_usd=_float_or_none(pair.get("priceUsd")),
            liquidity_usd=_float_or_none(liquidity.get("usd")),
            market_cap=market_cap if market_cap is not None else fdv,
            fdv=fdv,
            volume_24h=_float_or_none(volume.get("h24")),
            price_change_24h=_float_or_none(change.get("h24")),
            age_days=age_days,
            buys_24h=int(txns.get("buys") or 0),
            sells_24h=int(txns.get("sells") or 0),
            pair_address=pair.get("pairAddress", ""),
            dex_id=pair.get("dexId", ""),
            url=pair.get("url", ""),
            source=self.name,
        )


class DexScreenerMarketSource(DexScreenerSource):
    """MARKET_SNAPSHOT from the most liquid DexScreener pair."""

    CAPABILITIES = (Capability.MARKET_SNAPSHOT,)
    DEFAULT_SUCCESS_TTL_MS = 120_000  # 2 minutes


class DexScreenerWhaleSource(DexScreenerSource):
    """WHALE_ACTIVITY estimated from DexScreener pair statistics."""

    CAPABILITIES = (Capability.WHALE_ACTIVITY,)

    def _build_payload(self, snapshot: MarketSnapshot) -> Optional[WhaleActivity]:
        return estimate_whale_activity(snapshot, source=self.name)


class DexScreenerTechnicalSource(DexScreenerSource):
    """TECHNICAL_SIGNALS estimated from DexScreener pair statistics."""

    CAPABILITIES = (Capability.TECHNICAL_SIGNALS,)

    def _build_payload(self, snapshot: MarketSnapshot) -> Optional[TechnicalSignals]:
        return estimate_technical_signals(snapshot, source=self.name)
