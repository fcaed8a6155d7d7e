"""
RugCheck Source - Solana token security report from rugcheck.xyz.

RugCheck provides:
- Normalised risk score (0-100, higher = riskier)
- Mint / freeze authority status
- LP lock percentage
- Holder count and top-holder concentration
- Named risks with info / warn / danger levels
"""

import logging
from typing import Any, Optional

from ..base import HttpProvider
from ..exceptions import ParseError
from ..models import Capability, HolderDistribution, ProviderMetadata
from .dexscreener import is_evm_address


logger = logging.getLogger(__name__)


def _first(data: dict[str, Any], *keys: str) -> Any:
    """Return the first present (non-None) value among keys."""
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _authority_enabled(data: dict[str, Any], *keys: str) -> Optional[bool]:
    """True if any authority key holds an address, None if none was reported."""
    if not any(key in data for key in keys):
        return None
    return _first(data, *keys) is not None


class RugCheckHolderSource(HttpProvider):
    """HOLDER_DISTRIBUTION with contract-security flags from rugcheck.xyz."""

    BASE_URL = "https://api.rugcheck.xyz/v1"
    DEFAULT_TIMEOUT = 10.0
    DEFAULT_SUCCESS_TTL_MS = 300_000  # 5 minutes

    def __init__(self, capability: Capability = Capability.HOLDER_DISTRIBUTION, **kwargs: Any) -> None:
        super().__init__(capability, **kwargs)

    @classmethod
    def supported_capabilities(cls) -> tuple[Capability, ...]:
        return (Capability.HOLDER_DISTRIBUTION,)

    @property
    def metadata(self) -> ProviderMetadata:
        return ProviderMetadata(
            name="rugcheck",
            display_name="RugCheck",
            capabilities=(Capability.HOLDER_DISTRIBUTION,),
            requires_api_key=False,
            base_url=self.BASE_URL,
            documentation_url="https://api.rugcheck.xyz/swagger/index.html",
            tags=["security", "holders", "solana", "free"],
        )

    def serves(self, token_key: str) -> bool:
        return not is_evm_address(token_key)

    async def _fetch_data(self, token_key: str) -> Optional[HolderDistribution]:
        data = await self._get_json(f"{self.BASE_URL}/tokens/{token_key}/report")
        if data is None:
            return None
        if not isinstance(data, dict):
            raise ParseError(
                f"Unexpected RugCheck payload type: {type(data).__name__}",
                source_name=self.name,
            )
        return self.parse_report(data)

    def parse_report(self, data: dict[str, Any]) -> HolderDistribution:
        """Normalize a RugCheck report document."""
        markets = data.get("markets") or []
        market = markets[0] if markets and isinstance(markets[0], dict) else {}
        lp = market.get("lp") or {}

        risks = [r for r in (data.get("risks") or []) if isinstance(r, dict)]
        danger = sum(1 for r in risks if r.get("level") == "danger")
        warn = sum(1 for r in risks if r.get("level") == "warn")

        top10 = _first(market, "top_10_holders_pct")
        top_holders = data.get("topHolders")
        if top10 is None and isinstance(top_holders, list) and top_holders:
            top10 = sum(float(h.get("pct") or 0) for h in top_holders[:10] if isinstance(h, dict))

        lp_locked_pct = _first(lp, "lpLockedPct")
        if lp_locked_pct is None:
            lp_locked_pct = _first(market, "lp_locked_pct")
        lp_locked = market.get("lp_locked")
        if lp_locked is None and lp_locked_pct is not None:
            lp_locked = float(lp_locked_pct) >= 50

        holder_count = _first(data, "totalHolders", "holders")
        risk_score = _first(data, "score_normalised", "risk_score")

        return HolderDistribution(
            holder_count=int(holder_count) if holder_count is not None else None,
            top10_pct=float(top10) if top10 is not None else None,
            risk_score=min(100.0, float(risk_score)) if risk_score is not None else None,
            mint_authority=_authority_enabled(data, "mintAuthority", "mint_authority"),
            freeze_authority=_authority_enabled(data, "freezeAuthority", "freeze_authority"),
            lp_locked=lp_locked,
            lp_locked_pct=float(lp_locked_pct) if lp_locked_pct is not None else None,
            danger_count=danger,
            warn_count=warn,
            risks=tuple(str(r.get("name", "")) for r in risks if r.get("name")),
            source=self.name,
        )
