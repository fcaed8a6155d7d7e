"""
Etherscan Source - EVM holder data from Etherscan-family explorers.

Uses the unified Etherscan V2 API: one key, one endpoint, the chain is
selected by `chainid`.

Supported chains:
- Ethereum (1)
- Base (8453)
- BSC (56)
- Polygon (137)
- Arbitrum (42161)
- Optimism (10)

A token address does not say which chain it lives on, so the configured
chains are tried in order and the first one that knows the contract wins.
"""

import logging
from typing import Any, Optional, Sequence

from ..base import HttpProvider
from ..exceptions import AuthenticationError, FetchError, RateLimitError
from ..models import Capability, HolderDistribution, ProviderMetadata
from .dexscreener import is_evm_address


logger = logging.getLogger(__name__)


class EtherscanHolderSource(HttpProvider):
    """HOLDER_DISTRIBUTION for EVM contract addresses (ETHERSCAN_API_KEY)."""

    V2_API_URL = "https://api.etherscan.io/v2/api"
    DEFAULT_TIMEOUT = 15.0
    DEFAULT_SUCCESS_TTL_MS = 300_000  # 5 minutes

    CHAIN_IDS = {
        "ethereum": 1,
        "base": 8453,
        "bsc": 56,
        "polygon": 137,
        "arbitrum": 42161,
        "optimism": 10,
    }
    DEFAULT_CHAINS = ("ethereum", "base", "bsc", "polygon")

    # Holders sampled per request; a full page means the list was cut
    HOLDER_SAMPLE = 1000
    TOP_HOLDERS = 10

    def __init__(
        self,
        capability: Capability = Capability.HOLDER_DISTRIBUTION,
        chains: Optional[Sequence[str]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(capability, **kwargs)
        self.chains = tuple(c.lower() for c in (chains or self.DEFAULT_CHAINS))
        unknown = [c for c in self.chains if c not in self.CHAIN_IDS]
        if unknown:
            raise ValueError(f"Etherscan does not cover chains: {unknown}")

    @classmethod
    def supported_capabilities(cls) -> tuple[Capability, ...]:
        return (Capability.HOLDER_DISTRIBUTION,)

    @property
    def metadata(self) -> ProviderMetadata:
        return ProviderMetadata(
            name="etherscan",
            display_name="Etherscan",
            capabilities=(Capability.HOLDER_DISTRIBUTION,),
            requires_api_key=True,
            base_url=self.V2_API_URL,
            documentation_url="https://docs.etherscan.io/etherscan-v2",
            tags=["holders", "evm", "explorer"],
        )

    def serves(self, token_key: str) -> bool:
        return is_evm_address(token_key)

    async def _fetch_data(self, token_key: str) -> Optional[HolderDistribution]:
        address = token_key.strip().lower()
        for chain in self.chains:
            holders = await self._fetch_holders(chain, address)
            if holders:
                logger.debug(f"[{self.name}] {address} found on {chain} ({len(holders)} holders sampled)")
                return self._summarize(holders)

        logger.debug(f"[{self.name}] {address} unknown on {list(self.chains)}")
        return None

    # ─────────────────────────────────────────────────────────────
    # Explorer calls
    # ─────────────────────────────────────────────────────────────

    async def _fetch_holders(self, chain: str, address: str) -> list[dict[str, Any]]:
        data = await self._get_json(
            self.V2_API_URL,
            params={
                "chainid": str(self.CHAIN_IDS[chain]),
                "module": "token",
                "action": "tokenholderlist",
                "contractaddress": address,
                "page": "1",
                "offset": str(self.HOLDER_SAMPLE),
                "apikey": self.api_key or "",
            },
        )
        if not isinstance(data, dict):
            return []
        return self._unwrap(data)

    def _unwrap(self, data: dict[str, Any]) -> list[dict[str, Any]]:
        """Unwrap {"status", "message", "result"}; errors arrive with HTTP 200."""
        status = str(data.get("status", "0"))
        result = data.get("result")
        if status == "1":
            return [h for h in result or [] if isinstance(h, dict)]

        detail = str(result or data.get("message") or "")
        lowered = detail.lower()
        if "rate limit" in lowered:
            raise RateLimitError(
                "Etherscan rate limit exceeded",
                source_name=self.name,
                retry_after_seconds=1,
            )
        if "api key" in lowered:
            raise AuthenticationError(f"Etherscan rejected credentials: {detail}", source_name=self.name)
        if lowered.startswith("no ") or not detail:
            return []
        raise FetchError(
            f"Etherscan API error: {detail}",
            source_name=self.name,
            status_code=200,
            details={"response": str(data)[:500]},
        )

    # ─────────────────────────────────────────────────────────────
    # Normalization
    # ─────────────────────────────────────────────────────────────

    def _summarize(self, holders: list[dict[str, Any]]) -> HolderDistribution:
        """
        Holder count and top-10 concentration from a holder page.

        A full page is a sample: the count is doubled as a floor estimate
        and concentration stays unknown, since the sample total is not the
        supply.
        """
        truncated = len(holders) >= self.HOLDER_SAMPLE
        if truncated:
            return HolderDistribution(holder_count=len(holders) * 2, source=self.name)

        quantities = sorted((_quantity(h) for h in holders), reverse=True)
        total = sum(quantities)
        top10_pct = sum(quantities[:self.TOP_HOLDERS]) / total * 100 if total > 0 else None

        return HolderDistribution(
            holder_count=len(holders),
            top10_pct=round(top10_pct, 2) if top10_pct is not None else None,
            source=self.name,
        )


def _quantity(holder: dict[str, Any]) -> int:
    try:
        return int(holder.get("TokenHolderQuantity") or 0)
    except (TypeError, ValueError):
        return 0
