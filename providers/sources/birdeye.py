"""
Birdeye Source - Holder count from the Birdeye token overview.

Requires an API key (BIRDEYE_API_KEY). Only the holder count is reported;
concentration and security fields stay unknown. Pinned to Solana by
default, where 0x contract addresses are left to the EVM holder sources.
"""

import logging
from typing import Any, Optional

from ..base import HttpProvider
from ..models import Capability, HolderDistribution, ProviderMetadata
from .dexscreener import is_evm_address


logger = logging.getLogger(__name__)


class BirdeyeHolderSource(HttpProvider):
    """HOLDER_DISTRIBUTION (holder count only) from Birdeye."""

    BASE_URL = "https://public-api.birdeye.so"
    DEFAULT_TIMEOUT = 15.0
    DEFAULT_SUCCESS_TTL_MS = 300_000  # 5 minutes

    def __init__(
        self,
        capability: Capability = Capability.HOLDER_DISTRIBUTION,
        chain: str = "solana",
        **kwargs: Any,
    ) -> None:
        super().__init__(capability, **kwargs)
        self.chain = chain

    @classmethod
    def supported_capabilities(cls) -> tuple[Capability, ...]:
        return (Capability.HOLDER_DISTRIBUTION,)

    @property
    def metadata(self) -> ProviderMetadata:
        return ProviderMetadata(
            name="birdeye",
            display_name="Birdeye",
            capabilities=(Capability.HOLDER_DISTRIBUTION,),
            requires_api_key=True,
            base_url=self.BASE_URL,
            documentation_url="https://docs.birdeye.so/reference/get_defi-token-overview",
            tags=["holders"],
        )

    def serves(self, token_key: str) -> bool:
        """Solana mode skips 0x contract addresses."""
        return self.chain != "solana" or not is_evm_address(token_key)

    def _default_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "X-API-KEY": self.api_key or "",
            "x-chain": self.chain,
        }

    async def _fetch_data(self, token_key: str) -> Optional[HolderDistribution]:
        data = await self._get_json(
            f"{self.BASE_URL}/defi/token_overview",
            params={"address": token_key},
        )
        overview = (data or {}).get("data") if isinstance(data, dict) else None
        holders = (overview or {}).get("holder")

        if not holders:
            logger.debug(f"[{self.name}] No holder count for {token_key}")
            return None

        return HolderDistribution(holder_count=int(holders), source=self.name)
