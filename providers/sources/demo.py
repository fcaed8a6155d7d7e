"""
Demo Data Provider - Deterministic placeholder data for any capability.

Opt-in only: it belongs at the END of a fallback chain so that real
providers always win. The same token key always yields the same data,
which keeps demo reports and their caches stable.
"""

import hashlib
import logging
import random
from typing import Any, Optional

from ..base import BaseProvider
from ..models import (
    Capability,
    HolderDistribution,
    MarketSnapshot,
    Mention,
    ProviderMetadata,
    SocialMentions,
)
from .estimators import estimate_technical_signals, estimate_whale_activity


logger = logging.getLogger(__name__)


SAMPLE_MENTIONS: tuple[str, ...] = (
    "This token is looking bullish! #crypto #DeFi",
    "Just bought more, community is strong",
    "Interesting price action today, watching closely",
    "Not sure about this one, volume looks thin",
    "Chart is setting up for a breakout",
)


def seeded_rng(token_key: str, salt: str = "") -> random.Random:
    """Random generator seeded from the (case-insensitive) token key."""
    digest = hashlib.sha256(f"{token_key.strip().lower()}|{salt}".encode("utf-8")).digest()
    return random.Random(int.from_bytes(digest[:8], "big"))


class DemoDataProvider(BaseProvider):
    """
    Deterministic pseudo-random data seeded by the token key.

    Usage:
        provider = DemoDataProvider(Capability.SOCIAL_MENTIONS)
        result = await provider.fetch("PEPE", deadline_ms=5000)
    """

    DEFAULT_TIMEOUT = 1.0
    DEFAULT_SUCCESS_TTL_MS = 300_000
    MAX_RETRIES = 0

    @classmethod
    def supported_capabilities(cls) -> tuple[Capability, ...]:
        return tuple(Capability)

    @property
    def metadata(self) -> ProviderMetadata:
        return ProviderMetadata(
            name="demo",
            display_name="Demo Data",
            capabilities=tuple(Capability),
            requires_api_key=False,
            tags=["demo", "offline"],
        )

    async def _fetch_data(self, token_key: str) -> Optional[Any]:
        builders = {
            Capability.MARKET_SNAPSHOT: self.market_snapshot,
            Capability.SOCIAL_MENTIONS: self.social_mentions,
            Capability.WHALE_ACTIVITY: lambda key: estimate_whale_activity(
                self.market_snapshot(key), source=self.name
            ),
            Capability.TECHNICAL_SIGNALS: lambda key: estimate_technical_signals(
                self.market_snapshot(key), source=self.name
            ),
            Capability.HOLDER_DISTRIBUTION: self.holder_distribution,
        }
        return builders[self.capability](token_key)

    # ─────────────────────────────────────────────────────────────
    # Generators
    # ─────────────────────────────────────────────────────────────

    def market_snapshot(self, token_key: str) -> MarketSnapshot:
        rng = seeded_rng(token_key, "market")
        liquidity = round(rng.uniform(5_000, 2_000_000), 2)
        market_cap = round(liquidity * rng.uniform(2, 20), 2)
        return MarketSnapshot(
            token_address=token_key,
            symbol=token_key.strip().lstrip("$").upper()[:12],
            name=f"{token_key.strip()} (demo)",
            chain=rng.choice(["solana", "ethereum", "base", "bsc"]),
            price_usd=round(rng.uniform(0.000001, 5.0), 8),
            liquidity_usd=liquidity,
            market_cap=market_cap,
            fdv=market_cap,
            volume_24h=round(market_cap * rng.uniform(0.01, 0.6), 2),
            price_change_24h=round(rng.uniform(-40, 60), 2),
            age_days=round(rng.uniform(0.5, 400), 2),
            buys_24h=rng.randint(10, 5_000),
            sells_24h=rng.randint(10, 5_000),
            source=self.name,
        )

    def social_mentions(self, token_key: str) -> SocialMentions:
        rng = seeded_rng(token_key, "social")
        seed1, seed2, seed3 = rng.random(), rng.random(), rng.random()

        current = int(seed1 * 150) + 20
        previous = int(seed2 * 120) + 15

        if seed3 < 0.3:
            negative = int(current * (0.4 + seed1 * 0.3))
            positive = int(current * (0.1 + seed2 * 0.2))
        elif seed3 > 0.7:
            positive = int(current * (0.4 + seed1 * 0.4))
            negative = int(current * (0.05 + seed2 * 0.15))
        else:
            positive = int(current * (0.2 + seed1 * 0.3))
            negative = int(current * (0.2 + seed2 * 0.3))
        neutral = max(0, current - positive - negative)

        mentions = tuple(
            Mention(platform="demo", content=text, engagement=rng.randint(5, 500))
            for text in rng.sample(SAMPLE_MENTIONS, 3)
        )

        return SocialMentions(
            current_count=current,
            previous_count=previous,
            positive=positive,
            negative=negative,
            neutral=neutral,
            total_reach=int(seed1 * 50_000) + 5_000,
            top_mentions=tuple(sorted(mentions, key=lambda m: m.engagement, reverse=True)),
            source=self.name,
        )

    def holder_distribution(self, token_key: str) -> HolderDistribution:
        rng = seeded_rng(token_key, "holders")
        return HolderDistribution(
            holder_count=rng.randint(50, 50_000),
            top10_pct=round(rng.uniform(15, 85), 2),
            risk_score=round(rng.uniform(0, 80), 1),
            mint_authority=rng.random() < 0.3,
            freeze_authority=rng.random() < 0.2,
            lp_locked=rng.random() < 0.6,
            lp_locked_pct=round(rng.uniform(0, 100), 1),
            source=self.name,
        )
