"""
Indicator Scorers - One scorer per indicator.

============================================================
INDICATORS
============================================================

1. Risk          - token age, liquidity, market cap, volume, holder security
2. Liquidity     - pool depth, turnover
3. Social        - mention volume, sentiment, trend, reach
4. Whale         - whale count, flow volume, smart money
5. Technical     - RSI, momentum, volume, signal confidence
6. Holder Health - holder count, concentration

Each scorer:
- Takes the payloads of the capabilities that succeeded
- Computes factor subscores (0-100); a factor is None when its input
  is missing
- Returns an Indicator, or None when no factor is present

============================================================
SCORING PHILOSOPHY
============================================================

- All scores normalized to 0-100
- Direction is per indicator (RISK: higher = riskier)
- Fully explainable (no ML)
- Pure: no I/O, no clock, no randomness

============================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from providers.models import (
    Capability,
    HolderDistribution,
    MarketSnapshot,
    SocialMentions,
    TechnicalSignals,
    WhaleActivity,
)

from .models import Indicator, IndicatorLevel, IndicatorName
from .weighting import bracket_score, clamp, floor_bracket_score, level_for, weighted_average


logger = logging.getLogger(__name__)


Payloads = Mapping[Capability, Any]


# =============================================================
# BASE SCORER
# =============================================================


class BaseIndicatorScorer(ABC):
    """
    Abstract base class for indicator scorers.

    Subclasses declare the indicator name, base weights and labels, and
    implement factors().
    """

    name: IndicatorName
    weights: dict[str, float]
    labels: dict[IndicatorLevel, str]

    @abstractmethod
    def factors(self, payloads: Payloads) -> dict[str, Optional[float]]:
        """
        Compute factor subscores.

        Args:
            payloads: capability -> payload, only for capabilities with data

        Returns:
            factor -> subscore (0-100) or None when the factor is absent
        """
        pass

    def score(self, payloads: Payloads) -> Optional[Indicator]:
        """Score the indicator, or None when no factor is present."""
        result = weighted_average(self.factors(payloads), self.weights)
        if result is None:
            return None

        level = level_for(result.score)
        return Indicator(
            name=self.name,
            score=result.score,
            level=level,
            label=self.labels[level],
            contributing_factors=result.subscores,
            effective_weights=result.effective_weights,
        )


def _payload(payloads: Payloads, capability: Capability, kind: type) -> Optional[Any]:
    value = payloads.get(capability)
    return value if isinstance(value, kind) else None


# =============================================================
# RISK
# =============================================================


class RiskScorer(BaseIndicatorScorer):
    """
    Risk of the token (higher = riskier).

    Young, thin, small and illiquidly-traded tokens score high. Holder
    security, when RugCheck-style data is available, carries the largest
    weight.
    """

    name = IndicatorName.RISK
    weights = {
        "age": 0.20,
        "liquidity": 0.20,
        "market_cap": 0.15,
        "volume": 0.15,
        "holder_security": 0.30,
    }
    labels = {
        IndicatorLevel.HIGH: "High Risk",
        IndicatorLevel.MEDIUM: "Medium Risk",
        IndicatorLevel.LOW: "Low Risk",
    }

    AGE_BRACKETS = ((1, 100), (3, 90), (7, 75), (30, 50), (90, 25))
    LIQUIDITY_BRACKETS = ((1_000, 100), (5_000, 90), (10_000, 75), (50_000, 50), (100_000, 25))
    MARKET_CAP_BRACKETS = (
        (10_000, 100), (50_000, 90), (100_000, 75), (1_000_000, 50), (10_000_000, 25),
    )
    VOLUME_RATIO_BRACKETS = ((0.01, 100), (0.05, 75), (0.1, 50), (0.3, 25))

    def factors(self, payloads: Payloads) -> dict[str, Optional[float]]:
        market = _payload(payloads, Capability.MARKET_SNAPSHOT, MarketSnapshot)
        holders = _payload(payloads, Capability.HOLDER_DISTRIBUTION, HolderDistribution)

        result: dict[str, Optional[float]] = {name: None for name in self.weights}

        if market is not None:
            if market.age_days is not None:
                result["age"] = bracket_score(market.age_days, self.AGE_BRACKETS, 10)
            if market.liquidity_usd is not None:
                result["liquidity"] = bracket_score(market.liquidity_usd, self.LIQUIDITY_BRACKETS, 10)
            if market.market_cap is not None:
                result["market_cap"] = bracket_score(market.market_cap, self.MARKET_CAP_BRACKETS, 10)
            if market.volume_24h is not None and market.liquidity_usd is not None:
                result["volume"] = self._volume_risk(market.volume_24h, market.liquidity_usd)

        if holders is not None and holders.has_security_data:
            result["holder_security"] = self._holder_security_risk(holders)

        return result

    def _volume_risk(self, volume: float, liquidity: float) -> float:
        if liquidity <= 0:
            return 100.0
        return bracket_score(volume / liquidity, self.VOLUME_RATIO_BRACKETS, 10)

    @staticmethod
    def _holder_security_risk(holders: HolderDistribution) -> float:
        risk = holders.risk_score or 0.0
        if holders.mint_authority:
            risk += 20
        if holders.freeze_authority:
            risk += 15
        if holders.lp_locked is False or (
            holders.lp_locked_pct is not None and holders.lp_locked_pct < 50
        ):
            risk += 25
        if holders.top10_pct is not None and holders.top10_pct > 50:
            risk += 20
        if holders.holder_count is not None and holders.holder_count < 100:
            risk += 15
        risk += holders.danger_count * 10
        risk += holders.warn_count * 5
        return min(100.0, risk)


# =============================================================
# LIQUIDITY
# =============================================================


class LiquidityScorer(BaseIndicatorScorer):
    """Depth of the main pool and how actively it turns over (higher = better)."""

    name = IndicatorName.LIQUIDITY
    weights = {"depth": 0.70, "turnover": 0.30}
    labels = {
        IndicatorLevel.HIGH: "High Liquidity",
        IndicatorLevel.MEDIUM: "Medium Liquidity",
        IndicatorLevel.LOW: "Low Liquidity",
    }

    DEPTH_BRACKETS = (
        (1_000_000, 100), (500_000, 90), (100_000, 75), (50_000, 60),
        (10_000, 45), (5_000, 30), (1_000, 15),
    )
    TURNOVER_BRACKETS = ((2.0, 100), (1.0, 85), (0.5, 70), (0.1, 50), (0.01, 25))

    def factors(self, payloads: Payloads) -> dict[str, Optional[float]]:
        market = _payload(payloads, Capability.MARKET_SNAPSHOT, MarketSnapshot)
        if market is None or market.liquidity_usd is None:
            return {"depth": None, "turnover": None}

        turnover = None
        if market.volume_24h is not None and market.liquidity_usd > 0:
            turnover = floor_bracket_score(
                market.volume_24h / market.liquidity_usd, self.TURNOVER_BRACKETS, 10
            )

        return {
            "depth": floor_bracket_score(market.liquidity_usd, self.DEPTH_BRACKETS, 5),
            "turnover": turnover,
        }


# =============================================================
# SOCIAL
# =============================================================


class SocialScorer(BaseIndicatorScorer):
    """Social buzz: how much, how positive, how fast it grows, how far it reaches."""

    name = IndicatorName.SOCIAL
    weights = {"mention_volume": 0.35, "sentiment": 0.30, "trend": 0.20, "reach": 0.15}
    labels = {
        IndicatorLevel.HIGH: "High Social Activity",
        IndicatorLevel.MEDIUM: "Medium Social Activity",
        IndicatorLevel.LOW: "Low Social Activity",
    }

    VOLUME_BRACKETS = ((50, 100), (20, 80), (10, 60), (5, 40), (1, 20))
    REACH_BRACKETS = ((1_000_000, 100), (100_000, 80), (10_000, 60), (1_000, 40), (1, 20))

    def factors(self, payloads: Payloads) -> dict[str, Optional[float]]:
        social = _payload(payloads, Capability.SOCIAL_MENTIONS, SocialMentions)
        if social is None:
            return {name: None for name in self.weights}

        classified = social.positive + social.negative + social.neutral
        return {
            "mention_volume": floor_bracket_score(social.current_count, self.VOLUME_BRACKETS, 0),
            "sentiment": (social.sentiment_balance + 1) * 50 if classified > 0 else None,
            "trend": clamp(50 + social.change_percent / 2),
            "reach": floor_bracket_score(social.total_reach, self.REACH_BRACKETS, 0),
        }


# =============================================================
# WHALE
# =============================================================


class WhaleScorer(BaseIndicatorScorer):
    """Large-holder activity (higher = more whale activity)."""

    name = IndicatorName.WHALE
    weights = {"whale_count": 0.45, "flow_volume": 0.35, "smart_money": 0.20}
    labels = {
        IndicatorLevel.HIGH: "High Whale Activity",
        IndicatorLevel.MEDIUM: "Medium Whale Activity",
        IndicatorLevel.LOW: "Low Whale Activity",
    }

    FLOW_BRACKETS = ((1_000_000, 100), (500_000, 85), (100_000, 70), (25_000, 50), (5_000, 30))

    def factors(self, payloads: Payloads) -> dict[str, Optional[float]]:
        whale = _payload(payloads, Capability.WHALE_ACTIVITY, WhaleActivity)
        if whale is None:
            return {name: None for name in self.weights}

        return {
            "whale_count": clamp(whale.unique_whales / 20 * 100),
            "flow_volume": floor_bracket_score(whale.whale_volume_usd, self.FLOW_BRACKETS, 15),
            "smart_money": clamp(whale.smart_money_confidence),
        }


# =============================================================
# TECHNICAL
# =============================================================


class TechnicalScorer(BaseIndicatorScorer):
    """Technical strength (higher = more bullish, better confirmed)."""

    name = IndicatorName.TECHNICAL
    weights = {"rsi": 0.30, "momentum": 0.30, "volume": 0.20, "confidence": 0.20}
    labels = {
        IndicatorLevel.HIGH: "Bullish Technicals",
        IndicatorLevel.MEDIUM: "Neutral Technicals",
        IndicatorLevel.LOW: "Bearish Technicals",
    }

    def factors(self, payloads: Payloads) -> dict[str, Optional[float]]:
        technical = _payload(payloads, Capability.TECHNICAL_SIGNALS, TechnicalSignals)
        if technical is None:
            return {name: None for name in self.weights}

        return {
            "rsi": clamp(technical.rsi),
            # +/-20% momentum spans the full range
            "momentum": clamp(50 + technical.momentum_score * 2.5),
            "volume": clamp(technical.volume_ratio * 50),
            "confidence": clamp(technical.confidence),
        }


# =============================================================
# HOLDER HEALTH
# =============================================================


class HolderHealthScorer(BaseIndicatorScorer):
    """Breadth and spread of the holder base (higher = healthier)."""

    name = IndicatorName.HOLDER_HEALTH
    weights = {"holder_count": 0.50, "concentration": 0.50}
    labels = {
        IndicatorLevel.HIGH: "Healthy Distribution",
        IndicatorLevel.MEDIUM: "Moderate Distribution",
        IndicatorLevel.LOW: "Concentrated Distribution",
    }

    HOLDER_BRACKETS = ((10_000, 100), (5_000, 85), (1_000, 70), (500, 55), (100, 40))

    def factors(self, payloads: Payloads) -> dict[str, Optional[float]]:
        holders = _payload(payloads, Capability.HOLDER_DISTRIBUTION, HolderDistribution)
        if holders is None:
            return {name: None for name in self.weights}

        return {
            "holder_count": (
                floor_bracket_score(holders.holder_count, self.HOLDER_BRACKETS, 20)
                if holders.holder_count is not None else None
            ),
            "concentration": (
                clamp(100 - holders.top10_pct) if holders.top10_pct is not None else None
            ),
        }


# =============================================================
# INDICATOR SCORER
# =============================================================


DEFAULT_SCORERS: tuple[type[BaseIndicatorScorer], ...] = (
    RiskScorer,
    LiquidityScorer,
    SocialScorer,
    WhaleScorer,
    TechnicalScorer,
    HolderHealthScorer,
)


class IndicatorScorer:
    """
    Runs every indicator scorer over the available payloads.

    Usage:
        scorer = IndicatorScorer()
        indicators = scorer.score_all({Capability.MARKET_SNAPSHOT: snapshot})
    """

    def __init__(self, scorers: Optional[list[BaseIndicatorScorer]] = None) -> None:
        self._scorers = scorers if scorers is not None else [cls() for cls in DEFAULT_SCORERS]

    def score_all(self, payloads: Payloads) -> dict[IndicatorName, Indicator]:
        """
        Score every indicator that has at least one present factor.

        Indicators without data are omitted.
        """
        indicators: dict[IndicatorName, Indicator] = {}
        for scorer in self._scorers:
            indicator = scorer.score(payloads)
            if indicator is not None:
                indicators[indicator.name] = indicator
            else:
                logger.debug(f"Indicator {scorer.name.value} omitted: no factors present")
        return indicators


def score_indicators(payloads: Payloads) -> dict[IndicatorName, Indicator]:
    """Convenience wrapper around IndicatorScorer().score_all()."""
    return IndicatorScorer().score_all(payloads)
