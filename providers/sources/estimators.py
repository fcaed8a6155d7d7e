"""
Market-Data Estimators - Whale flow and technical signals from a snapshot.

Neither whale transfers nor candles are available from free pair APIs,
so both capabilities are estimated from the 24h pair statistics
(volume, market cap, price change, liquidity). The heuristics are
coarse on purpose; they are pure functions so they can be reused by the
demo provider and tested without I/O.
"""

import math
from typing import Optional

from ..models import MarketSnapshot, TechnicalSignals, WhaleActivity


# Minimum USD size of a "whale" transaction per chain
WHALE_THRESHOLDS: dict[str, float] = {
    "ethereum": 50_000,
    "bsc": 25_000,
    "polygon": 10_000,
    "arbitrum": 20_000,
    "avalanche": 15_000,
    "base": 15_000,
    "solana": 30_000,
}
DEFAULT_WHALE_THRESHOLD = 25_000


# ============================================================
# WHALE ACTIVITY
# ============================================================

def whale_threshold_for(chain: str) -> float:
    return WHALE_THRESHOLDS.get((chain or "").lower(), DEFAULT_WHALE_THRESHOLD)


def _whale_volume(volume: float, market_cap: float, price_change: float) -> float:
    ratio = 0.20
    if market_cap > 100_000_000:
        ratio = 0.25
    elif market_cap > 10_000_000:
        ratio = 0.22
    elif market_cap < 1_000_000:
        ratio = 0.15

    if abs(price_change) > 20:
        ratio += 0.05
    if abs(price_change) > 50:
        ratio += 0.05

    return volume * ratio


def _flow_bias(volume: float, market_cap: float, price_change: float) -> float:
    bias = 0.0
    if price_change > 10:
        bias = 0.6
    elif price_change > 5:
        bias = 0.3
    elif price_change > 0:
        bias = 0.1
    elif price_change < -10:
        bias = -0.6
    elif price_change < -5:
        bias = -0.3
    elif price_change < 0:
        bias = -0.1

    volume_ratio = volume / market_cap if market_cap > 0 else 0
    if volume_ratio > 0.2:
        bias *= 1.2
    if volume_ratio > 0.5:
        bias *= 1.3
    return bias


def _smart_money_score(volume: float, market_cap: float, price_change: float) -> float:
    score = 0.0
    if market_cap > 50_000_000:
        score += 30
    elif market_cap > 10_000_000:
        score += 20

    volume_ratio = volume / market_cap if market_cap > 0 else 0
    if volume_ratio > 0.1 and abs(price_change) > 5:
        score += 25
    if volume_ratio > 0.2 and abs(price_change) > 10:
        score += 25
    if abs(price_change) > 15 and volume_ratio > 0.05:
        score += 20
    return score


def estimate_whale_activity(
    snapshot: MarketSnapshot,
    source: str = "",
) -> Optional[WhaleActivity]:
    """
    Estimate whale flow from 24h pair statistics.

    Returns None when the pair did not trade (nothing to report).
    """
    volume = snapshot.volume_24h or 0.0
    if volume <= 0:
        return None

    market_cap = snapshot.market_cap or 0.0
    price_change = snapshot.price_change_24h or 0.0
    threshold = whale_threshold_for(snapshot.chain)

    whale_volume = _whale_volume(volume, market_cap, price_change)
    net_flow = whale_volume * _flow_bias(volume, market_cap, price_change)

    avg_whale_size = threshold * 2
    if market_cap > 50_000_000:
        avg_whale_size = threshold * 3
    if market_cap < 1_000_000:
        avg_whale_size = threshold * 1.2
    whale_count = max(1, min(20, math.floor(whale_volume / avg_whale_size)))

    smart_score = _smart_money_score(volume, market_cap, price_change)
    smart_active = smart_score >= 50

    return WhaleActivity(
        chain=snapshot.chain,
        whale_threshold_usd=threshold,
        whale_volume_usd=round(whale_volume, 2),
        total_buys_usd=round((whale_volume + net_flow) / 2, 2),
        total_sells_usd=round((whale_volume - net_flow) / 2, 2),
        net_flow_usd=round(net_flow, 2),
        unique_whales=whale_count,
        largest_transaction_usd=round(whale_volume * 0.4, 2),
        smart_money_following=math.floor(smart_score / 25) if smart_active else 0,
        smart_money_active=smart_active,
        smart_money_confidence=min(95.0, smart_score),
        source=source,
    )


# ============================================================
# TECHNICAL SIGNALS
# ============================================================

def _rsi(price_change: float, volume_ratio: float) -> float:
    rsi = 50.0
    if price_change > 15:
        rsi = 75
    elif price_change > 5:
        rsi = 65
    elif price_change > 0:
        rsi = 55
    elif price_change < -15:
        rsi = 25
    elif price_change < -5:
        rsi = 35
    elif price_change < 0:
        rsi = 45

    if volume_ratio > 0.2:
        if price_change > 0:
            rsi += 5
        elif price_change < 0:
            rsi -= 5
    elif volume_ratio < 0.05:
        # Weak volume pulls towards neutral
        if rsi > 50:
            rsi -= 3
        elif rsi < 50:
            rsi += 3

    return float(max(0, min(100, round(rsi))))


def _confidence(
    expected_ratio: float,
    market_cap: float,
    liquidity: float,
    price_change: float,
) -> float:
    confidence = 50.0
    if expected_ratio > 1.5:
        confidence += 20
    elif expected_ratio > 1.0:
        confidence += 10
    elif expected_ratio < 0.5:
        confidence -= 15

    if market_cap > 10_000_000:
        confidence += 15
    elif market_cap < 1_000_000:
        confidence -= 10

    if liquidity > 500_000:
        confidence += 10
    elif liquidity < 50_000:
        confidence -= 15

    volatility = abs(price_change)
    if volatility > 50:
        confidence -= 10
    elif volatility > 20:
        confidence -= 5

    return max(0.0, min(100.0, confidence))


def estimate_technical_signals(
    snapshot: MarketSnapshot,
    source: str = "",
) -> Optional[TechnicalSignals]:
    """
    Derive indicator-style signals from 24h pair statistics.

    Returns None when no price is known.
    """
    price = snapshot.price_usd
    if price is None or price <= 0:
        return None

    volume = snapshot.volume_24h or 0.0
    market_cap = snapshot.market_cap or 0.0
    liquidity = snapshot.liquidity_usd or 0.0
    price_change = snapshot.price_change_24h or 0.0
    volume_ratio_mcap = volume / market_cap if market_cap > 0 else 0.0

    rsi = _rsi(price_change, volume_ratio_mcap)
    if rsi > 70:
        rsi_signal = "overbought"
    elif rsi < 30:
        rsi_signal = "oversold"
    else:
        rsi_signal = "neutral"

    momentum = price_change
    if volume_ratio_mcap > 0.1:
        momentum *= 1.2
    elif volume_ratio_mcap < 0.02:
        momentum *= 0.7
    strength = min(100.0, abs(momentum) * 5)

    expected_volume = market_cap * 0.05
    expected_ratio = round(volume / expected_volume, 2) if expected_volume > 0 else 0.0

    volatility = abs(price_change) / 100
    liquidity_factor = 1.0 if liquidity > 100_000 else 0.5
    price_range = price * (0.05 + volatility) * liquidity_factor

    bullish = bearish = 0
    if price_change > 5:
        bullish += 1
    elif price_change < -5:
        bearish += 1
    if rsi > 60:
        bullish += 1
    elif rsi < 40:
        bearish += 1
    if expected_ratio > 1.5:
        if price_change > 0:
            bullish += 1
        elif price_change < 0:
            bearish += 1
    if strength > 70:
        if momentum > 0:
            bullish += 1
        else:
            bearish += 1

    if bullish > bearish:
        overall = "bullish"
    elif bearish > bullish:
        overall = "bearish"
    else:
        overall = "neutral"

    return TechnicalSignals(
        rsi=rsi,
        rsi_signal=rsi_signal,
        macd=round(price_change * 0.8, 4),
        macd_signal=round(price_change * 0.6, 4),
        momentum_score=round(momentum, 2),
        momentum_strength=round(strength),
        volume_ratio=expected_ratio,
        support=max(0.0, price - price_range),
        resistance=price + price_range,
        overall=overall,
        confidence=_confidence(expected_ratio, market_cap, liquidity, price_change),
        source=source,
    )


__all__ = [
    "WHALE_THRESHOLDS",
    "DEFAULT_WHALE_THRESHOLD",
    "whale_threshold_for",
    "estimate_whale_activity",
    "estimate_technical_signals",
]
