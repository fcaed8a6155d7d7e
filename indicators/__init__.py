"""
Indicators Package.

Pure scoring of report data into normalized 0-100 indicators.
"""

from .models import Indicator, IndicatorLevel, IndicatorName
from .scorers import (
    BaseIndicatorScorer,
    HolderHealthScorer,
    IndicatorScorer,
    LiquidityScorer,
    RiskScorer,
    SocialScorer,
    TechnicalScorer,
    WhaleScorer,
    score_indicators,
)
from .weighting import (
    WeightedScore,
    clamp,
    level_for,
    redistribute_weights,
    weighted_average,
)


__all__ = [
    "Indicator",
    "IndicatorLevel",
    "IndicatorName",
    "BaseIndicatorScorer",
    "HolderHealthScorer",
    "IndicatorScorer",
    "LiquidityScorer",
    "RiskScorer",
    "SocialScorer",
    "TechnicalScorer",
    "WhaleScorer",
    "score_indicators",
    "WeightedScore",
    "clamp",
    "level_for",
    "redistribute_weights",
    "weighted_average",
]
