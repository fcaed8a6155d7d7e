"""
Indicator Weighting - Shared scoring helpers.

============================================================
WEIGHTED AVERAGE WITH REDISTRIBUTION
============================================================

Each indicator is a weighted average of factor subscores (0-100).
When a factor cannot be computed (its capability failed or the field
was not reported) its weight is redistributed proportionally among
the present factors, so the effective weights always sum to 1.0:

    effective_weight[f] = base_weight[f] / sum(base_weight[p] for p in present)

An absent factor is never treated as 0.

============================================================
"""

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from .models import IndicatorLevel


SCORE_MIN = 0.0
SCORE_MAX = 100.0

HIGH_THRESHOLD = 70.0
MEDIUM_THRESHOLD = 40.0


@dataclass(frozen=True)
class WeightedScore:
    """Result of a weighted average over the present factors."""
    score: float
    subscores: dict[str, float]
    effective_weights: dict[str, float]


def clamp(value: float, low: float = SCORE_MIN, high: float = SCORE_MAX) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def level_for(
    score: float,
    high: float = HIGH_THRESHOLD,
    medium: float = MEDIUM_THRESHOLD,
) -> IndicatorLevel:
    """Map a score to its level: >= high -> HIGH, >= medium -> MEDIUM, else LOW."""
    if score >= high:
        return IndicatorLevel.HIGH
    if score >= medium:
        return IndicatorLevel.MEDIUM
    return IndicatorLevel.LOW


def redistribute_weights(
    weights: Mapping[str, float],
    present: Sequence[str],
) -> dict[str, float]:
    """Scale the weights of the present factors so they sum to 1.0."""
    total = sum(weights[name] for name in present)
    if total <= 0:
        return {}
    return {name: weights[name] / total for name in present}


def weighted_average(
    subscores: Mapping[str, Optional[float]],
    weights: Mapping[str, float],
) -> Optional[WeightedScore]:
    """
    Weighted average over the factors that are present.

    Args:
        subscores: factor -> subscore (None = absent)
        weights: factor -> base weight

    Returns:
        WeightedScore rounded to one decimal, or None if no factor is present
    """
    present = [
        name for name, value in subscores.items()
        if value is not None and weights.get(name, 0) > 0
    ]
    if not present:
        return None

    effective = redistribute_weights(weights, present)
    clamped = {name: clamp(float(subscores[name])) for name in present}
    score = sum(clamped[name] * effective[name] for name in present)

    return WeightedScore(
        score=round(clamp(score), 1),
        subscores={name: round(value, 1) for name, value in clamped.items()},
        effective_weights=effective,
    )


def bracket_score(
    value: float,
    brackets: Sequence[tuple[float, float]],
    default: float,
) -> float:
    """
    Score a value with "below threshold" brackets.

    Brackets are (upper_bound, score) pairs in ascending order; the first
    bracket whose bound is greater than value wins, otherwise default.
    """
    for bound, score in brackets:
        if value < bound:
            return score
    return default


def floor_bracket_score(
    value: float,
    brackets: Sequence[tuple[float, float]],
    default: float,
) -> float:
    """
    Score a value with "at least threshold" brackets.

    Brackets are (lower_bound, score) pairs in descending order; the first
    bracket whose bound is <= value wins, otherwise default.
    """
    for bound, score in brackets:
        if value >= bound:
            return score
    return default
