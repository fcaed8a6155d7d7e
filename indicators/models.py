"""
Indicator Models - Normalized, scored, leveled summaries.

Indicators are always recomputed from the current report's data and are
never cached.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class IndicatorName(Enum):
    RISK = "risk"
    LIQUIDITY = "liquidity"
    SOCIAL = "social"
    WHALE = "whale"
    TECHNICAL = "technical"
    HOLDER_HEALTH = "holder_health"


class IndicatorLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Indicator:
    """
    One scored indicator.

    contributing_factors holds the subscore of every factor that was
    present; effective_weights holds the weight each one actually
    carried after redistribution (they sum to 1.0).
    """
    name: IndicatorName
    score: float
    level: IndicatorLevel
    label: str
    contributing_factors: dict[str, float] = field(default_factory=dict)
    effective_weights: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name.value,
            "score": self.score,
            "level": self.level.value,
            "label": self.label,
            "contributing_factors": dict(self.contributing_factors),
            "effective_weights": {k: round(v, 4) for k, v in self.effective_weights.items()},
        }
