"""
Five-step divergence scale.

A divergence is a normalized imbalance ratio (max deviation from the mean divided
by the mean). Users pick one of five tolerance levels; the same levels are used
to decide when two ratios are "effectively equal".
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional


class DivergenceLevel(Enum):
    VERY_STRICT = "very-strict"
    STRICT = "strict"
    MID = "mid"
    LOOSE = "loose"
    VERY_LOOSE = "very-loose"


@dataclass(frozen=True)
class LevelInfo:
    value: float
    label: str
    description: str
    index: int


DIVERGENCE_LEVELS: Dict[DivergenceLevel, LevelInfo] = {
    DivergenceLevel.VERY_STRICT: LevelInfo(0.10, "Very Strict", "±10%", 0),
    DivergenceLevel.STRICT: LevelInfo(0.25, "Strict", "±25%", 1),
    DivergenceLevel.MID: LevelInfo(0.50, "Mid", "±50%", 2),
    DivergenceLevel.LOOSE: LevelInfo(0.75, "Loose", "±75%", 3),
    DivergenceLevel.VERY_LOOSE: LevelInfo(0.90, "Very Loose", "±90%", 4),
}

# Scan order matters: on equal distance the earlier level wins
DIVERGENCE_LEVEL_ORDER: List[DivergenceLevel] = list(DIVERGENCE_LEVELS)


def value_to_level(value: float) -> DivergenceLevel:
    """Nearest level to a divergence value."""
    closest = DIVERGENCE_LEVEL_ORDER[0]
    min_diff = abs(DIVERGENCE_LEVELS[closest].value - value)
    for level in DIVERGENCE_LEVEL_ORDER:
        diff = abs(DIVERGENCE_LEVELS[level].value - value)
        if diff < min_diff:
            min_diff = diff
            closest = level
    return closest


def level_to_value(level: DivergenceLevel) -> float:
    return DIVERGENCE_LEVELS[level].value


def slider_index_to_level(index: float) -> DivergenceLevel:
    """Convert a slider position (0-4) to a level, clamping out-of-range input."""
    return DIVERGENCE_LEVEL_ORDER[max(0, min(4, round(index)))]


def level_to_slider_index(level: DivergenceLevel) -> int:
    return DIVERGENCE_LEVELS[level].index


def level_index(value: float) -> int:
    return DIVERGENCE_LEVELS[value_to_level(value)].index


def describe_level(value: float) -> str:
    """Human-readable level of a divergence value, e.g. "Strict (±25%)"."""
    info = DIVERGENCE_LEVELS[value_to_level(value)]
    return f"{info.label} ({info.description})"


def same_level(a: float, b: float) -> bool:
    return level_index(a) == level_index(b)


@dataclass
class DivergenceResult:
    """Measured divergence of a grouping; `current` is None when it cannot be measured."""

    current: Optional[float]

    def is_within_limit(self, allowed_divergence: float) -> bool:
        if self.current is None:
            return False
        return self.current <= allowed_divergence or same_level(
            self.current, allowed_divergence
        )
