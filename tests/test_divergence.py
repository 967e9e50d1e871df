from __future__ import annotations

import pytest

from group_distribution.divergence import (
    DivergenceLevel,
    DivergenceResult,
    describe_level,
    level_to_slider_index,
    level_to_value,
    same_level,
    slider_index_to_level,
    value_to_level,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (0.0, DivergenceLevel.VERY_STRICT),
        (0.1, DivergenceLevel.VERY_STRICT),
        (0.2, DivergenceLevel.STRICT),
        (0.5, DivergenceLevel.MID),
        (0.8, DivergenceLevel.LOOSE),
        (1.0, DivergenceLevel.VERY_LOOSE),
    ],
)
def test_value_to_level_picks_nearest(value: float, expected: DivergenceLevel) -> None:
    assert value_to_level(value) == expected


def test_value_to_level_ties_go_to_earlier_level() -> None:
    # 0.375 sits exactly between strict (0.25) and mid (0.5)
    assert value_to_level(0.375) == DivergenceLevel.STRICT
    assert value_to_level(0.625) == DivergenceLevel.MID


def test_level_values_and_indices() -> None:
    assert level_to_value(DivergenceLevel.LOOSE) == 0.75
    assert level_to_slider_index(DivergenceLevel.VERY_LOOSE) == 4
    assert value_to_level(level_to_value(DivergenceLevel.STRICT)) == DivergenceLevel.STRICT


def test_slider_index_is_clamped() -> None:
    assert slider_index_to_level(-3) == DivergenceLevel.VERY_STRICT
    assert slider_index_to_level(2) == DivergenceLevel.MID
    assert slider_index_to_level(9) == DivergenceLevel.VERY_LOOSE


def test_same_level() -> None:
    assert same_level(0.2, 0.3)
    assert not same_level(0.2, 0.6)


def test_divergence_result_within_limit() -> None:
    assert not DivergenceResult(None).is_within_limit(1.0)
    assert DivergenceResult(0.1).is_within_limit(0.2)
    # Above the raw limit but on the same level
    assert DivergenceResult(0.3).is_within_limit(0.25)
    assert not DivergenceResult(0.6).is_within_limit(0.25)


def test_describe_level() -> None:
    assert describe_level(0.25) == "Strict (±25%)"
    assert describe_level(0.95) == "Very Loose (±90%)"
