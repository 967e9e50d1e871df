from __future__ import annotations

import pytest

from group_distribution.models import (
    AttractiveConstraint,
    DefaultConstraint,
    EnumConstraint,
    EnumMode,
    NumberConstraint,
    RepulsiveConstraint,
)
from group_distribution.penalty import global_penalty, non_mandatory_constraints
from tests.utils import make_groups


def test_balanced_enum_has_zero_penalty(elements, attributes) -> None:
    # One Female and one Male per group
    groups = make_groups(["elem-1", "elem-2"], ["elem-3", "elem-4"])
    constraints = [EnumConstraint(attribute_id="attr-gender", allowed_divergence=0.5)]

    assert global_penalty(groups, elements, constraints, attributes) == 0


def test_split_attractive_value_is_penalized(elements, attributes) -> None:
    groups = make_groups(["elem-1"], ["elem-2"])
    constraints = [AttractiveConstraint(attribute_id="attr-team", mandatory=False)]

    # One intruder out of three elements carrying a team, default importance 0.8
    penalty = global_penalty(groups, elements, constraints, attributes)
    assert penalty > 0
    assert penalty == pytest.approx(0.8 / 3)


def test_repeated_repulsive_value_is_penalized(elements, attributes) -> None:
    groups = make_groups(["elem-4", "elem-5"])
    constraints = [RepulsiveConstraint(attribute_id="attr-conflict")]

    assert global_penalty(groups, elements, constraints, attributes) == pytest.approx(0.4)


def test_mandatory_constraints_do_not_count(elements, attributes) -> None:
    groups = make_groups(["elem-1"], ["elem-2"], ["elem-4", "elem-5"])
    constraints = [
        AttractiveConstraint(attribute_id="attr-team", mandatory=True),
        RepulsiveConstraint(attribute_id="attr-conflict", mandatory=True),
        EnumConstraint(attribute_id="attr-gender", mode=EnumMode.EXCLUDE, mandatory=True),
    ]

    assert non_mandatory_constraints(constraints) == []
    assert global_penalty(groups, elements, constraints, attributes) == 0


def test_unbalanced_group_sizes(elements, attributes) -> None:
    groups = make_groups(["elem-1", "elem-2", "elem-3", "elem-4"], ["elem-5"], ["elem-6"])
    constraints = [DefaultConstraint(balance_group_sizes=True, allowed_divergence=0.2)]

    # Ideal size 2, max deviation 2 -> divergence 1.0; (1.0 - 0.2) * (1 - 0.2)
    assert global_penalty(groups, elements, constraints, attributes) == pytest.approx(0.64)


def test_balanced_group_sizes(elements, attributes) -> None:
    groups = make_groups(["elem-1", "elem-2"], ["elem-3", "elem-4"], ["elem-5", "elem-6"])
    constraints = [DefaultConstraint(allowed_divergence=0.2)]

    assert global_penalty(groups, elements, constraints, attributes) == 0


def test_group_size_balance_can_be_disabled(elements, attributes) -> None:
    groups = make_groups(["elem-1", "elem-2", "elem-3", "elem-4", "elem-5"], ["elem-6"])
    constraints = [DefaultConstraint(balance_group_sizes=False)]

    assert global_penalty(groups, elements, constraints, attributes) == 0


def test_number_average_divergence(elements, attributes) -> None:
    # Averages 87.5 and 72.5 around a mean of 80
    groups = make_groups(["elem-1", "elem-2"], ["elem-3", "elem-6"])
    constraints = [NumberConstraint(attribute_id="attr-score", allowed_divergence=0.0)]

    assert global_penalty(groups, elements, constraints, attributes) == pytest.approx(7.5 / 80)


def test_number_constraint_without_balance_average(elements, attributes) -> None:
    groups = make_groups(["elem-1", "elem-2"], ["elem-3", "elem-6"])
    constraints = [NumberConstraint(attribute_id="attr-score", balance_average=False)]

    assert global_penalty(groups, elements, constraints, attributes) == 0


def test_soft_exclude_counts_minority_members(elements, attributes) -> None:
    # Group 1 mixes Female and Male: one intruder out of four grouped elements
    groups = make_groups(["elem-1", "elem-2"], ["elem-3", "elem-6"])
    constraints = [EnumConstraint(attribute_id="attr-gender", mode=EnumMode.EXCLUDE)]

    assert global_penalty(groups, elements, constraints, attributes) == pytest.approx(0.25 * 0.8)


def test_unknown_attribute_is_skipped(elements, attributes) -> None:
    groups = make_groups(["elem-1"], ["elem-2"])
    constraints = [AttractiveConstraint(attribute_id="attr-deleted")]

    assert global_penalty(groups, elements, constraints, attributes) == 0


def test_penalty_does_not_mutate_inputs(elements, attributes) -> None:
    groups = make_groups(["elem-1", "elem-4", "elem-5"], ["elem-2"])
    constraints = [
        AttractiveConstraint(attribute_id="attr-team"),
        RepulsiveConstraint(attribute_id="attr-conflict"),
        DefaultConstraint(),
    ]
    before = [g.model_dump() for g in groups]

    first = global_penalty(groups, elements, constraints, attributes)
    second = global_penalty(groups, elements, constraints, attributes)

    assert first == second
    assert [g.model_dump() for g in groups] == before
