from __future__ import annotations

import pytest

from group_distribution.distribution import (
    calculate_group_stats,
    create_distribution,
    enum_divergence,
    group_size_divergence,
    move_element,
    number_divergence,
    revalidate_move,
)
from group_distribution.models import AttractiveConstraint, DefaultConstraint, Distribution
from tests.utils import make_groups, members_of


def test_distribution_keeps_its_own_snapshots(elements, attributes) -> None:
    groups = make_groups(["elem-1", "elem-2", "elem-3"], ["elem-4", "elem-5", "elem-6"])
    constraints = [DefaultConstraint()]

    distribution = create_distribution("Distribution #1", elements, attributes, constraints, groups)
    elements[0].attributes["attr-score"] = 0
    attributes[0].name = "Renamed"
    groups[0].members.append("elem-99")

    assert distribution.snapshot_elements[0].attributes["attr-score"] == 85
    assert distribution.snapshot_attributes[0].name == "Gender"
    assert distribution.groups[0].members == ["elem-1", "elem-2", "elem-3"]
    assert distribution.created_at is not None


def test_distribution_round_trips_through_camel_case(elements, attributes) -> None:
    groups = make_groups(["elem-1"], ["elem-2"])
    distribution = create_distribution(
        "Saved", elements, attributes, [AttractiveConstraint(attribute_id="attr-team")], groups, session_id="s-1"
    )

    payload = distribution.model_dump(mode="json", by_alias=True)
    restored = Distribution.model_validate(payload)

    assert "snapshotElements" in payload
    assert payload["constraints"][0]["attributeId"] == "attr-team"
    assert restored.constraints[0].type == "attractive"
    assert restored.session_id == "s-1"


def test_move_element_between_groups() -> None:
    groups = make_groups(["elem-1", "elem-2"], ["elem-3"])

    moved = move_element(groups, "elem-1", "group-2")

    assert members_of(moved) == [["elem-2"], ["elem-1", "elem-3"]]
    assert groups[0].members == ["elem-1", "elem-2"]


def test_move_element_to_unknown_group() -> None:
    with pytest.raises(KeyError):
        move_element(make_groups(["elem-1"]), "elem-1", "group-404")


def test_manual_move_is_applied_but_reported(elements, attributes) -> None:
    groups = make_groups(["elem-1", "elem-2", "elem-3"], ["elem-4", "elem-5", "elem-6"])
    constraints = [AttractiveConstraint(attribute_id="attr-team", mandatory=True)]
    distribution = create_distribution("Manual", elements, attributes, constraints, groups)

    moved, result = revalidate_move(distribution, "elem-2", distribution.groups[1].id)

    assert "elem-2" in moved.groups[1].members
    assert "elem-2" in distribution.groups[0].members
    assert not result.satisfied
    assert result.issues == ['Team: value "A" is spread across 2 groups (should be together)']


def test_group_stats(elements, attributes) -> None:
    group = make_groups(["elem-1", "elem-2", "elem-4"])[0]

    stats = calculate_group_stats(group, elements, attributes)

    assert stats.member_count == 3
    score = stats.number_stats["attr-score"]
    assert (score.average, score.min, score.max) == (85, 80, 90)
    assert stats.enum_stats["attr-gender"] == {"Female": 2, "Male": 1}
    assert stats.enum_stats["attr-team"] == {"A": 2}
    assert stats.enum_stats["attr-conflict"] == {"X": 1}


def test_divergence_helpers(elements) -> None:
    groups = make_groups(["elem-1", "elem-2", "elem-3"], ["elem-4", "elem-5", "elem-6"])

    assert enum_divergence(groups, elements, "attr-gender").current == pytest.approx(1 / 3)
    assert number_divergence(
        make_groups(["elem-1", "elem-2"], ["elem-3", "elem-6"]), elements, "attr-score"
    ).current == pytest.approx(7.5 / 80)
    assert number_divergence(groups, elements, "attr-missing").current is None


def test_group_size_divergence() -> None:
    result = group_size_divergence(make_groups(["a"] * 5, ["b"] * 3, ["c"] * 4))

    assert result.current == pytest.approx(0.25)
    assert result.is_within_limit(0.2)
    assert group_size_divergence([]).current is None
