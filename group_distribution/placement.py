"""
Placement of elements bound by mandatory constraints.

Mandatory attractive constraints force elements sharing a value into one group;
mandatory repulsive constraints and mandatory exclude-mode enum constraints force
them apart. Obvious contradictions are reported before any placement is tried.
"""

import logging
import random
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional

from group_distribution.checker import check_satisfaction
from group_distribution.errors import InfeasibleConstraintsError, PlacementExhaustedError
from group_distribution.evaluation import format_value
from group_distribution.models import (
    Attribute,
    Constraint,
    Element,
    EnumMode,
    Group,
    empty_groups,
    has_value,
    is_bound_by_mandatory,
    mandatory_attribute_ids,
    mandatory_constraints,
    with_member_added,
)
from group_distribution.utils import _shuffled

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 100


@dataclass
class PlacementResult:
    groups: List[Group]
    remaining_elements: List[Element]


def _elements_by_value(elements: List[Element], attribute_id: str) -> Dict[str, List[Element]]:
    by_value: Dict[str, List[Element]] = {}
    for element in elements:
        value = element.value(attribute_id)
        if has_value(value):
            by_value.setdefault(format_value(value), []).append(element)
    return by_value


def _same_value_pairs(elements: List[Element], attribute_id: str) -> Dict[FrozenSet[str], None]:
    pairs: Dict[FrozenSet[str], None] = {}
    for members in _elements_by_value(elements, attribute_id).values():
        for i in range(len(members)):
            for j in range(i + 1, len(members)):
                pairs[frozenset((members[i].id, members[j].id))] = None
    return pairs


def validate_mandatory_constraints(
    elements: List[Element],
    group_count: int,
    constraints: List[Constraint],
    attributes: List[Attribute],
) -> Optional[str]:
    """
    Check that the mandatory constraints can be satisfied with `group_count` groups.

    Returns a message describing the first problem found, or None when no
    contradiction is detected.
    """
    mandatory = mandatory_constraints(constraints)
    if not mandatory:
        return None

    attributes_by_id = {a.id: a for a in attributes}

    for constraint in mandatory:
        attribute = attributes_by_id.get(constraint.attribute_id)
        if attribute is None:
            continue
        by_value = _elements_by_value(elements, constraint.attribute_id)

        if constraint.type == "enum" and constraint.mode == EnumMode.EXCLUDE:
            # Each distinct value needs a group of its own
            if len(by_value) > group_count:
                return (
                    f'Mandatory constraint "{attribute.name}" (exclude mode) requires at least '
                    f"{len(by_value)} groups ({len(by_value)} unique values need to be in separate groups), "
                    f"but only {group_count} groups requested."
                )
        elif constraint.type == "repulsive" and by_value:
            value, members = max(by_value.items(), key=lambda item: len(item[1]))
            if len(members) > group_count:
                return (
                    f'Mandatory constraint "{attribute.name}" cannot be satisfied: value "{value}" '
                    f"appears {len(members)} times but only {group_count} groups requested "
                    "(same values must be in different groups)."
                )

    must_be_together: Dict[FrozenSet[str], None] = {}
    must_be_apart: Dict[FrozenSet[str], None] = {}
    for constraint in mandatory:
        if constraint.attribute_id not in attributes_by_id:
            continue
        pairs = _same_value_pairs(elements, constraint.attribute_id)
        if constraint.type == "attractive":
            must_be_together.update(pairs)
        else:
            must_be_apart.update(pairs)

    names = {e.id: e.display_name() for e in elements}
    for pair in must_be_together:
        if pair in must_be_apart:
            first, second = sorted(pair)
            return (
                f'Conflicting mandatory constraints: elements "{names[first]}" and "{names[second]}" '
                "must be together (attractive constraint) AND must be apart (repulsive/exclude constraint). "
                "This is impossible to satisfy."
            )

    return None


def would_violate_mandatory(
    element_id: str,
    group_index: int,
    groups: List[Group],
    elements: List[Element],
    mandatory: List[Constraint],
    attributes: List[Attribute],
) -> bool:
    """Whether adding the element to the given group breaks a mandatory constraint."""
    hypothetical = with_member_added(groups, group_index, element_id)
    return not check_satisfaction(hypothetical, elements, mandatory, attributes).satisfied


def place_with_mandatory_constraints(
    elements: List[Element],
    constraints: List[Constraint],
    attributes: List[Attribute],
    group_count: int,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    rng: Optional[random.Random] = None,
) -> PlacementResult:
    """
    Place every element touched by a mandatory constraint without breaking any of them.

    Each attempt shuffles the mandatory elements and drops each one into the
    first group, in random order, that keeps all mandatory constraints
    satisfied. An element with no valid group abandons the attempt.

    Raises:
        InfeasibleConstraintsError: the constraints can never hold for `group_count` groups.
        PlacementExhaustedError: no attempt out of `max_attempts` succeeded.
    """
    rng = rng or random.Random()
    mandatory = mandatory_constraints(constraints)

    if not mandatory:
        return PlacementResult(groups=empty_groups(group_count), remaining_elements=list(elements))

    attr_ids = mandatory_attribute_ids(constraints)
    mandatory_elements = [e for e in elements if is_bound_by_mandatory(e, attr_ids)]
    free_elements = [e for e in elements if not is_bound_by_mandatory(e, attr_ids)]

    error = validate_mandatory_constraints(elements, group_count, constraints, attributes)
    if error:
        raise InfeasibleConstraintsError(error)

    logger.debug(
        "Placing %d mandatory elements into %d groups (%d free elements left for filling)",
        len(mandatory_elements),
        group_count,
        len(free_elements),
    )

    for attempt in range(max_attempts):
        groups = empty_groups(group_count)
        all_placed = True

        for element in _shuffled(mandatory_elements, rng):
            placed = False
            for gi in _shuffled(range(group_count), rng):
                if not would_violate_mandatory(element.id, gi, groups, elements, mandatory, attributes):
                    groups = with_member_added(groups, gi, element.id)
                    placed = True
                    break
            if not placed:
                all_placed = False
                break

        if all_placed:
            logger.debug("Mandatory placement succeeded on attempt %d", attempt + 1)
            return PlacementResult(groups=groups, remaining_elements=free_elements)

    raise PlacementExhaustedError(
        f"Unable to create distribution with mandatory constraints after {max_attempts} attempts. "
        "The constraints may be too complex or conflicting.",
        attempts=max_attempts,
    )
