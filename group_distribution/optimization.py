"""
Greedy completion and swap-based local search over non-mandatory elements.

Both phases score candidate groupings with the global penalty. Elements bound
by a mandatory constraint are never moved here: they stay wherever placement
put them.
"""

import logging
import random
from typing import List, Optional, Tuple

import tqdm

from group_distribution.checker import check_satisfaction
from group_distribution.models import (
    Attribute,
    Constraint,
    Element,
    Group,
    copy_groups,
    is_bound_by_mandatory,
    mandatory_attribute_ids,
    mandatory_constraints,
    with_member_added,
)
from group_distribution.penalty import global_penalty
from group_distribution.utils import _shuffled

logger = logging.getLogger(__name__)


def fill_without_mandatory(
    remaining_elements: List[Element],
    all_elements: List[Element],
    constraints: List[Constraint],
    attributes: List[Attribute],
    groups: List[Group],
    rng: Optional[random.Random] = None,
) -> List[Group]:
    """
    Add each remaining element to the group where it yields the lowest global penalty.

    Elements are processed in random order; on equal penalty the earliest group
    wins. The input groups are not modified.
    """
    updated = copy_groups(groups)
    if not updated:
        return updated

    for element in _shuffled(remaining_elements, rng):
        best_index = 0
        best_penalty = float("inf")
        for gi in range(len(updated)):
            hypothetical = with_member_added(updated, gi, element.id)
            penalty = global_penalty(hypothetical, all_elements, constraints, attributes)
            if penalty < best_penalty:
                best_penalty = penalty
                best_index = gi
        updated = with_member_added(updated, best_index, element.id)

    return updated


def _swappable_positions(groups: List[Group], swappable_ids: set) -> List[Tuple[int, int, str]]:
    return [
        (gi, mi, member_id)
        for gi, group in enumerate(groups)
        for mi, member_id in enumerate(group.members)
        if member_id in swappable_ids
    ]


def perform_swaps(
    groups: List[Group],
    all_elements: List[Element],
    constraints: List[Constraint],
    attributes: List[Attribute],
    num_swaps: int,
    rng: Optional[random.Random] = None,
    penalty_history: Optional[List[float]] = None,
    show_progress: bool = False,
) -> List[Group]:
    """
    Hill-climb by swapping pairs of free elements between groups.

    A swap is kept only if it leaves every mandatory constraint satisfied and
    strictly lowers the global penalty, so the penalty of the returned grouping
    is never higher than that of `groups`. When given, `penalty_history` receives
    the starting penalty followed by the current penalty after each iteration.
    """
    rng = rng or random.Random()
    current_groups = copy_groups(groups)
    current_penalty = global_penalty(current_groups, all_elements, constraints, attributes)
    if penalty_history is not None:
        penalty_history.append(current_penalty)

    mandatory = mandatory_constraints(constraints)
    attr_ids = mandatory_attribute_ids(constraints)
    swappable_ids = {e.id for e in all_elements if not is_bound_by_mandatory(e, attr_ids)}

    accepted = 0
    bar = tqdm.tqdm(range(num_swaps), desc="Swap optimization", disable=not show_progress)
    bar.set_postfix(penalty=f"{current_penalty:.4f}")
    for _ in bar:
        positions = _swappable_positions(current_groups, swappable_ids)
        if len(positions) < 2:
            break

        first, second = rng.sample(positions, 2)
        if first[0] == second[0]:
            if penalty_history is not None:
                penalty_history.append(current_penalty)
            continue

        new_groups = copy_groups(current_groups)
        new_groups[first[0]].members[first[1]] = second[2]
        new_groups[second[0]].members[second[1]] = first[2]

        if mandatory and not check_satisfaction(new_groups, all_elements, mandatory, attributes).satisfied:
            if penalty_history is not None:
                penalty_history.append(current_penalty)
            continue

        new_penalty = global_penalty(new_groups, all_elements, constraints, attributes)
        if new_penalty < current_penalty:
            current_groups = new_groups
            current_penalty = new_penalty
            accepted += 1
            bar.set_postfix(penalty=f"{current_penalty:.4f}")

        if penalty_history is not None:
            penalty_history.append(current_penalty)

    bar.close()
    logger.debug("Swap optimization accepted %d swaps; final penalty %.4f", accepted, current_penalty)
    return current_groups
