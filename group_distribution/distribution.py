"""
Operations on stored distributions: snapshots, manual moves and statistics.

Manual moves are never refused. After a move the caller re-checks the grouping
and shows the resulting issues as warnings, mandatory constraints included.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from group_distribution.checker import SatisfactionResult, check_satisfaction
from group_distribution.divergence import DivergenceResult
from group_distribution.evaluation import EvaluationContext, format_value
from group_distribution.models import (
    Attribute,
    AttributeType,
    Constraint,
    Distribution,
    Element,
    Group,
    has_value,
    is_number,
)


@dataclass
class NumberStats:
    average: float
    min: float
    max: float


@dataclass
class GroupStats:
    group_id: str
    member_count: int
    # attribute id -> value -> count, for enum, attractive and repulsive attributes
    enum_stats: Dict[str, Dict[str, int]] = field(default_factory=dict)
    number_stats: Dict[str, NumberStats] = field(default_factory=dict)


def create_distribution(
    name: str,
    elements: List[Element],
    attributes: List[Attribute],
    constraints: List[Constraint],
    groups: List[Group],
    session_id: Optional[str] = None,
) -> Distribution:
    """Build a distribution holding deep copies of its inputs, so later edits do not leak in."""
    return Distribution(
        name=name,
        session_id=session_id,
        constraints=[c.model_copy(deep=True) for c in constraints],
        groups=[g.model_copy(deep=True) for g in groups],
        snapshot_attributes=[a.model_copy(deep=True) for a in attributes],
        snapshot_elements=[e.model_copy(deep=True) for e in elements],
    )


def move_element(groups: List[Group], element_id: str, target_group_id: str) -> List[Group]:
    """Move an element into the target group, removing it from wherever it was."""
    if not any(g.id == target_group_id for g in groups):
        raise KeyError(f"Group with id {target_group_id} not found")

    updated = []
    for group in groups:
        members = [m for m in group.members if m != element_id]
        if group.id == target_group_id:
            members.append(element_id)
        updated.append(group.with_members(members))
    return updated


def revalidate_move(
    distribution: Distribution, element_id: str, target_group_id: str
) -> Tuple[Distribution, SatisfactionResult]:
    """Apply a manual move and check the result against the distribution's own snapshots."""
    groups = move_element(distribution.groups, element_id, target_group_id)
    moved = distribution.model_copy(update={"groups": groups})
    result = check_satisfaction(
        groups,
        distribution.snapshot_elements,
        distribution.constraints,
        distribution.snapshot_attributes,
    )
    return moved, result


def calculate_group_stats(group: Group, elements: List[Element], attributes: List[Attribute]) -> GroupStats:
    stats = GroupStats(group_id=group.id, member_count=len(group.members))
    ctx = EvaluationContext([group], elements, attributes)

    for attr in attributes:
        if attr.type == AttributeType.NUMBER:
            values = ctx.group_values(attr.id, accept=is_number)[0]
            if values:
                stats.number_stats[attr.id] = NumberStats(
                    average=sum(values) / len(values), min=min(values), max=max(values)
                )
        else:
            values = ctx.group_values(attr.id)[0]
            stats.enum_stats[attr.id] = dict(Counter(format_value(v) for v in values))

    return stats


def _per_group_values(groups: List[Group], elements: List[Element], attribute_id: str, accept=has_value):
    return EvaluationContext(groups, elements, []).group_values(attribute_id, accept=accept)


def number_divergence(groups: List[Group], elements: List[Element], attribute_id: str) -> DivergenceResult:
    """Divergence of group averages; groups without values are left out."""
    averages = [
        sum(values) / len(values)
        for values in _per_group_values(groups, elements, attribute_id, accept=is_number)
        if values
    ]
    if not averages:
        return DivergenceResult(None)
    mean = sum(averages) / len(averages)
    if mean == 0:
        return DivergenceResult(None)
    return DivergenceResult(max(abs(a - mean) for a in averages) / mean)


def enum_divergence(groups: List[Group], elements: List[Element], attribute_id: str) -> DivergenceResult:
    """Largest per-value divergence of enum counts across groups."""
    counts_by_group = [
        Counter(format_value(v) for v in values)
        for values in _per_group_values(groups, elements, attribute_id)
    ]
    all_values = set()
    for counts in counts_by_group:
        all_values.update(counts)
    if not all_values:
        return DivergenceResult(None)

    max_divergence = 0.0
    for value in all_values:
        counts = [c[value] for c in counts_by_group]
        mean = sum(counts) / len(counts)
        if mean > 0:
            max_divergence = max(max_divergence, max(abs(c - mean) for c in counts) / mean)
    return DivergenceResult(max_divergence)


def group_size_divergence(groups: List[Group]) -> DivergenceResult:
    sizes = [len(g.members) for g in groups]
    if not sizes or sum(sizes) == 0:
        return DivergenceResult(None)
    ideal = sum(sizes) / len(sizes)
    return DivergenceResult(max(abs(s - ideal) for s in sizes) / ideal)
