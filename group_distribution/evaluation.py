"""
Per-constraint evaluation shared by the penalty model and the satisfaction checker.

`evaluate_constraint` computes, for one constraint and one grouping, both the raw
(unweighted) penalty and the list of violations a user should be warned about.
The two consumers read different halves of the result: the penalty model sums
weighted penalties of non-mandatory constraints, the checker collects violations
of every constraint.
"""

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from group_distribution.divergence import same_level
from group_distribution.models import (
    Attribute,
    AttributeValue,
    Constraint,
    DefaultConstraint,
    Element,
    EnumConstraint,
    EnumMode,
    Group,
    NumberConstraint,
    has_value,
    is_number,
)

# Widens the checker's tolerance for enum and number balance by half the gap
# between two neighbouring divergence levels.
BALANCE_EPSILON = 0.125


@dataclass
class ConstraintViolation:
    constraint_type: str
    details: str
    attribute_id: Optional[str] = None
    group_index: Optional[int] = None


@dataclass
class ConstraintEvaluation:
    penalty: float = 0.0
    violations: List[ConstraintViolation] = field(default_factory=list)


class EvaluationContext:
    """Lookup tables for one grouping; build once and evaluate many constraints against it."""

    def __init__(self, groups: List[Group], elements: List[Element], attributes: List[Attribute]):
        self.groups = groups
        self.elements = elements
        self.elements_by_id: Dict[str, Element] = {e.id: e for e in elements}
        self.attributes_by_id: Dict[str, Attribute] = {a.id: a for a in attributes}

    def group_values(
        self, attribute_id: str, accept: Callable[[Optional[AttributeValue]], bool] = has_value
    ) -> List[List[AttributeValue]]:
        """Per group, the accepted values of its members for `attribute_id`."""
        per_group: List[List[AttributeValue]] = []
        for group in self.groups:
            values = []
            for member_id in group.members:
                element = self.elements_by_id.get(member_id)
                if element is None:
                    continue
                value = element.value(attribute_id)
                if accept(value):
                    values.append(value)
            per_group.append(values)
        return per_group

    def count_with_value(self, attribute_id: str) -> int:
        return sum(1 for e in self.elements if has_value(e.value(attribute_id)))


def format_value(value: AttributeValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _max_relative_deviation(values: List[float], mean: float) -> float:
    return max(abs(v - mean) for v in values) / mean


def _evaluate_enum_balance(
    constraint: EnumConstraint, attribute: Attribute, ctx: EvaluationContext
) -> ConstraintEvaluation:
    result = ConstraintEvaluation()
    counts_by_group = [Counter(values) for values in ctx.group_values(constraint.attribute_id)]
    all_values: Dict[AttributeValue, None] = {}
    for counts in counts_by_group:
        for value in counts:
            all_values.setdefault(value, None)

    for value in all_values:
        counts = [group_counts[value] for group_counts in counts_by_group]
        mean = sum(counts) / len(counts)
        if mean <= 0:
            continue
        divergence = _max_relative_deviation(counts, mean)
        result.penalty += max(0.0, divergence - constraint.allowed_divergence)
        if divergence > constraint.allowed_divergence + BALANCE_EPSILON:
            result.violations.append(
                ConstraintViolation(
                    constraint_type=constraint.type,
                    attribute_id=constraint.attribute_id,
                    details=f'{attribute.name}: value "{format_value(value)}" is not evenly distributed across groups',
                )
            )
    return result


def _evaluate_enum_exclude(
    constraint: EnumConstraint, attribute: Attribute, ctx: EvaluationContext
) -> ConstraintEvaluation:
    result = ConstraintEvaluation()
    intruders = 0
    total_with_attribute = 0

    for idx, values in enumerate(ctx.group_values(constraint.attribute_id)):
        total_with_attribute += len(values)
        counts = Counter(values)
        if len(counts) > 1:
            # Everyone outside the group's majority value is an intruder
            intruders += len(values) - max(counts.values())
            listed = ", ".join(format_value(v) for v in counts)
            result.violations.append(
                ConstraintViolation(
                    constraint_type=constraint.type,
                    attribute_id=constraint.attribute_id,
                    group_index=idx,
                    details=f"{attribute.name}: Group {idx + 1} contains multiple different values ({listed})",
                )
            )

    result.penalty = intruders / total_with_attribute if total_with_attribute > 0 else 0.0
    return result


def _evaluate_number(
    constraint: NumberConstraint, attribute: Attribute, ctx: EvaluationContext
) -> ConstraintEvaluation:
    result = ConstraintEvaluation()
    if not constraint.balance_average:
        return result

    averages = [
        sum(values) / len(values) if values else 0.0
        for values in ctx.group_values(constraint.attribute_id, accept=is_number)
    ]
    if not averages:
        return result
    mean = sum(averages) / len(averages)
    if mean <= 0:
        return result

    divergence = _max_relative_deviation(averages, mean)
    result.penalty = max(0.0, divergence - constraint.allowed_divergence)
    if divergence > constraint.allowed_divergence + BALANCE_EPSILON:
        result.violations.append(
            ConstraintViolation(
                constraint_type=constraint.type,
                attribute_id=constraint.attribute_id,
                details=f"{attribute.name}: averages are not balanced across groups",
            )
        )
    return result


def _evaluate_attractive(constraint, attribute: Attribute, ctx: EvaluationContext) -> ConstraintEvaluation:
    result = ConstraintEvaluation()
    # value -> group index -> count, in order of first appearance
    spread: Dict[str, Counter] = {}
    for idx, values in enumerate(ctx.group_values(constraint.attribute_id)):
        for value in values:
            spread.setdefault(format_value(value), Counter())[idx] += 1

    intruders = 0
    for value, per_group in spread.items():
        if len(per_group) <= 1:
            continue
        intruders += sum(per_group.values()) - max(per_group.values())
        result.violations.append(
            ConstraintViolation(
                constraint_type=constraint.type,
                attribute_id=constraint.attribute_id,
                details=f'{attribute.name}: value "{value}" is spread across {len(per_group)} groups (should be together)',
            )
        )

    total_with_attribute = ctx.count_with_value(constraint.attribute_id)
    result.penalty = intruders / total_with_attribute if total_with_attribute > 0 else 0.0
    return result


def _evaluate_repulsive(constraint, attribute: Attribute, ctx: EvaluationContext) -> ConstraintEvaluation:
    result = ConstraintEvaluation()
    intruders = 0
    for idx, values in enumerate(ctx.group_values(constraint.attribute_id)):
        for value, count in Counter(format_value(v) for v in values).items():
            if count <= 1:
                continue
            intruders += count - 1
            result.violations.append(
                ConstraintViolation(
                    constraint_type=constraint.type,
                    attribute_id=constraint.attribute_id,
                    group_index=idx,
                    details=f'{attribute.name}: value "{value}" appears {count} times in Group {idx + 1} (should be separated)',
                )
            )

    total_with_attribute = ctx.count_with_value(constraint.attribute_id)
    result.penalty = intruders / total_with_attribute if total_with_attribute > 0 else 0.0
    return result


def _evaluate_group_sizes(constraint: DefaultConstraint, ctx: EvaluationContext) -> ConstraintEvaluation:
    result = ConstraintEvaluation()
    if not constraint.balance_group_sizes or not ctx.groups:
        return result

    sizes = [len(g.members) for g in ctx.groups]
    total = sum(sizes)
    if total == 0:
        return result

    ideal = total / len(sizes)
    divergence = _max_relative_deviation(sizes, ideal)
    allowed = constraint.allowed_divergence
    result.penalty = max(0.0, divergence - allowed)
    # Same level as the allowed value counts as balanced even above the raw threshold
    if divergence > allowed and not same_level(divergence, allowed):
        result.violations.append(
            ConstraintViolation(
                constraint_type=constraint.type,
                details=(
                    f"Group sizes are not balanced (range: {min(sizes)}-{max(sizes)}, "
                    f"ideal: {math.floor(ideal + 0.5)})"
                ),
            )
        )
    return result


def evaluate_constraint(constraint: Constraint, ctx: EvaluationContext) -> ConstraintEvaluation:
    """Evaluate one constraint against the grouping held by `ctx`.

    Constraints referring to an attribute that no longer exists are skipped and
    evaluate to an empty result.
    """
    if constraint.type == "default":
        return _evaluate_group_sizes(constraint, ctx)

    attribute = ctx.attributes_by_id.get(constraint.attribute_id)
    if attribute is None:
        return ConstraintEvaluation()

    if constraint.type == "enum":
        if constraint.mode == EnumMode.BALANCE:
            return _evaluate_enum_balance(constraint, attribute, ctx)
        return _evaluate_enum_exclude(constraint, attribute, ctx)
    if constraint.type == "number":
        return _evaluate_number(constraint, attribute, ctx)
    if constraint.type == "attractive":
        return _evaluate_attractive(constraint, attribute, ctx)
    if constraint.type == "repulsive":
        return _evaluate_repulsive(constraint, attribute, ctx)
    return ConstraintEvaluation()
