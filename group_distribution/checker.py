from dataclasses import dataclass, field
from typing import List

from group_distribution.evaluation import (
    ConstraintViolation,
    EvaluationContext,
    evaluate_constraint,
)
from group_distribution.models import Attribute, Constraint, Element, Group


@dataclass
class SatisfactionResult:
    satisfied: bool
    issues: List[str] = field(default_factory=list)
    violations: List[ConstraintViolation] = field(default_factory=list)


def check_satisfaction(
    groups: List[Group],
    elements: List[Element],
    constraints: List[Constraint],
    attributes: List[Attribute],
) -> SatisfactionResult:
    """
    Check every constraint (mandatory or not) against a grouping.

    Used as the feasibility oracle while placing mandatory elements (called with
    only the mandatory constraints) and for advisory diagnostics after a manual
    move. Violations never raise.
    """
    ctx = EvaluationContext(groups, elements, attributes)
    violations: List[ConstraintViolation] = []
    for constraint in constraints:
        violations.extend(evaluate_constraint(constraint, ctx).violations)

    return SatisfactionResult(
        satisfied=len(violations) == 0,
        issues=[v.details for v in violations],
        violations=violations,
    )
