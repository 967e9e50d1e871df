from typing import List

from group_distribution.evaluation import EvaluationContext, evaluate_constraint
from group_distribution.models import Attribute, Constraint, Element, Group


def non_mandatory_constraints(constraints: List[Constraint]) -> List[Constraint]:
    """Constraints that are optimized rather than enforced. Number and default kinds are never mandatory."""
    return [c for c in constraints if not c.is_mandatory]


def global_penalty(
    groups: List[Group],
    elements: List[Element],
    constraints: List[Constraint],
    attributes: List[Attribute],
) -> float:
    """
    Weighted penalty of a grouping over its non-mandatory constraints (lower is better).

    Each constraint contributes its raw penalty times its importance
    (``1 - allowed_divergence`` where defined, 0.8 otherwise). Mandatory
    constraints contribute nothing: they are enforced by placement instead.
    """
    ctx = EvaluationContext(groups, elements, attributes)
    total = 0.0
    for constraint in non_mandatory_constraints(constraints):
        total += evaluate_constraint(constraint, ctx).penalty * constraint.importance
    return total
