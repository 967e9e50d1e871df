"""
Constraint-based group distribution.

Generation runs in three phases:
  1. elements bound by mandatory constraints are placed so that none is broken,
  2. the remaining elements are added greedily where they raise the penalty least,
  3. random pairwise swaps of free elements are kept when they lower the penalty.

Without constraints a plain shuffled round-robin distribution is produced.
"""

import logging
import random
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from group_distribution.checker import check_satisfaction
from group_distribution.evaluation import ConstraintViolation
from group_distribution.models import (
    Attribute,
    Constraint,
    Element,
    Group,
    empty_groups,
    mandatory_constraints,
)
from group_distribution.optimization import fill_without_mandatory, perform_swaps
from group_distribution.penalty import global_penalty
from group_distribution.placement import place_with_mandatory_constraints
from group_distribution.utils import _shuffled

logger = logging.getLogger(__name__)


@dataclass
class AlgorithmConfig:
    """Configuration for the distribution algorithm."""

    MAX_ATTEMPTS: int = 100
    MAX_SWAPS: int = 1000
    SWAPS_PER_ELEMENT: int = 10
    RANDOM_SEED: Optional[int] = None
    SHOW_PROGRESS: bool = False


def generate_random_distribution(
    elements: List[Element], group_count: int, rng: Optional[random.Random] = None
) -> List[Group]:
    """Shuffle the elements and deal them round-robin into `group_count` groups."""
    if not elements or group_count <= 0:
        return []

    members: List[List[str]] = [[] for _ in range(group_count)]
    for idx, element in enumerate(_shuffled(elements, rng)):
        members[idx % group_count].append(element.id)
    return [g.with_members(m) for g, m in zip(empty_groups(group_count), members)]


class GroupDistributionAlgorithm:
    """
    Distribute elements into a fixed number of groups under a set of constraints.

    Mandatory constraints are enforced during generation; everything else is
    optimized through the global penalty. Pass `rng` (or set
    `config.RANDOM_SEED`) for reproducible results.
    """

    def __init__(
        self,
        elements: List[Element],
        group_count: int,
        constraints: List[Constraint],
        attributes: List[Attribute],
        config: Optional[AlgorithmConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.elements = elements
        self.group_count = group_count
        self.constraints = constraints
        self.attributes = attributes
        self.config = config or AlgorithmConfig()

        if rng is not None:
            self.rng = rng
        else:
            self.rng = random.Random(self.config.RANDOM_SEED)
            if self.config.RANDOM_SEED is not None:
                logger.info("Random seed set to %d for reproducibility", self.config.RANDOM_SEED)

        # Penalty after each swap iteration, for reporting
        self.penalty_history: List[float] = []

    @property
    def num_swaps(self) -> int:
        return min(self.config.MAX_SWAPS, len(self.elements) * self.config.SWAPS_PER_ELEMENT)

    def random_grouping(self) -> List[Group]:
        return generate_random_distribution(self.elements, self.group_count, self.rng)

    def generate(self, use_optimization: bool = True) -> List[Group]:
        """
        Build the grouping.

        Raises:
            InfeasibleConstraintsError: mandatory constraints contradict each other or the group count.
            PlacementExhaustedError: mandatory placement failed within MAX_ATTEMPTS attempts.
        """
        self.penalty_history = []
        if not self.elements or self.group_count <= 0:
            return []

        if not self.constraints:
            logger.info("No constraints given; creating a random round-robin distribution...")
            return self.random_grouping()

        logger.info(
            "Placing elements bound by %d mandatory constraints...",
            len(mandatory_constraints(self.constraints)),
        )
        placement = place_with_mandatory_constraints(
            self.elements,
            self.constraints,
            self.attributes,
            self.group_count,
            max_attempts=self.config.MAX_ATTEMPTS,
            rng=self.rng,
        )

        logger.info("Filling %d remaining elements greedily...", len(placement.remaining_elements))
        groups = fill_without_mandatory(
            placement.remaining_elements,
            self.elements,
            self.constraints,
            self.attributes,
            placement.groups,
            rng=self.rng,
        )

        if use_optimization:
            logger.info("Optimizing with up to %d random swaps...", self.num_swaps)
            groups = perform_swaps(
                groups,
                self.elements,
                self.constraints,
                self.attributes,
                self.num_swaps,
                rng=self.rng,
                penalty_history=self.penalty_history,
                show_progress=self.config.SHOW_PROGRESS,
            )

        return groups

    def solve(self, use_optimization: bool = True) -> Tuple[List[Group], Dict[str, Any]]:
        """Generate a grouping and compute summary statistics for it."""
        groups = self.generate(use_optimization=use_optimization)
        return groups, self.statistics(groups)

    def statistics(self, groups: List[Group]) -> Dict[str, Any]:
        result = check_satisfaction(groups, self.elements, self.constraints, self.attributes)
        sizes = [len(g.members) for g in groups]
        return {
            "total_groups": len(groups),
            "total_elements": len(self.elements),
            "group_sizes": sizes,
            "global_penalty": global_penalty(groups, self.elements, self.constraints, self.attributes),
            "satisfied": result.satisfied,
            "total_violations": len(result.violations),
            "violations_by_type": self._count_violations_by_type(result.violations),
            "swap_iterations": max(0, len(self.penalty_history) - 1),
        }

    def _count_violations_by_type(self, violations: List[ConstraintViolation]) -> Dict[str, int]:
        """Count violations by constraint type."""
        counts = defaultdict(int)
        for violation in violations:
            counts[violation.constraint_type] += 1
        return dict(counts)


def generate(
    elements: List[Element],
    group_count: int,
    constraints: List[Constraint],
    attributes: List[Attribute],
    rng: Optional[random.Random] = None,
) -> List[Group]:
    """Generate a grouping; see `GroupDistributionAlgorithm.generate`."""
    return GroupDistributionAlgorithm(
        elements, group_count, constraints, attributes, rng=rng
    ).generate()
