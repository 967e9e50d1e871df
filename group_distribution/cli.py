"""
Command-line entry point: generate a distribution for a session file.

Writes `distribution.json`, a Markdown summary of the groups, a Markdown
violations report and, when swaps ran, a plot of the penalty per iteration.
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt

from group_distribution.algorithm import AlgorithmConfig, GroupDistributionAlgorithm
from group_distribution.checker import check_satisfaction
from group_distribution.distribution import (
    calculate_group_stats,
    create_distribution,
    enum_divergence,
    group_size_divergence,
    number_divergence,
)
from group_distribution.divergence import describe_level
from group_distribution.errors import DistributionGenerationError
from group_distribution.models import AttributeType, Element, EnumMode, Group
from group_distribution.session_data import (
    SessionData,
    demo_classroom,
    env_log_level,
    env_output_dir,
    env_seed,
    load_session,
)
from group_distribution.utils import _ensure_output_dir, _output_path, _resolve_path, _to_json_compatible

DEFAULT_OUTPUT_DIR = os.path.join("data", "outputs")

EXIT_RETRYABLE = 2
EXIT_INFEASIBLE = 3


def _save_results_markdown(groups: List[Group], session: SessionData, output_path: str) -> None:
    """Save a human-readable Markdown summary of the groups."""
    by_id: Dict[str, Element] = {e.id: e for e in session.elements}
    lines: List[str] = []
    for group in groups:
        lines.append(f"{group.name} ({len(group.members)} members):")
        stats = calculate_group_stats(group, session.elements, session.attributes)
        for attr in session.attributes:
            if attr.type == AttributeType.NUMBER:
                number = stats.number_stats.get(attr.id)
                if number is not None:
                    lines.append(
                        f"- {attr.name}: avg {number.average:.2f} (min {number.min:g}, max {number.max:g})"
                    )
            else:
                counts = stats.enum_stats.get(attr.id) or {}
                if counts:
                    summary = ", ".join(f"{value}: {count}" for value, count in counts.items())
                    lines.append(f"- {attr.name}: {summary}")
        lines.append("- Members:")
        for member_id in group.members:
            element = by_id.get(member_id)
            lines.append(f"  - {element.display_name() if element else member_id}")
        lines.append("")

    with open(output_path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines).strip() + "\n")


def _divergence_lines(groups: List[Group], session: SessionData) -> List[str]:
    """Measured divergence against the allowed level, for every constraint that has one."""
    names = {a.id: a.name for a in session.attributes}
    lines: List[str] = []
    for constraint in session.constraints:
        if constraint.type == "default":
            label = "Group sizes"
            result = group_size_divergence(groups)
        elif constraint.type == "number":
            label = names.get(constraint.attribute_id)
            result = number_divergence(groups, session.elements, constraint.attribute_id)
        elif constraint.type == "enum" and constraint.mode == EnumMode.BALANCE:
            label = names.get(constraint.attribute_id)
            result = enum_divergence(groups, session.elements, constraint.attribute_id)
        else:
            continue
        if label is None or result.current is None:
            continue
        status = "ok" if result.is_within_limit(constraint.allowed_divergence) else "over limit"
        lines.append(
            f"- {label}: {result.current:.1%} is {describe_level(result.current)}, "
            f"allowed {describe_level(constraint.allowed_divergence)} ({status})"
        )
    return lines


def _save_violations_markdown(
    issues: List[str],
    output_path: str,
    stats: Optional[Dict[str, Any]] = None,
    divergence_lines: Optional[List[str]] = None,
) -> None:
    """Save a Markdown report listing the constraint issues of the grouping."""
    lines: List[str] = []

    if stats is not None:
        lines.append("Summary:")
        lines.append(f"- Total groups: {stats.get('total_groups', 0)}")
        lines.append(f"- Group sizes: {stats.get('group_sizes', [])}")
        lines.append(f"- Total violations: {stats.get('total_violations', 0)}")
        penalty = stats.get("global_penalty")
        if penalty is not None:
            lines.append(f"- Global penalty: {penalty:.4f}")
        violations_by_type = stats.get("violations_by_type")
        if isinstance(violations_by_type, dict) and violations_by_type:
            lines.append("- Violations by type:")
            for ctype, count in violations_by_type.items():
                lines.append(f"  - {ctype}: {count}")
        lines.append("")

    if divergence_lines:
        lines.append("Divergence:")
        lines.extend(divergence_lines)
        lines.append("")

    if not issues:
        lines.append("All constraints are satisfied.")
    else:
        lines.append("Issues:")
        for issue in issues:
            lines.append(f"- {issue}")

    with open(output_path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines).strip() + "\n")


def _save_penalty_plot(history: List[float], output_path: str) -> None:
    fig, ax = plt.subplots(figsize=(8, 4.5))
    ax.plot(range(len(history)), history, color="#1f77b4", linewidth=2, label="Global penalty")
    ax.set_title("Swap optimization - Global penalty")
    ax.set_xlabel("Iteration")
    ax.set_ylabel("Global penalty")
    ax.grid(True, linestyle=":", alpha=0.5)
    ax.legend(loc="upper right")
    fig.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close(fig)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Group distribution - assigns elements to groups under placement constraints"
    )
    parser.add_argument("--session", type=str, help="Path to a session JSON file")
    parser.add_argument("--groups", type=int, help="Number of groups (overrides the session file)")
    parser.add_argument(
        "--example",
        action="store_true",
        help="Use the bundled demo classroom (30 students, 3 groups)",
    )
    parser.add_argument("--config", type=str, help="Path to JSON file with algorithm configuration")
    parser.add_argument("--seed", type=int, help="Random seed for reproducible results")
    parser.add_argument(
        "--no-optimization",
        action="store_true",
        help="Skip the swap optimization phase",
    )
    parser.add_argument("--progress", action="store_true", help="Show a progress bar while swapping")
    parser.add_argument(
        "--output-dir",
        type=str,
        help="Directory to write outputs, relative to the current directory (default: data/outputs)",
    )
    parser.add_argument(
        "--log-level",
        default=env_log_level(),
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging level",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main function with CLI support."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.example and not args.session:
        parser.error("--session is required unless using --example")

    numeric_level = getattr(logging, args.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )

    config = AlgorithmConfig()
    if args.config:
        try:
            with open(_resolve_path(args.config), "r") as f:
                config = AlgorithmConfig(**json.load(f))
            logging.info(f"Loaded algorithm configuration from {args.config}")
        except Exception as e:
            logging.error(f"Error loading configuration file: {e}", exc_info=True)
            return 1

    seed = args.seed
    if seed is None:
        try:
            seed = env_seed()
        except ValueError as e:
            logging.error(f"Invalid environment configuration: {e}")
            return 1
    if seed is not None:
        config.RANDOM_SEED = seed
    if args.progress:
        config.SHOW_PROGRESS = True

    if args.example:
        session = demo_classroom()
    else:
        try:
            session = load_session(_resolve_path(args.session))
        except Exception as e:
            logging.error(f"Error loading session file: {e}", exc_info=True)
            return 1
    group_count = args.groups if args.groups is not None else session.group_count

    algorithm = GroupDistributionAlgorithm(
        session.elements,
        group_count,
        session.constraints,
        session.attributes,
        config=config,
    )
    try:
        groups, stats = algorithm.solve(use_optimization=not args.no_optimization)
    except DistributionGenerationError as e:
        if e.retryable:
            logging.error(f"Distribution generation failed (retry may help): {e.message}")
            return EXIT_RETRYABLE
        logging.error(f"Distribution generation impossible: {e.message}")
        return EXIT_INFEASIBLE

    output_dir = _ensure_output_dir(_output_path(args.output_dir or env_output_dir() or DEFAULT_OUTPUT_DIR))

    distribution = create_distribution(
        session.name, session.elements, session.attributes, session.constraints, groups
    )
    results_path = os.path.join(output_dir, "distribution.json")
    with open(results_path, "w") as f:
        json.dump(
            {"distribution": _to_json_compatible(distribution), "stats": _to_json_compatible(stats)},
            f,
            indent=2,
        )
    logging.info(f"Saved results to {results_path}")

    md_path = os.path.join(output_dir, "distribution.md")
    _save_results_markdown(groups, session, md_path)
    logging.info(f"Saved Markdown summary to {md_path}")

    result = check_satisfaction(groups, session.elements, session.constraints, session.attributes)
    violations_md_path = os.path.join(output_dir, "distribution_violations.md")
    _save_violations_markdown(
        result.issues,
        violations_md_path,
        stats=stats,
        divergence_lines=_divergence_lines(groups, session),
    )
    logging.info(f"Saved violations report to {violations_md_path}")

    if len(algorithm.penalty_history) > 1:
        try:
            plot_path = os.path.join(output_dir, "penalty_history.png")
            _save_penalty_plot(algorithm.penalty_history, plot_path)
            logging.info(f"Saved penalty plot to {plot_path}")
        except Exception as e:
            logging.warning(f"Failed to save penalty plot: {e}")

    logging.info("=== Group Distribution ===")
    logging.info(f"- Session: {session.name}")
    logging.info(f"- Elements: {len(session.elements)}")
    logging.info(f"- Groups: {stats['total_groups']} (sizes {stats['group_sizes']})")
    logging.info(f"- Global penalty: {stats['global_penalty']:.4f}")
    logging.info(f"- Violations by type: {stats['violations_by_type']}")
    for issue in result.issues:
        logging.warning(f"  - {issue}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
