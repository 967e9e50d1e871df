"""
Loading of session files and environment defaults.

A session file is a JSON document holding the attributes, the elements, the
constraints and the requested number of groups:

    {
      "name": "Classroom",
      "group_count": 3,
      "attributes": [{"id": "gender", "name": "Gender", "type": "enum", "options": ["Boy", "Girl"]}],
      "elements": [{"id": "s1", "name": "Liam", "attributes": {"gender": "Boy"}}],
      "constraints": [{"type": "enum", "attributeId": "gender", "mode": "balance"}]
    }

Element values are checked against the attribute definitions on load; invalid
values are logged as warnings, not rejected.
"""

from __future__ import annotations

import json
import logging
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from group_distribution.models import (
    Attribute,
    AttributeType,
    AttractiveConstraint,
    Constraint,
    DefaultConstraint,
    Element,
    EnumConstraint,
    NumberConstraint,
    RepulsiveConstraint,
    validate_element_attributes,
)

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

ENV_SEED = "GROUP_DISTRIBUTION_SEED"
ENV_LOG_LEVEL = "GROUP_DISTRIBUTION_LOG_LEVEL"
ENV_OUTPUT_DIR = "GROUP_DISTRIBUTION_OUTPUT_DIR"


class SessionData(BaseModel):
    """Everything needed to generate one distribution."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(default="Session", min_length=1)
    group_count: int = Field(default=2, ge=1, alias="groupCount")
    attributes: List[Attribute] = Field(default_factory=list)
    elements: List[Element] = Field(default_factory=list)
    constraints: List[Constraint] = Field(default_factory=list)


def env_seed() -> Optional[int]:
    raw = os.environ.get(ENV_SEED)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{ENV_SEED} must be an integer, got {raw!r}") from None


def env_log_level(default: str = "INFO") -> str:
    return os.environ.get(ENV_LOG_LEVEL, default).upper()


def env_output_dir() -> Optional[str]:
    return os.environ.get(ENV_OUTPUT_DIR) or None


def load_session(filename: str) -> SessionData:
    """Load and validate a session from a JSON file."""
    logger.info("Loading session from %s", filename)
    with open(filename, "r", encoding="utf-8") as f:
        data = json.load(f)
    session = SessionData(**data)

    for element in session.elements:
        valid, errors = validate_element_attributes(element, session.attributes)
        if not valid:
            for error in errors:
                logger.warning("Element %s: %s", element.display_name(), error)

    logger.info(
        "Loaded %d attributes, %d elements and %d constraints",
        len(session.attributes),
        len(session.elements),
        len(session.constraints),
    )
    return session


def save_session(session: SessionData, filename: str) -> None:
    with open(filename, "w", encoding="utf-8") as f:
        json.dump(session.model_dump(mode="json"), f, indent=2)


# ==================== Demo data ====================

_DEMO_STUDENTS = [
    # Boys
    "Liam Johnson", "Noah Williams", "Oliver Brown", "Elijah Davis", "James Miller",
    "William Wilson", "Benjamin Moore", "Lucas Taylor", "Henry Anderson", "Alexander Thomas",
    "Mason Jackson", "Michael White", "Ethan Harris", "Daniel Martin",
    # Girls
    "Emma Thompson", "Olivia Garcia", "Ava Martinez", "Isabella Rodriguez", "Sophia Hernandez",
    "Charlotte Lopez", "Mia Gonzalez", "Amelia Wilson", "Harper Lee", "Evelyn Clark",
    "Abigail Lewis", "Emily Robinson", "Elizabeth Walker", "Mila Hall", "Ella Allen",
    "Avery Young",
]
_DEMO_AGES = [
    13, 12, 14, 13, 13, 12, 14, 13, 12, 13, 14, 13, 12, 13,
    13, 14, 12, 13, 14, 13, 12, 14, 13, 12, 13, 14, 13, 12, 13, 14,
]
_DEMO_DISRUPTIVE = {2, 5, 9, 15, 22, 27}


def demo_classroom(group_count: int = 3) -> SessionData:
    """A classroom of 30 students: 14 boys, 16 girls, six of them disruptive."""
    attributes = [
        Attribute(id="gender", name="Gender", type=AttributeType.ENUM, required=True, options=["Boy", "Girl"]),
        Attribute(id="age", name="Age", type=AttributeType.NUMBER, required=True, min=12, max=14),
        Attribute(id="disruptive", name="Disruptive", type=AttributeType.REPULSIVE),
    ]

    elements = []
    for i, name in enumerate(_DEMO_STUDENTS):
        values = {"gender": "Boy" if i < 14 else "Girl", "age": _DEMO_AGES[i]}
        if i in _DEMO_DISRUPTIVE:
            values["disruptive"] = True
        elements.append(Element(id=f"student-{i + 1}", name=name, attributes=values))

    constraints: List[Constraint] = [
        DefaultConstraint(balance_group_sizes=True, allowed_divergence=0.1),
        EnumConstraint(attribute_id="gender", allowed_divergence=0.25),
        NumberConstraint(attribute_id="age", allowed_divergence=0.1),
        RepulsiveConstraint(attribute_id="disruptive", mandatory=False),
    ]
    return SessionData(
        name="Classroom Demo",
        group_count=group_count,
        attributes=attributes,
        elements=elements,
        constraints=constraints,
    )


def demo_teams(group_count: int = 3) -> SessionData:
    """Small session mixing a mandatory attractive and a mandatory repulsive constraint."""
    attributes = [
        Attribute(id="team", name="Team", type=AttributeType.ATTRACTIVE),
        Attribute(id="conflict", name="Conflict", type=AttributeType.REPULSIVE),
        Attribute(id="score", name="Score", type=AttributeType.NUMBER, min=0, max=100),
    ]
    rows = [
        ("Alice", "A", None, 85),
        ("Bob", "A", None, 90),
        ("Charlie", "B", None, 75),
        ("Diana", None, "X", 80),
        ("Eve", None, "X", 95),
        ("Frank", None, None, 70),
    ]
    elements = []
    for i, (name, team, conflict, score) in enumerate(rows, start=1):
        values = {"score": score}
        if team:
            values["team"] = team
        if conflict:
            values["conflict"] = conflict
        elements.append(Element(id=f"elem-{i}", name=name, attributes=values))

    constraints: List[Constraint] = [
        AttractiveConstraint(attribute_id="team", mandatory=True),
        RepulsiveConstraint(attribute_id="conflict", mandatory=True),
        NumberConstraint(attribute_id="score", allowed_divergence=0.25),
        DefaultConstraint(allowed_divergence=0.2),
    ]
    return SessionData(
        name="Teams Demo",
        group_count=group_count,
        attributes=attributes,
        elements=elements,
        constraints=constraints,
    )
