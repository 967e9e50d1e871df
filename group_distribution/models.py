"""
Data model consumed by the distribution engine.

Attributes, elements and groups are plain pydantic models so that session files
and stored distributions can be validated on load. Constraints form a closed
union discriminated by their ``type`` tag; every algorithm branches on that tag.

JSON payloads written by the browser front end use camelCase keys
(``attributeId``, ``allowedDivergence``...). Both spellings are accepted.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

DEFAULT_ALLOWED_DIVERGENCE = 0.2
DEFAULT_IMPORTANCE = 0.8

AttributeValue = Union[str, bool, int, float]


def _new_id() -> str:
    return str(uuid.uuid4())


def has_value(value: Optional[AttributeValue]) -> bool:
    """Empty strings, None and False all mean "no value"."""
    return value is not None and value != "" and value is not False


def is_number(value: Optional[AttributeValue]) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class AttributeType(str, Enum):
    ENUM = "enum"
    NUMBER = "number"
    ATTRACTIVE = "attractive"
    REPULSIVE = "repulsive"


class EnumMode(str, Enum):
    BALANCE = "balance"
    EXCLUDE = "exclude"


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Attribute(_Model):
    """A typed field defined once per collection of elements."""

    id: str = Field(default_factory=_new_id)
    name: str = Field(min_length=1, description="Display name of the attribute")
    type: AttributeType
    required: bool = False
    options: Optional[List[str]] = Field(default=None, description="Enum attributes only")
    min: Optional[float] = Field(default=None, description="Number attributes only")
    max: Optional[float] = Field(default=None, description="Number attributes only")
    session_id: Optional[str] = Field(default=None, alias="sessionId")

    @model_validator(mode="after")
    def _check_type_rules(self) -> "Attribute":
        if self.type == AttributeType.ENUM and not self.options:
            raise ValueError("Enum attributes must have at least one option")
        if self.type in (AttributeType.ATTRACTIVE, AttributeType.REPULSIVE) and self.required:
            raise ValueError("Attractive and repulsive attributes cannot be marked as required")
        return self


class Element(_Model):
    """An item to distribute. `attributes` maps attribute id to its value."""

    id: str = Field(default_factory=_new_id)
    name: str = Field(min_length=1)
    attributes: Dict[str, AttributeValue] = Field(default_factory=dict)
    session_id: Optional[str] = Field(default=None, alias="sessionId")

    def value(self, attribute_id: str) -> Optional[AttributeValue]:
        return self.attributes.get(attribute_id)

    def display_name(self) -> str:
        return self.name or self.id


class Group(_Model):
    id: str = Field(default_factory=_new_id)
    name: str = Field(min_length=1)
    members: List[str] = Field(default_factory=list)

    def with_members(self, members: List[str]) -> "Group":
        """Copy of this group holding `members` (a new list)."""
        return self.model_copy(update={"members": list(members)})


def empty_groups(count: int) -> List[Group]:
    return [Group(name=f"Group {i + 1}") for i in range(count)]


def copy_groups(groups: List[Group]) -> List[Group]:
    return [g.with_members(g.members) for g in groups]


def with_member_added(groups: List[Group], group_index: int, element_id: str) -> List[Group]:
    """New grouping with `element_id` appended to the group at `group_index`."""
    return [
        g.with_members(g.members + [element_id]) if idx == group_index else g
        for idx, g in enumerate(groups)
    ]


# ==================== Constraints ====================


class EnumConstraint(_Model):
    type: Literal["enum"] = "enum"
    attribute_id: str = Field(alias="attributeId")
    mode: EnumMode = EnumMode.BALANCE
    # Only honoured in exclude mode
    mandatory: bool = False
    allowed_divergence: float = Field(
        default=DEFAULT_ALLOWED_DIVERGENCE, ge=0.0, le=1.0, alias="allowedDivergence"
    )

    @model_validator(mode="after")
    def _balance_is_never_mandatory(self) -> "EnumConstraint":
        if self.mode == EnumMode.BALANCE and self.mandatory:
            self.mandatory = False
        return self

    @property
    def is_mandatory(self) -> bool:
        return self.mode == EnumMode.EXCLUDE and self.mandatory

    @property
    def importance(self) -> float:
        return 1.0 - self.allowed_divergence


class NumberConstraint(_Model):
    type: Literal["number"] = "number"
    attribute_id: str = Field(alias="attributeId")
    balance_average: bool = Field(default=True, alias="balanceAverage")
    allowed_divergence: float = Field(
        default=DEFAULT_ALLOWED_DIVERGENCE, ge=0.0, le=1.0, alias="allowedDivergence"
    )

    @property
    def is_mandatory(self) -> bool:
        return False

    @property
    def importance(self) -> float:
        return 1.0 - self.allowed_divergence


class AttractiveConstraint(_Model):
    """Elements sharing a value should (or must) end up in the same group."""

    type: Literal["attractive"] = "attractive"
    attribute_id: str = Field(alias="attributeId")
    mandatory: bool = False

    @property
    def is_mandatory(self) -> bool:
        return self.mandatory

    @property
    def importance(self) -> float:
        return DEFAULT_IMPORTANCE


class RepulsiveConstraint(_Model):
    """Elements sharing a value should (or must) end up in different groups."""

    type: Literal["repulsive"] = "repulsive"
    attribute_id: str = Field(alias="attributeId")
    mandatory: bool = False

    @property
    def is_mandatory(self) -> bool:
        return self.mandatory

    @property
    def importance(self) -> float:
        return DEFAULT_IMPORTANCE


class DefaultConstraint(_Model):
    """Group-size balance. Has no attribute and can never be mandatory."""

    type: Literal["default"] = "default"
    balance_group_sizes: bool = Field(default=True, alias="balanceGroupSizes")
    allowed_divergence: float = Field(
        default=DEFAULT_ALLOWED_DIVERGENCE, ge=0.0, le=1.0, alias="allowedDivergence"
    )

    @property
    def attribute_id(self) -> None:
        return None

    @property
    def is_mandatory(self) -> bool:
        return False

    @property
    def importance(self) -> float:
        return 1.0 - self.allowed_divergence


Constraint = Annotated[
    Union[
        EnumConstraint,
        NumberConstraint,
        AttractiveConstraint,
        RepulsiveConstraint,
        DefaultConstraint,
    ],
    Field(discriminator="type"),
]

_constraint_list_adapter = TypeAdapter(List[Constraint])


def parse_constraints(data: List[dict]) -> List[Constraint]:
    """Validate a list of raw constraint dicts into their tagged models."""
    return _constraint_list_adapter.validate_python(data)


def mandatory_constraints(constraints: List[Constraint]) -> List[Constraint]:
    return [c for c in constraints if c.is_mandatory]


def mandatory_attribute_ids(constraints: List[Constraint]) -> List[str]:
    return [c.attribute_id for c in constraints if c.is_mandatory]


def is_bound_by_mandatory(element: Element, mandatory_attr_ids: List[str]) -> bool:
    """Whether the element carries a value for any mandatory constraint's attribute."""
    return any(has_value(element.value(attr_id)) for attr_id in mandatory_attr_ids)


class Distribution(_Model):
    """A named, timestamped grouping with frozen copies of its inputs."""

    id: str = Field(default_factory=_new_id)
    name: str = Field(default="Distribution #1", min_length=1)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="createdAt"
    )
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    constraints: List[Constraint] = Field(default_factory=list)
    groups: List[Group] = Field(default_factory=list)
    snapshot_attributes: List[Attribute] = Field(
        default_factory=list, alias="snapshotAttributes"
    )
    snapshot_elements: List[Element] = Field(default_factory=list, alias="snapshotElements")


# ==================== Validation helpers ====================


def validate_element_attributes(
    element: Element, attributes: List[Attribute]
) -> Tuple[bool, List[str]]:
    """Validate an element's values against the attribute definitions."""
    errors: List[str] = []
    by_id = {a.id: a for a in attributes}

    for attr in attributes:
        if attr.required and not has_value(element.value(attr.id)):
            errors.append(f'Required attribute "{attr.name}" is missing')

    for attr_id, value in element.attributes.items():
        attr = by_id.get(attr_id)
        if attr is None:
            errors.append(f"Unknown attribute ID: {attr_id}")
            continue

        if attr.type == AttributeType.ENUM:
            if not isinstance(value, str) or value not in (attr.options or []):
                errors.append(
                    f'Invalid value for "{attr.name}". Must be one of: {", ".join(attr.options or [])}'
                )
        elif attr.type == AttributeType.NUMBER:
            if not is_number(value):
                errors.append(f'Invalid value for "{attr.name}". Must be a number')
                continue
            if attr.min is not None and value < attr.min:
                errors.append(f'Value for "{attr.name}" must be at least {attr.min:g}')
            if attr.max is not None and value > attr.max:
                errors.append(f'Value for "{attr.name}" must be at most {attr.max:g}')

    return len(errors) == 0, errors
