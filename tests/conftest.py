from __future__ import annotations

import random
from typing import List

import pytest

from group_distribution.models import Attribute, AttributeType, Element


@pytest.fixture
def attributes() -> List[Attribute]:
    return [
        Attribute(id="attr-gender", name="Gender", type=AttributeType.ENUM, options=["Male", "Female"]),
        Attribute(id="attr-score", name="Score", type=AttributeType.NUMBER, min=0, max=100),
        Attribute(id="attr-team", name="Team", type=AttributeType.ATTRACTIVE),
        Attribute(id="attr-conflict", name="Conflict", type=AttributeType.REPULSIVE),
    ]


@pytest.fixture
def elements() -> List[Element]:
    return [
        Element(id="elem-1", name="Alice", attributes={"attr-gender": "Female", "attr-score": 85, "attr-team": "A"}),
        Element(id="elem-2", name="Bob", attributes={"attr-gender": "Male", "attr-score": 90, "attr-team": "A"}),
        Element(id="elem-3", name="Charlie", attributes={"attr-gender": "Male", "attr-score": 75, "attr-team": "B"}),
        Element(id="elem-4", name="Diana", attributes={"attr-gender": "Female", "attr-score": 80, "attr-conflict": "X"}),
        Element(id="elem-5", name="Eve", attributes={"attr-gender": "Female", "attr-score": 95, "attr-conflict": "X"}),
        Element(id="elem-6", name="Frank", attributes={"attr-gender": "Male", "attr-score": 70}),
    ]


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)
