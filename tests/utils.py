from __future__ import annotations

from typing import Dict, List, Optional

from group_distribution.models import Element, Group


def make_groups(*member_lists: List[str]) -> List[Group]:
    return [
        Group(id=f"group-{i}", name=f"Group {i}", members=list(members))
        for i, members in enumerate(member_lists, start=1)
    ]


def make_elements(values: Dict[str, Optional[str]], attribute_id: str) -> List[Element]:
    """One element per entry, carrying `attribute_id` when its value is not None."""
    elements = []
    for element_id, value in values.items():
        attrs = {attribute_id: value} if value is not None else {}
        elements.append(Element(id=element_id, name=element_id.title(), attributes=attrs))
    return elements


def members_of(groups: List[Group]) -> List[List[str]]:
    return [sorted(g.members) for g in groups]


def all_members(groups: List[Group]) -> List[str]:
    return sorted(m for g in groups for m in g.members)


def group_index_of(groups: List[Group], element_id: str) -> int:
    for idx, group in enumerate(groups):
        if element_id in group.members:
            return idx
    raise AssertionError(f"{element_id} is not in any group")
