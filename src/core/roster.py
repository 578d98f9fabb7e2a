"""Roster filter — picks the members of one group, keeping roster order."""

from __future__ import annotations

from collections.abc import Iterable

from src.data.models import Person


def members_of(people: Iterable[Person], group_id: str) -> list[Person]:
    return [p for p in people if group_id in p.group_memberships]
