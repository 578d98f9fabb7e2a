"""
Group Schedule Board — Membership Resolver.

Combines the roster filter and the time-window matcher: for one group at
one instant, who is in an activity and who is free.

Results are recomputed on every call and never cached; a resolution is a
pure function of (group, people, time).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from src.core.roster import members_of
from src.core.time_window import find_active
from src.data.models import Group, Person, ScheduleEntry


@dataclass(frozen=True)
class ResolvedStatus:
    """A member and the entry they are currently in (None → free)."""

    person: Person
    active_entry: ScheduleEntry | None = None

    @property
    def is_active(self) -> bool:
        return self.active_entry is not None


@dataclass(frozen=True)
class Resolution:
    """Per-member statuses plus the summary counts for one group."""

    group: Group
    observed_time: datetime
    statuses: tuple[ResolvedStatus, ...] = field(default_factory=tuple)
    active_count: int = 0
    total_count: int = 0

    @property
    def is_empty(self) -> bool:
        """True when the group has no members.

        Callers that need to tell "empty group" from "nothing loaded yet"
        must track loading themselves; both look the same here.
        """
        return self.total_count == 0

    @property
    def active(self) -> list[ResolvedStatus]:
        return [s for s in self.statuses if s.is_active]

    @property
    def free(self) -> list[ResolvedStatus]:
        return [s for s in self.statuses if not s.is_active]


def resolve(group: Group, people: Sequence[Person], at: datetime) -> Resolution:
    """Resolve every member of ``group`` against the timetable at ``at``."""
    members = members_of(people, group.id)
    statuses = tuple(
        ResolvedStatus(person=m, active_entry=find_active(m.schedule, at))
        for m in members
    )
    return Resolution(
        group=group,
        observed_time=at,
        statuses=statuses,
        active_count=sum(1 for s in statuses if s.is_active),
        total_count=len(statuses),
    )
