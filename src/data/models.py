"""
Group Schedule Board — Data Models.

Groups, people and their weekly timetables. Everything here is loaded once
from the roster document and never mutated afterwards, hence frozen
dataclasses throughout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum


class Weekday(IntEnum):
    """Day of week, numbered like ``datetime.weekday()`` (Monday == 0)."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def from_name(cls, name: str) -> Weekday:
        """Parse an English weekday name ("Monday", "tuesday", ...).

        Raises ValueError on anything else.
        """
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown weekday: {name!r}") from None

    @property
    def label(self) -> str:
        return self.name.capitalize()


def format_minutes(minutes: int) -> str:
    """Render minutes-since-midnight as HH:MM."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True)
class ScheduleEntry:
    """One weekly-recurring activity slot.

    ``start`` and ``end`` are minutes since midnight; both bounds are
    inclusive when matching.
    """

    day: Weekday
    start: int
    end: int
    activity: str              # e.g. "Linear Algebra"
    location: str = ""         # e.g. "Room 301"
    time_label: str = ""       # display text, e.g. "Periods 1-2"

    @property
    def display_time(self) -> str:
        if self.time_label:
            return self.time_label
        return f"{format_minutes(self.start)}-{format_minutes(self.end)}"


@dataclass(frozen=True)
class Person:
    """A roster member with group memberships and a weekly schedule."""

    id: str
    name: str
    group_memberships: frozenset[str] = field(default_factory=frozenset)
    schedule: tuple[ScheduleEntry, ...] = ()


@dataclass(frozen=True)
class Group:
    """A named cohort, optionally gated by a shared secret.

    The secret ships with the roster document and is visible to anyone who
    can read it: it gates the board UI, it is not a credential.
    """

    id: str
    name: str
    description: str = ""
    secret: str | None = None


@dataclass(frozen=True)
class Roster:
    """The loaded document: all groups and all people."""

    groups: tuple[Group, ...] = ()
    people: tuple[Person, ...] = ()

    def group(self, group_id: str) -> Group | None:
        for g in self.groups:
            if g.id == group_id:
                return g
        return None
