"""Time-window matcher — pure business logic.

Maps a timestamp onto the weekly timetable: which schedule entry (if any)
is running right now.

No I/O: this module only transforms data.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from src.data.models import ScheduleEntry, Weekday


def parse_time_of_day(raw: str) -> int:
    """Parse a 24-hour "HH:MM" (or "H:MM") string into minutes since midnight.

    Raises ValueError on malformed input.
    """
    text = raw.strip()
    if ":" not in text:
        raise ValueError(f"No colon in time: {raw!r}")

    hour_part, minute_part = text.split(":", 1)
    if not (hour_part.isdigit() and minute_part.isdigit() and len(minute_part) == 2):
        raise ValueError(f"Malformed time: {raw!r}")

    hour, minute = int(hour_part), int(minute_part)
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Hour/minute out of range: {raw!r}")
    return hour * 60 + minute


def weekday_of(at: datetime) -> Weekday:
    return Weekday(at.weekday())


def minutes_since_midnight(at: datetime) -> int:
    """Minute resolution; seconds are dropped."""
    return at.hour * 60 + at.minute


def find_active(entries: Iterable[ScheduleEntry], at: datetime) -> ScheduleEntry | None:
    """Return the first entry whose window contains ``at``, or None.

    A window matches when the day is the same and
    ``start <= at <= end``, both ends inclusive. Back-to-back entries
    meeting at 10:00 both match at exactly 10:00 and the earlier one in
    schedule order wins.
    """
    day = weekday_of(at)
    minutes = minutes_since_midnight(at)
    for entry in entries:
        if entry.day == day and entry.start <= minutes <= entry.end:
            return entry
    return None
