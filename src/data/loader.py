"""
Group Schedule Board — Roster Loader.

Reads the roster document (groups + people + weekly timetables) once at
startup, from a local JSON file or an http(s) URL, and validates it into
the immutable models in src.data.models.

All time parsing happens here, so resolution never sees a malformed entry.

JSON contract:
{
    "groups": [
        {"id": "cs1", "name": "CS Class 1", "description": "...", "password": "optional"}
    ],
    "people": [
        {
            "id": "p1",
            "name": "Alice",
            "groups": ["cs1"],
            "schedule": [
                {"day": "Monday", "startTime": "08:00", "endTime": "09:40",
                 "course": "Calculus", "time": "Periods 1-2", "location": "Room 301"}
            ]
        }
    ]
}
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from src.core.time_window import parse_time_of_day
from src.data.models import Group, Person, Roster, ScheduleEntry, Weekday

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 10

# Telegram caps callback_data at 64 bytes; group buttons carry "group:<id>"
MAX_GROUP_ID_BYTES = 58


class DataLoadError(Exception):
    """Raised when the roster document is unreachable or malformed.

    The message is human-readable and shown to the user verbatim.
    """


# ---------------------------------------------------------------------------
# Document schema
# ---------------------------------------------------------------------------


class _DocScheduleEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day: Weekday
    start: int = Field(alias="startTime")
    end: int = Field(alias="endTime")
    course: str
    time: str = ""
    location: str = ""

    @field_validator("day", mode="before")
    @classmethod
    def parse_day(cls, v: Any) -> Weekday:
        if isinstance(v, str):
            return Weekday.from_name(v)
        raise ValueError(f"Weekday must be an English day name, got {v!r}")

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_time(cls, v: Any) -> int:
        if not isinstance(v, str):
            raise ValueError(f"Time must be an HH:MM string, got {v!r}")
        return parse_time_of_day(v)

    @model_validator(mode="after")
    def check_window(self) -> _DocScheduleEntry:
        if self.end < self.start:
            raise ValueError(
                f"endTime is earlier than startTime for '{self.course}' on {self.day.label}"
            )
        return self


class _DocPerson(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    name: str
    groups: list[str] = []
    schedule: list[_DocScheduleEntry] = []

    @field_validator("groups", "schedule", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class _DocGroup(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    name: str
    description: str = ""
    password: str | None = None


class _RosterDocument(BaseModel):
    groups: list[_DocGroup]
    people: list[_DocPerson]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_roster(document: Any) -> Roster:
    """Validate a decoded JSON document and build the Roster.

    Raises DataLoadError on structural problems. Suspicious but usable data
    (unknown group references, overlapping entries) is logged and kept.
    """
    try:
        doc = _RosterDocument.model_validate(document)
    except ValidationError as exc:
        raise DataLoadError(f"Roster document is malformed: {exc}") from exc

    duplicates = sorted(gid for gid, n in Counter(g.id for g in doc.groups).items() if n > 1)
    if duplicates:
        raise DataLoadError(f"Duplicate group ids in roster: {', '.join(duplicates)}")

    too_long = [g.id for g in doc.groups if len(g.id.encode("utf-8")) > MAX_GROUP_ID_BYTES]
    if too_long:
        raise DataLoadError(
            f"Group ids longer than {MAX_GROUP_ID_BYTES} bytes: {', '.join(too_long)}"
        )

    groups = tuple(
        Group(
            id=g.id,
            name=g.name,
            description=g.description,
            secret=g.password or None,
        )
        for g in doc.groups
    )
    known_ids = {g.id for g in groups}

    people: list[Person] = []
    for p in doc.people:
        unknown = sorted(set(p.groups) - known_ids)
        if unknown:
            logger.warning("Person '%s' references unknown groups: %s", p.id, ", ".join(unknown))

        schedule = tuple(
            ScheduleEntry(
                day=e.day,
                start=e.start,
                end=e.end,
                activity=e.course,
                location=e.location,
                time_label=e.time,
            )
            for e in p.schedule
        )
        _warn_overlaps(p.id, schedule)
        people.append(
            Person(
                id=p.id,
                name=p.name,
                group_memberships=frozenset(p.groups),
                schedule=schedule,
            )
        )

    logger.info("Roster loaded: %d groups, %d people", len(groups), len(people))
    return Roster(groups=groups, people=tuple(people))


def _warn_overlaps(person_id: str, schedule: tuple[ScheduleEntry, ...]) -> None:
    """Log same-day entries whose inclusive windows intersect.

    Overlaps are accepted (the earlier entry wins at match time) but they
    usually mean a data-entry mistake.
    """
    for i, a in enumerate(schedule):
        for b in schedule[i + 1:]:
            if a.day == b.day and a.start <= b.end and b.start <= a.end:
                logger.warning(
                    "Overlapping entries for '%s' on %s: '%s' and '%s'",
                    person_id, a.day.label, a.activity, b.activity,
                )


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


async def _fetch_document(url: str) -> Any:
    try:
        async with httpx.AsyncClient(timeout=_TIMEOUT_SECONDS) as client:
            resp = await client.get(url)
            resp.raise_for_status()
            return resp.json()
    except httpx.HTTPError as exc:
        raise DataLoadError(f"Could not fetch roster from {url}: {exc}") from exc
    except ValueError as exc:
        raise DataLoadError(f"Roster at {url} is not valid JSON: {exc}") from exc


def _read_document(path: str) -> Any:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise DataLoadError(f"Could not read roster file {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise DataLoadError(f"Roster file {path} is not valid UTF-8: {exc}") from exc
    try:
        return json.loads(text)
    except ValueError as exc:
        raise DataLoadError(f"Roster file {path} is not valid JSON: {exc}") from exc


async def load_roster(source: str) -> Roster:
    """Load and validate the roster from a file path or http(s) URL.

    No retry: any failure raises DataLoadError.
    """
    if _is_url(source):
        document = await _fetch_document(source)
    else:
        document = _read_document(source)
    return parse_roster(document)
