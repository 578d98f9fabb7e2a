"""Shared test fixtures and configuration.

Sets up fake environment variables so src.config doesn't sys.exit(),
and provides a small roster used across the core and bot tests.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("DATA_SOURCE", "data.json")
os.environ.setdefault("ALLOWED_USER_IDS", "")
os.environ.setdefault("TIMEZONE", "")

import pytest

from src.data.models import Group, Person, Roster, ScheduleEntry, Weekday


@pytest.fixture
def math_entry():
    return ScheduleEntry(
        day=Weekday.TUESDAY, start=9 * 60, end=10 * 60,
        activity="Math", location="Room 301",
    )


@pytest.fixture
def public_group():
    return Group(id="g1", name="G1", description="Public group")


@pytest.fixture
def secret_group():
    return Group(id="g2", name="G2", description="Locked group", secret="xyz")


@pytest.fixture
def alice(math_entry):
    return Person(
        id="alice", name="Alice",
        group_memberships=frozenset({"g1", "g2"}),
        schedule=(math_entry,),
    )


@pytest.fixture
def bob():
    return Person(
        id="bob", name="Bob",
        group_memberships=frozenset({"g1"}),
        schedule=(
            ScheduleEntry(day=Weekday.MONDAY, start=8 * 60, end=9 * 60 + 40, activity="Calculus"),
        ),
    )


@pytest.fixture
def roster(public_group, secret_group, alice, bob):
    empty = Group(id="g3", name="G3", description="Nobody here")
    return Roster(groups=(public_group, secret_group, empty), people=(alice, bob))
