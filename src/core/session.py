"""
Group Schedule Board — Session Context.

Holds one viewer's selected group and observed time, and drives the
selection state machine:

    NO_GROUP_SELECTED --select(public/unlocked)--> GROUP_ACTIVE
    NO_GROUP_SELECTED --select(locked)-----------> AWAITING_SECRET
    AWAITING_SECRET   --submit_secret(ok)--------> GROUP_ACTIVE
    AWAITING_SECRET   --submit_secret(wrong)-----> AWAITING_SECRET
    AWAITING_SECRET   --cancel-------------------> NO_GROUP_SELECTED
    GROUP_ACTIVE      --deselect-----------------> NO_GROUP_SELECTED
    GROUP_ACTIVE      --tick / manual_refresh----> GROUP_ACTIVE (re-resolved)

Ticks outside GROUP_ACTIVE only advance the clock; nothing is resolved.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum

from src.core.access import AccessController, UnlockResult
from src.core.resolver import Resolution, resolve
from src.data.models import Group, Roster

logger = logging.getLogger(__name__)


class SessionState(Enum):
    NO_GROUP_SELECTED = "no_group_selected"
    AWAITING_SECRET = "awaiting_secret"
    GROUP_ACTIVE = "group_active"


class InvalidTransition(Exception):
    """Raised when an event is not valid in the current session state."""


class SessionContext:
    """One viewer's session: selection, observed time, unlocked groups."""

    def __init__(
        self,
        roster: Roster,
        observed_time: datetime,
        access: AccessController | None = None,
    ) -> None:
        self._roster = roster
        self.access = access if access is not None else AccessController()
        self.observed_time = observed_time
        self.state = SessionState.NO_GROUP_SELECTED
        self._group: Group | None = None

    @property
    def roster(self) -> Roster:
        return self._roster

    @property
    def selected_group(self) -> Group | None:
        """The active group, or the group awaiting its secret."""
        return self._group

    @property
    def active_group(self) -> Group | None:
        if self.state is SessionState.GROUP_ACTIVE:
            return self._group
        return None

    def select_group(self, group: Group) -> Resolution | None:
        """Enter ``group`` if it is unlocked, otherwise wait for its secret.

        Returns the fresh resolution when the group became active.
        """
        self._group = group
        if self.access.is_unlocked(group):
            self.state = SessionState.GROUP_ACTIVE
            logger.debug("Session entered group '%s'", group.id)
            return self.current_resolution()

        self.state = SessionState.AWAITING_SECRET
        return None

    def submit_secret(self, candidate: str) -> UnlockResult:
        if self.state is not SessionState.AWAITING_SECRET or self._group is None:
            raise InvalidTransition(f"No group is awaiting a secret (state={self.state.value})")

        result = self.access.attempt_unlock(self._group, candidate)
        if result is UnlockResult.UNLOCKED:
            self.state = SessionState.GROUP_ACTIVE
        return result

    def cancel(self) -> None:
        if self.state is SessionState.AWAITING_SECRET:
            self._group = None
            self.state = SessionState.NO_GROUP_SELECTED

    def deselect(self) -> None:
        if self.state is SessionState.GROUP_ACTIVE:
            self._group = None
            self.state = SessionState.NO_GROUP_SELECTED

    def tick(self, now: datetime) -> Resolution | None:
        """Advance the clock; re-resolve only when a group is active."""
        self.observed_time = now
        return self.current_resolution()

    def manual_refresh(self, now: datetime) -> Resolution | None:
        return self.tick(now)

    def current_resolution(self) -> Resolution | None:
        group = self.active_group
        if group is None:
            return None
        return resolve(group, self._roster.people, self.observed_time)
