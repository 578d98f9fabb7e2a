"""
Group Schedule Board — Access Controller.

Tracks which password-protected groups a session has unlocked.

The shared secret travels inside the roster document, so anyone who can
read the document can read it. This is board-level gating for a
presentation layer, not authentication: exact string comparison, no
hashing, no lockout, no rate limiting.
"""

from __future__ import annotations

import logging
from enum import Enum

from src.data.models import Group

logger = logging.getLogger(__name__)


class UnlockResult(Enum):
    UNLOCKED = "unlocked"
    WRONG_SECRET = "wrong_secret"


def requires_secret(group: Group) -> bool:
    return bool(group.secret)


class AccessController:
    """Session-scoped set of unlocked group ids.

    Grows monotonically; a fresh instance per session starts locked.
    """

    def __init__(self) -> None:
        self._unlocked: set[str] = set()

    @property
    def unlocked_group_ids(self) -> frozenset[str]:
        return frozenset(self._unlocked)

    def is_unlocked(self, group: Group) -> bool:
        return not requires_secret(group) or group.id in self._unlocked

    def attempt_unlock(self, group: Group, candidate: str) -> UnlockResult:
        """Compare ``candidate`` to the group's secret (case-sensitive, verbatim).

        Only a match mutates state. Public groups always succeed without
        being recorded.
        """
        if not requires_secret(group):
            return UnlockResult.UNLOCKED

        if candidate != group.secret:
            logger.info("Wrong secret for group '%s'", group.id)
            return UnlockResult.WRONG_SECRET

        self._unlocked.add(group.id)
        logger.info("Group '%s' unlocked", group.id)
        return UnlockResult.UNLOCKED
