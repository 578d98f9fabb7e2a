"""Wall clock for the board — one zone for the whole process."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from src.config import settings


def now() -> datetime:
    """Current time in the configured TIMEZONE, or host local time if unset."""
    if settings.TIMEZONE:
        return datetime.now(ZoneInfo(settings.TIMEZONE))
    return datetime.now()
