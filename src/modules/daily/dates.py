"""
Daily challenge calendar.

A new challenge unlocks every day at ``DAILY_CHALLENGE_UNLOCK_HOUR`` in
``DAILY_CHALLENGE_TIMEZONE`` (9:00 America/New_York by default). Before
that moment the previous local date's challenge is still the active one.
The zone database handles daylight saving transitions.

Naive datetimes are treated as UTC.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from src.core.config.config import Config


def _zone() -> ZoneInfo:
    return ZoneInfo(Config.DAILY_CHALLENGE_TIMEZONE)


def _local_now(now: Optional[datetime]) -> datetime:
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(_zone())


def get_active_challenge_date(now: Optional[datetime] = None) -> date:
    """
    Calendar date whose challenge is playable at ``now``.

    >>> get_active_challenge_date(datetime(2025, 3, 10, 12, 59, tzinfo=timezone.utc))
    datetime.date(2025, 3, 9)
    """
    local = _local_now(now)
    if local.hour < Config.DAILY_CHALLENGE_UNLOCK_HOUR:
        return local.date() - timedelta(days=1)
    return local.date()


def get_next_unlock_time(now: Optional[datetime] = None) -> datetime:
    """
    UTC instant of the next unlock: today's unlock hour if it has not
    passed yet, otherwise tomorrow's.
    """
    local = _local_now(now)
    unlock_at = time(hour=Config.DAILY_CHALLENGE_UNLOCK_HOUR)
    unlock_date = local.date()
    if local.hour >= Config.DAILY_CHALLENGE_UNLOCK_HOUR:
        unlock_date += timedelta(days=1)
    return datetime.combine(unlock_date, unlock_at, tzinfo=_zone()).astimezone(timezone.utc)


def is_challenge_unlocked(challenge_date: date, now: Optional[datetime] = None) -> bool:
    return get_active_challenge_date(now) >= challenge_date
