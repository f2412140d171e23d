"""
Unit tests for the daily challenge calendar.

Defaults: unlock at 09:00 America/New_York (UTC-5 in winter, UTC-4 in
summer).
"""

from datetime import date, datetime, timezone

import pytest

from src.core.config import Config
from src.modules.daily.dates import (
    get_active_challenge_date,
    get_next_unlock_time,
    is_challenge_unlocked,
)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def default_calendar(monkeypatch):
    monkeypatch.setattr(Config, "DAILY_CHALLENGE_TIMEZONE", "America/New_York")
    monkeypatch.setattr(Config, "DAILY_CHALLENGE_UNLOCK_HOUR", 9)


@pytest.mark.unit
class TestActiveChallengeDate:

    def test_before_unlock_is_previous_day(self):
        assert get_active_challenge_date(utc(2025, 1, 15, 13, 59)) == date(2025, 1, 14)

    def test_at_unlock_is_same_day(self):
        assert get_active_challenge_date(utc(2025, 1, 15, 14, 0)) == date(2025, 1, 15)

    def test_daylight_saving_shifts_the_utc_instant(self):
        # 12:59 UTC on 2025-03-10 is 08:59 EDT
        assert get_active_challenge_date(utc(2025, 3, 10, 12, 59)) == date(2025, 3, 9)
        assert get_active_challenge_date(utc(2025, 3, 10, 13, 0)) == date(2025, 3, 10)

    def test_naive_datetime_is_utc(self):
        assert get_active_challenge_date(datetime(2025, 1, 15, 14, 0)) == date(2025, 1, 15)

    def test_late_evening_local_time(self):
        # 03:00 UTC on the 16th is 22:00 EST on the 15th
        assert get_active_challenge_date(utc(2025, 1, 16, 3, 0)) == date(2025, 1, 15)

    def test_respects_configured_zone(self, monkeypatch):
        # Arrange
        monkeypatch.setattr(Config, "DAILY_CHALLENGE_TIMEZONE", "UTC")
        monkeypatch.setattr(Config, "DAILY_CHALLENGE_UNLOCK_HOUR", 0)

        # Act / Assert
        assert get_active_challenge_date(utc(2025, 1, 15, 0, 0)) == date(2025, 1, 15)


@pytest.mark.unit
class TestNextUnlockTime:

    def test_later_today(self):
        assert get_next_unlock_time(utc(2025, 1, 15, 13, 0)) == utc(2025, 1, 15, 14, 0)

    def test_tomorrow_once_passed(self):
        assert get_next_unlock_time(utc(2025, 1, 15, 15, 0)) == utc(2025, 1, 16, 14, 0)

    def test_across_daylight_saving_start(self):
        # 10:00 EST on 2025-03-08; next unlock is 09:00 EDT on the 9th
        assert get_next_unlock_time(utc(2025, 3, 8, 15, 0)) == utc(2025, 3, 9, 13, 0)

    def test_result_is_utc(self):
        assert get_next_unlock_time(utc(2025, 7, 1, 0, 0)).utcoffset().total_seconds() == 0


@pytest.mark.unit
class TestIsChallengeUnlocked:

    def test_today_after_unlock(self):
        assert is_challenge_unlocked(date(2025, 1, 15), utc(2025, 1, 15, 15, 0)) is True

    def test_today_before_unlock(self):
        assert is_challenge_unlocked(date(2025, 1, 15), utc(2025, 1, 15, 12, 0)) is False

    def test_past_dates_stay_unlocked(self):
        assert is_challenge_unlocked(date(2024, 12, 1), utc(2025, 1, 15, 12, 0)) is True
