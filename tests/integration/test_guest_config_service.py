"""
Integration tests for GuestConfigService.
"""

import asyncio

import pytest
from sqlalchemy import func, select

from src.core.database.service import DatabaseService
from src.database.models import GuestConfig
from src.modules.guest.config_service import GuestConfigSnapshot
from src.modules.shared.exceptions import ValidationError


async def _row_count() -> int:
    async with DatabaseService.get_session() as session:
        return await session.scalar(select(func.count()).select_from(GuestConfig))


@pytest.mark.integration
@pytest.mark.database
class TestGetConfig:
    """Reading the singleton guest configuration."""

    async def test_creates_default_row(self, guest_config_service):
        """The first read stores the defaults."""
        # Act
        snapshot = await guest_config_service.get_config()

        # Assert
        assert snapshot == GuestConfigSnapshot()
        assert await _row_count() == 1

    async def test_concurrent_first_reads_create_one_row(self, guest_config_service):
        """Parallel first reads create one row."""
        # Act
        snapshots = await asyncio.gather(
            *(guest_config_service.get_config() for _ in range(10))
        )

        # Assert
        assert len(set(snapshots)) == 1
        assert await _row_count() == 1

    async def test_inside_caller_transaction(self, guest_config_service):
        """Reading works inside a caller's transaction."""
        async with DatabaseService.get_transaction() as session:
            snapshot = await guest_config_service.get_config(session)

        assert snapshot.time_to_authenticate_minutes == 1440


@pytest.mark.integration
@pytest.mark.database
class TestUpdateConfig:
    """Partial updates of the guest configuration."""

    async def test_applies_changes(self, guest_config_service, recorder):
        """Changes are stored, returned and published."""
        # Arrange
        recorder.watch("guest.config_updated")

        # Act
        snapshot = await guest_config_service.update_config(
            random_question_max_questions_before_auth=3,
            random_game_max_categories_before_auth=2,
            daily_challenge_guest_enabled=True,
            daily_challenge_seasons=[38, 39],
        )

        # Assert
        assert snapshot.random_question_max_questions_before_auth == 3
        assert snapshot.random_game_max_categories_before_auth == 2
        assert snapshot.daily_challenge_guest_enabled is True
        assert snapshot.daily_challenge_seasons == (38, 39)
        assert await guest_config_service.get_config() == snapshot
        (payload,) = recorder.payloads("guest.config_updated")
        assert payload["config"]["daily_challenge_seasons"] == [38, 39]

    async def test_clearing_a_cap(self, guest_config_service):
        """Setting a cap to None removes it."""
        await guest_config_service.update_config(random_game_max_rounds_before_auth=1)

        snapshot = await guest_config_service.update_config(
            random_game_max_rounds_before_auth=None
        )

        assert snapshot.random_game_max_rounds_before_auth is None

    async def test_untouched_fields_keep_values(self, guest_config_service):
        """Fields not named in the update keep their values."""
        await guest_config_service.update_config(time_to_authenticate_minutes=60)

        snapshot = await guest_config_service.update_config(daily_challenge_min_lookback_days=90)

        assert snapshot.time_to_authenticate_minutes == 60
        assert snapshot.daily_challenge_min_lookback_days == 90

    @pytest.mark.parametrize(
        "changes",
        [
            {"daily_challenge_min_lookback_days": 29},
            {"daily_challenge_min_lookback_days": 1826},
            {"time_to_authenticate_minutes": 0},
            {"random_question_max_questions_before_auth": -1},
            {"daily_challenge_guest_enabled": "yes"},
            {"daily_challenge_seasons": "38"},
            {"daily_challenge_seasons": [0]},
            {"unknown_field": 1},
        ],
    )
    async def test_rejects_invalid_changes(self, guest_config_service, changes):
        """Out-of-range or unknown changes are rejected whole."""
        # Act
        with pytest.raises(ValidationError):
            await guest_config_service.update_config(**changes)

        # Assert
        assert await guest_config_service.get_config() == GuestConfigSnapshot()
