"""
Integration tests for AchievementService.

Unlocks happen at most once per (user, code) however many evaluations
run, and event listeners never break the flow that published the event.
"""

import asyncio
from datetime import date

import pytest
from sqlalchemy import func, select

from src.core.database.service import DatabaseService
from src.database.models import Round, UserAchievement
from src.modules.achievements.catalog import load_catalog
from src.modules.achievements.predicates import AchievementEvent, AchievementEventKind


def answered(question_id: str, correct: bool = True) -> AchievementEvent:
    return AchievementEvent(
        kind=AchievementEventKind.QUESTION_ANSWERED, question_id=question_id, correct=correct
    )


async def record_silently(progress_service, user_id, question, correct=True):
    """Record history without publishing, so only explicit evaluations run."""
    async with DatabaseService.get_transaction() as session:
        await progress_service.record_answer(
            user_id, question.id, correct, question.value or 0, session=session
        )


async def unlocked_codes(achievement_service, user_id):
    return {
        entry["code"]
        for entry in await achievement_service.get_user_achievements(user_id)
        if entry["unlocked"]
    }


# ============================================================================
# CATALOG
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestSeedCatalog:
    """Seeding the catalog and the per-user achievement view."""

    async def test_seed_is_idempotent(self, achievement_service):
        """Seeding twice inserts the catalog once."""
        # Act
        first = await achievement_service.seed_catalog()
        second = await achievement_service.seed_catalog()

        # Assert
        assert first == len(load_catalog())
        assert second == 0

    async def test_user_view_lists_whole_catalog(self, achievement_service, seeded_catalog):
        """A new user sees every achievement locked, hidden ones flagged."""
        # Act
        entries = await achievement_service.get_user_achievements("user-1")

        # Assert
        assert len(entries) == seeded_catalog
        assert not any(e["unlocked"] for e in entries)
        hidden = {e["code"] for e in entries if e["is_hidden"]}
        assert "ALL_HIDDEN" in hidden
        assert "FIRST_CORRECT" not in hidden


# ============================================================================
# EVALUATION
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestEvaluate:
    """Explicit evaluation against recorded history."""

    async def test_first_correct(
        self, achievement_service, progress_service, content, seeded_catalog, recorder
    ):
        """A first correct answer unlocks FIRST_CORRECT and publishes it."""
        # Arrange
        recorder.watch("achievements.unlocked")
        question = await content.question()
        await record_silently(progress_service, "user-1", question)

        # Act
        unlocked = await achievement_service.evaluate("user-1", answered(question.id))

        # Assert
        assert unlocked == ["FIRST_CORRECT"]
        (payload,) = recorder.payloads("achievements.unlocked")
        assert payload["codes"] == ["FIRST_CORRECT"]

    async def test_wrong_answer_unlocks_nothing(
        self, achievement_service, progress_service, content, seeded_catalog
    ):
        """A wrong answer unlocks nothing."""
        question = await content.question()
        await record_silently(progress_service, "user-1", question, correct=False)

        assert await achievement_service.evaluate("user-1", answered(question.id, False)) == []

    async def test_repeat_evaluation_unlocks_once(
        self, achievement_service, progress_service, content, seeded_catalog
    ):
        """Re-evaluating the same event unlocks nothing new."""
        # Arrange
        question = await content.question()
        await record_silently(progress_service, "user-1", question)
        await achievement_service.evaluate("user-1", answered(question.id))

        # Act
        again = await achievement_service.evaluate("user-1", answered(question.id))

        # Assert
        assert again == []

    async def test_concurrent_evaluations_unlock_once(
        self, achievement_service, progress_service, content, seeded_catalog
    ):
        """Parallel evaluations store a single unlock row."""
        # Arrange
        question = await content.question()
        await record_silently(progress_service, "user-1", question)

        # Act
        results = await asyncio.gather(
            *(achievement_service.evaluate("user-1", answered(question.id)) for _ in range(5))
        )

        # Assert
        assert sorted(code for result in results for code in result) == ["FIRST_CORRECT"]
        async with DatabaseService.get_session() as session:
            count = await session.scalar(
                select(func.count()).select_from(UserAchievement)
            )
        assert count == 1

    async def test_final_round_answer(
        self, achievement_service, progress_service, content, seeded_catalog
    ):
        """A correct final-round answer also unlocks FINAL_JEOPARDY_CORRECT."""
        question = await content.final_question(date(2020, 1, 2))
        await record_silently(progress_service, "user-1", question)

        unlocked = await achievement_service.evaluate("user-1", answered(question.id))

        assert unlocked == ["FIRST_CORRECT", "FINAL_JEOPARDY_CORRECT"]

    async def test_without_catalog(self, achievement_service, progress_service, content):
        """Evaluation without a seeded catalog unlocks nothing."""
        question = await content.question()
        await record_silently(progress_service, "user-1", question)

        assert await achievement_service.evaluate("user-1", answered(question.id)) == []


# ============================================================================
# LISTENERS
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestListeners:
    """Unlocks driven by events from the other services."""

    async def test_recorded_answer_unlocks(
        self, achievement_service, progress_service, content, seeded_catalog
    ):
        """Recording an answer triggers evaluation."""
        # Arrange
        question = await content.question()

        # Act
        await progress_service.record_answer("user-1", question.id, True, 200)

        # Assert
        assert await unlocked_codes(achievement_service, "user-1") == {"FIRST_CORRECT"}

    async def test_claimed_answer_unlocks(
        self, achievement_service, guest_play_service, claim_service, content, seeded_catalog
    ):
        """A claimed guest answer triggers evaluation for the new user."""
        # Arrange
        question = await content.question()
        staged = await guest_play_service.record_question_outcome(question.id, True, 200)

        # Act
        await claim_service.claim(staged["guest_session_id"], "user-1")

        # Assert
        assert "FIRST_CORRECT" in await unlocked_codes(achievement_service, "user-1")

    async def test_completed_game_unlocks(
        self, achievement_service, game_service, content, seeded_catalog
    ):
        """Completing a perfect game unlocks the game and round achievements."""
        # Arrange
        single = await content.question()
        double = await content.question(round=Round.DOUBLE)
        game = await content.game(
            "user-1", [(single, True, True), (double, True, True)], current_score=600
        )

        # Act
        await game_service.complete_game(game.id, "user-1", today=date(2025, 1, 10))

        # Assert
        codes = await unlocked_codes(achievement_service, "user-1")
        assert {
            "FIRST_GAME",
            "FIRST_PERFECT_ROUND",
            "PERFECT_ROUND",
            "PERFECT_GAME",
            "PERFECT_ROUND_DOUBLE_JEOPARDY",
        } <= codes
        assert "SCORE_5000" not in codes

    async def test_play_streak_unlocks(
        self, achievement_service, game_service, content, seeded_catalog
    ):
        """Three consecutive days of play unlock STREAK_3."""
        # Arrange
        games = [await content.game("user-1") for _ in range(3)]

        # Act
        for day, game in enumerate(games, start=1):
            await game_service.complete_game(game.id, "user-1", today=date(2025, 1, day))

        # Assert
        assert "STREAK_3" in await unlocked_codes(achievement_service, "user-1")

    async def test_daily_completion_unlocks(
        self, achievement_service, daily_service, content, seeded_catalog
    ):
        """Answering the daily challenge unlocks FIRST_DAILY_CHALLENGE."""
        # Arrange
        await content.final_pool(2, date(2023, 1, 5))

        # Act
        await daily_service.submit_answer("abraham lincoln", "user-1", date(2025, 3, 9))

        # Assert
        assert "FIRST_DAILY_CHALLENGE" in await unlocked_codes(achievement_service, "user-1")

    async def test_failing_evaluation_does_not_break_recording(
        self, achievement_service, progress_service, content, seeded_catalog, mocker
    ):
        """A failing listener does not fail the answer that published the event."""
        # Arrange
        mocker.patch.object(
            achievement_service, "evaluate", side_effect=RuntimeError("store unavailable")
        )
        question = await content.question()

        # Act
        result = await progress_service.record_answer("user-1", question.id, True, 200)

        # Assert
        assert result["progress"]["total"] == 1
        achievement_service.evaluate.assert_awaited_once()

    async def test_in_progress_claim_does_not_complete_game(
        self,
        achievement_service,
        guest_play_service,
        claim_service,
        content,
        seeded_catalog,
    ):
        """Claiming an unfinished board credits answers but not a finished game."""
        # Arrange
        board = await guest_play_service.start_game()
        question = await content.question()
        await guest_play_service.answer_game_question(board["guest_game_id"], question.id, "paris")

        # Act
        result = await claim_service.claim(board["guest_session_id"], "user-1")

        # Assert
        codes = await unlocked_codes(achievement_service, "user-1")
        assert "FIRST_CORRECT" in codes
        assert "FIRST_GAME" not in codes
        assert result.game_id is not None
