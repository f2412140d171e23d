"""
Integration tests for ProgressService.

Every recorded answer adds exactly one history row and moves the
(user, category) aggregate by exactly that answer, also under
concurrency.
"""

import asyncio

import pytest
from sqlalchemy import func, select

from src.core.database.service import DatabaseService
from src.database.models import GameHistory, UserProgress
from src.modules.shared.exceptions import QuestionNotFoundError, ValidationError


async def _history_count(user_id: str) -> int:
    async with DatabaseService.get_session() as session:
        return await session.scalar(
            select(func.count()).select_from(GameHistory).where(GameHistory.user_id == user_id)
        )


# ============================================================================
# RECORD ANSWER
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestRecordAnswer:
    """Recording answers and the per-category aggregate."""

    async def test_first_answer_creates_aggregate(self, progress_service, content):
        """The first answer creates history and its aggregate row."""
        # Arrange
        question = await content.question(value=400)

        # Act
        result = await progress_service.record_answer(
            "user-1", question.id, True, 400, "What is Paris"
        )

        # Assert
        assert result["category_id"] == question.category_id
        assert result["progress"] == {"correct": 1, "total": 1, "points": 400}
        assert result["history_id"]
        assert await _history_count("user-1") == 1

    async def test_answers_accumulate_per_category(self, progress_service, content):
        """Answers in one category accumulate into one aggregate."""
        # Arrange
        category = await content.category("Potent Potables")
        first = await content.question(category, value=200)
        second = await content.question(category, value=600)

        # Act
        await progress_service.record_answer("user-1", first.id, True, 200)
        result = await progress_service.record_answer("user-1", second.id, False, -600)

        # Assert
        assert result["progress"] == {"correct": 1, "total": 2, "points": -400}

    async def test_users_are_independent(self, progress_service, content):
        """One user's answers never touch another's aggregate."""
        question = await content.question()

        await progress_service.record_answer("user-1", question.id, True, 200)
        result = await progress_service.record_answer("user-2", question.id, False, 0)

        assert result["progress"] == {"correct": 0, "total": 1, "points": 0}

    async def test_concurrent_answers_are_all_counted(self, progress_service, content):
        """Parallel answers are all counted."""
        # Arrange
        question = await content.question(value=100)

        # Act
        await asyncio.gather(
            *(
                progress_service.record_answer("user-1", question.id, i % 2 == 0, 100)
                for i in range(50)
            )
        )

        # Assert
        async with DatabaseService.get_session() as session:
            progress = await session.scalar(
                select(UserProgress).where(UserProgress.user_id == "user-1")
            )
        assert progress.total == 50
        assert progress.correct == 25
        assert progress.points == 5000
        assert await _history_count("user-1") == 50

    async def test_missing_question_writes_nothing(self, progress_service, database):
        """A missing question raises and writes no history."""
        # Act
        with pytest.raises(QuestionNotFoundError):
            await progress_service.record_answer("user-1", "missing-question", True, 200)

        # Assert
        assert await _history_count("user-1") == 0

    @pytest.mark.parametrize(
        ("correct", "points"),
        [("yes", 200), (True, "lots"), (True, 2.5)],
    )
    async def test_rejects_invalid_input(self, progress_service, content, correct, points):
        """Malformed correctness or points are rejected."""
        question = await content.question()

        with pytest.raises(ValidationError):
            await progress_service.record_answer("user-1", question.id, correct, points)

    async def test_publishes_event(self, progress_service, content, recorder):
        """Recording publishes progress.answer_recorded."""
        # Arrange
        recorder.watch("progress.answer_recorded")
        question = await content.question()

        # Act
        result = await progress_service.record_answer("user-1", question.id, True, 200)

        # Assert
        (payload,) = recorder.payloads("progress.answer_recorded")
        assert payload["history_id"] == result["history_id"]
        assert payload["user_id"] == "user-1"
        assert payload["correct"] is True


# ============================================================================
# RESET AND STATS
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestResetHistory:
    """Resetting one user's history."""

    async def test_deletes_only_that_user(self, progress_service, content):
        """Reset removes only the named user's rows."""
        # Arrange
        question = await content.question()
        await progress_service.record_answer("user-1", question.id, True, 200)
        await progress_service.record_answer("user-1", question.id, True, 200)
        await progress_service.record_answer("user-2", question.id, True, 200)

        # Act
        result = await progress_service.reset_history("user-1")

        # Assert
        assert result == {"user_id": "user-1", "history_deleted": 2, "progress_deleted": 1}
        assert await _history_count("user-1") == 0
        assert await _history_count("user-2") == 1

    async def test_reset_without_history(self, progress_service, database):
        """Resetting a user without history deletes nothing."""
        result = await progress_service.reset_history("nobody")
        assert result["history_deleted"] == 0


@pytest.mark.integration
@pytest.mark.database
class TestUserStats:
    """Per-user statistics."""

    async def test_totals_and_accuracy(self, progress_service, content):
        """Totals and accuracy span every category."""
        # Arrange
        arts = await content.category("Arts")
        science = await content.category("Science")
        await progress_service.record_answer(
            "user-1", (await content.question(arts)).id, True, 400
        )
        await progress_service.record_answer(
            "user-1", (await content.question(science)).id, True, 200
        )
        await progress_service.record_answer(
            "user-1", (await content.question(science)).id, False, -200
        )
        await progress_service.record_answer(
            "user-1", (await content.question(science)).id, True, 800
        )

        # Act
        stats = await progress_service.get_user_stats("user-1")

        # Assert
        assert [c["category_name"] for c in stats["categories"]] == ["Arts", "Science"]
        assert stats["total_correct"] == 3
        assert stats["total_answered"] == 4
        assert stats["total_points"] == 1200
        assert stats["accuracy"] == 75.0

    async def test_empty_stats(self, progress_service, database):
        """A user without history gets empty stats."""
        stats = await progress_service.get_user_stats("nobody")

        assert stats["categories"] == []
        assert stats["accuracy"] == 0.0
