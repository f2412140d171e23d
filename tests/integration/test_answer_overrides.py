"""
Integration tests for AnswerOverrideService.

Covers normalized storage, idempotent adds and override-aware checking.
"""

import pytest

from src.database.models import OverrideSource
from src.modules.shared.exceptions import QuestionNotFoundError, ValidationError


@pytest.mark.integration
@pytest.mark.database
class TestAddOverride:
    """Storing accepted phrasings."""

    async def test_stores_normalized_text(self, override_service, content):
        """The override is stored in normalized form."""
        # Arrange
        question = await content.question(answer="Sartre")

        # Act
        override = await override_service.add_override(
            question.id, "  Jean-Paul Sartre! ", "admin-1"
        )

        # Assert
        assert override.text == "jean paul sartre"
        assert override.source is OverrideSource.ADMIN
        assert override.created_by_user_id == "admin-1"

    async def test_same_phrasing_is_idempotent(self, override_service, content, recorder):
        """An equivalent phrasing returns the stored row and publishes once."""
        # Arrange
        recorder.watch("answers.override_added")
        question = await content.question(answer="Sartre")

        # Act
        first = await override_service.add_override(question.id, "Jean-Paul Sartre", "admin-1")
        second = await override_service.add_override(
            question.id, "JEAN PAUL SARTRE", "admin-2", source="DISPUTE"
        )

        # Assert
        assert second.id == first.id
        assert second.source is OverrideSource.ADMIN
        assert len(await override_service.get_overrides(question.id)) == 1
        events = recorder.payloads("answers.override_added")
        assert len(events) == 1
        assert events[0]["question_id"] == question.id
        assert events[0]["override_id"] == first.id

    async def test_overrides_listed_oldest_first(self, override_service, content):
        """Overrides are listed in insertion order."""
        question = await content.question(answer="Twain")

        await override_service.add_override(question.id, "Mark Twain", "admin-1")
        await override_service.add_override(
            question.id, "Samuel Clemens", "admin-1", source=OverrideSource.DISPUTE
        )

        texts = [o.text for o in await override_service.get_overrides(question.id)]
        assert texts == ["mark twain", "samuel clemens"]

    async def test_unknown_question(self, override_service, database):
        """Adding to a missing question raises QuestionNotFoundError."""
        with pytest.raises(QuestionNotFoundError):
            await override_service.add_override("missing-question", "anything", "admin-1")

    async def test_empty_after_normalization(self, override_service, content):
        """Punctuation-only text is rejected."""
        question = await content.question()

        with pytest.raises(ValidationError):
            await override_service.add_override(question.id, "!!!", "admin-1")


@pytest.mark.integration
@pytest.mark.database
class TestCheckAnswer:
    """Override-aware answer checking."""

    async def test_canonical_answer(self, override_service, content):
        """The canonical answer is accepted, a wrong one is not."""
        question = await content.question(answer="Paris")

        assert await override_service.check_answer(question.id, "What is Paris?") is True
        assert await override_service.check_answer(question.id, "London") is False

    async def test_override_is_accepted(self, override_service, content):
        """An answer becomes correct once its override exists."""
        # Arrange
        question = await content.question(answer="Sartre")
        rejected = await override_service.check_answer(question.id, "who is jean paul sartre")

        # Act
        await override_service.add_override(question.id, "Jean-Paul Sartre", "admin-1")
        accepted = await override_service.check_answer(question.id, "who is jean paul sartre")

        # Assert
        assert rejected is False
        assert accepted is True

    async def test_override_tolerates_typos(self, override_service, content):
        """Overrides get the same typo tolerance as canonical answers."""
        question = await content.question(answer="Sartre")
        await override_service.add_override(question.id, "Jean-Paul Sartre", "admin-1")

        assert await override_service.check_answer(question.id, "jean paul satre") is True

    async def test_unknown_question(self, override_service, database):
        """Checking a missing question raises QuestionNotFoundError."""
        with pytest.raises(QuestionNotFoundError):
            await override_service.check_answer("missing-question", "Paris")
