"""
Answer Override Service
=======================

Purpose
-------
Maintains the per-question list of additionally accepted phrasings and
answers override-aware correctness questions for callers that only hold a
question id.

Domain
------
- Overrides are append-only; the canonical answer is never modified
- Override text is stored normalized, so re-adding the same phrasing
  (in any casing or punctuation) is a no-op
- Origin is recorded as ADMIN (curated) or DISPUTE (resolved dispute)

Events
------
- ``answers.override_added`` after a new override commits
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional, Tuple

from src.core.database.service import DatabaseService
from src.core.logging.logger import get_logger
from src.core.validation.input_validator import InputValidator
from src.database.models import AnswerOverride, OverrideSource, Question
from src.modules.answers.checker import AnswerChecker
from src.modules.answers.normalizer import normalize_override_text
from src.modules.shared.base_repository import BaseRepository
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import QuestionNotFoundError, ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.event.bus import EventBus


class AnswerOverrideService(BaseService):
    """
    Public Methods
    --------------
    - get_overrides() -> Overrides of a question, oldest first
    - add_override() -> Idempotently add an accepted phrasing
    - check_answer() -> Override-aware correctness for a question id
    """

    def __init__(
        self,
        config: Any,
        event_bus: Optional[EventBus],
        logger: Logger,
        checker: Optional[AnswerChecker] = None,
    ) -> None:
        super().__init__(config, event_bus, logger)
        self._checker = checker or AnswerChecker(
            self.get_config("ANSWER_TOLERANCE_RATIO", default=0.2)
        )
        self._question_repo = BaseRepository(
            Question, get_logger(f"{__name__}.QuestionRepository")
        )
        self._override_repo = BaseRepository(
            AnswerOverride, get_logger(f"{__name__}.AnswerOverrideRepository")
        )

    @property
    def checker(self) -> AnswerChecker:
        return self._checker

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def get_overrides(
        self, question_id: str, session: Optional[AsyncSession] = None
    ) -> List[AnswerOverride]:
        """All overrides of ``question_id`` ordered by creation time."""
        question_id = InputValidator.validate_entity_id(question_id, "question_id")

        if session is not None:
            return await self._load_overrides(session, question_id)
        async with DatabaseService.get_session() as own_session:
            return await self._load_overrides(own_session, question_id)

    async def check_answer(self, question_id: str, user_text: str) -> bool:
        """
        True if ``user_text`` matches the question's canonical answer or
        any of its overrides.

        Raises:
            QuestionNotFoundError: If the question does not exist
        """
        question_id = InputValidator.validate_entity_id(question_id, "question_id")
        user_text = InputValidator.validate_answer_text(user_text)

        async with DatabaseService.get_session() as session:
            question = await self._question_repo.get(session, question_id)
            if question is None:
                raise QuestionNotFoundError(question_id)
            overrides = await self._load_overrides(session, question_id)

        return self._checker.is_answer_accepted(user_text, question.answer, overrides)

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def add_override(
        self,
        question_id: str,
        text: str,
        created_by_user_id: str,
        source: OverrideSource | str = OverrideSource.ADMIN,
        notes: Optional[str] = None,
        *,
        session: Optional[AsyncSession] = None,
    ) -> AnswerOverride:
        """
        Add an accepted phrasing for a question.

        Idempotent on the normalized text: adding an existing phrasing
        returns the stored row unchanged. With ``session`` the insert joins
        the caller's transaction and the caller publishes events.

        Raises:
            QuestionNotFoundError: If the question does not exist
            ValidationError: If the text is empty after normalization
        """
        question_id = InputValidator.validate_entity_id(question_id, "question_id")
        created_by_user_id = InputValidator.validate_entity_id(
            created_by_user_id, "created_by_user_id"
        )
        source = InputValidator.validate_enum(source, "source", OverrideSource)
        raw_text = InputValidator.validate_string(text, "text", max_length=500)

        normalized = normalize_override_text(raw_text)
        if not normalized:
            raise ValidationError("text", "Override text is empty after normalization")

        self.log_operation(
            "add_override",
            question_id=question_id,
            user_id=created_by_user_id,
            source=source.value,
        )

        if session is not None:
            override, _ = await self._insert_override(
                session, question_id, normalized, created_by_user_id, source, notes
            )
            return override

        async with DatabaseService.get_transaction() as own_session:
            override, created = await self._insert_override(
                own_session, question_id, normalized, created_by_user_id, source, notes
            )

        if created:
            await self.emit_event(
                "answers.override_added",
                {
                    "question_id": question_id,
                    "override_id": override.id,
                    "source": source.value,
                    "user_id": created_by_user_id,
                },
            )
        else:
            self.log.info(
                "Override already present",
                extra={"question_id": question_id, "operation": "add_override"},
            )
        return override

    # ========================================================================
    # INTERNAL
    # ========================================================================

    async def _insert_override(
        self,
        session: AsyncSession,
        question_id: str,
        normalized: str,
        created_by_user_id: str,
        source: OverrideSource,
        notes: Optional[str],
    ) -> Tuple[AnswerOverride, bool]:
        if not await self._question_repo.exists(session, Question.id == question_id):
            raise QuestionNotFoundError(question_id)

        result = await session.execute(
            DatabaseService.dialect_insert(session, AnswerOverride.__table__)
            .values(
                question_id=question_id,
                text=normalized,
                created_by_user_id=created_by_user_id,
                source=source,
                notes=notes,
            )
            .on_conflict_do_nothing(index_elements=["question_id", "text"])
        )
        override = await self._override_repo.find_one_where(
            session,
            AnswerOverride.question_id == question_id,
            AnswerOverride.text == normalized,
        )
        return override, result.rowcount == 1

    async def _load_overrides(
        self, session: AsyncSession, question_id: str
    ) -> List[AnswerOverride]:
        return await self._override_repo.find_many_where(
            session,
            AnswerOverride.question_id == question_id,
            order_by=[AnswerOverride.created_at, AnswerOverride.id],
        )
