"""
Progress Service
================

Purpose
-------
The single choke point through which every answered question reaches a
user's durable record. One call appends a GameHistory fact and folds it
into the per-category UserProgress aggregate, atomically.

Domain
------
- GameHistory is append-only (removed only by ``reset_history``)
- UserProgress is created lazily on the first answer in a category and
  incremented in the database (``INSERT ... ON CONFLICT DO UPDATE``), so
  concurrent answers for the same (user, category) never lose an update
- No other code path writes UserProgress

Transaction Model
-----------------
``record_answer`` opens its own transaction, or joins the caller's when a
``session`` is passed (the guest claim transaction does this so the
history rows, the aggregates and the claim marker commit together).
Events are published only after a transaction this service owns commits.

Events
------
- ``progress.answer_recorded`` after an answer commits
- ``progress.history_reset`` after a reset commits
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy import delete, select

from src.core.database.base import new_id, utc_now
from src.core.database.service import DatabaseService
from src.core.validation.input_validator import InputValidator
from src.database.models import Category, GameHistory, Question, UserProgress
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import QuestionNotFoundError

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.event.bus import EventBus


class ProgressService(BaseService):
    """
    Public Methods
    --------------
    - record_answer() -> Append history and upsert the category aggregate
    - reset_history() -> Delete a user's history and aggregates
    - get_user_stats() -> Per-category aggregates with totals
    """

    def __init__(
        self,
        config: Any,
        event_bus: Optional[EventBus],
        logger: Logger,
    ) -> None:
        super().__init__(config, event_bus, logger)

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def record_answer(
        self,
        user_id: str,
        question_id: str,
        correct: bool,
        points: int,
        user_answer: Optional[str] = None,
        *,
        session: Optional[AsyncSession] = None,
    ) -> Dict[str, Any]:
        """
        Record one answered question for a user.

        Args:
            user_id: Authenticated user id
            question_id: Answered question
            correct: Whether the answer was accepted
            points: Signed points awarded (negative for a wrong board answer)
            user_answer: Raw answer text, kept for history
            session: Join this transaction instead of opening one; no event
                is published in that case

        Returns:
            Dict with history_id, user_id, question_id, category_id, correct,
            points and the updated ``progress`` aggregate
            ({"correct", "total", "points"})

        Raises:
            QuestionNotFoundError: If the question does not exist; nothing
                is written
        """
        user_id = InputValidator.validate_entity_id(user_id, "user_id")
        question_id = InputValidator.validate_entity_id(question_id, "question_id")
        correct = InputValidator.validate_bool(correct, "correct")
        points = InputValidator.validate_integer(points, "points")
        if user_answer is not None:
            user_answer = InputValidator.validate_answer_text(user_answer, "user_answer")

        if session is not None:
            return await self._record(
                session, user_id, question_id, correct, points, user_answer
            )

        self.log_operation(
            "record_answer",
            user_id=user_id,
            question_id=question_id,
            correct=correct,
            points=points,
        )

        async with DatabaseService.get_transaction() as own_session:
            result = await self._record(
                own_session, user_id, question_id, correct, points, user_answer
            )

        await self.emit_event(
            "progress.answer_recorded",
            {
                "user_id": user_id,
                "question_id": question_id,
                "category_id": result["category_id"],
                "history_id": result["history_id"],
                "correct": correct,
                "points": points,
            },
        )
        return result

    async def reset_history(self, user_id: str) -> Dict[str, Any]:
        """
        Delete every GameHistory and UserProgress row of a user.

        Returns:
            Dict with user_id, history_deleted and progress_deleted counts
        """
        user_id = InputValidator.validate_entity_id(user_id, "user_id")
        self.log_operation("reset_history", user_id=user_id)

        async with DatabaseService.get_transaction() as session:
            history_result = await session.execute(
                delete(GameHistory).where(GameHistory.user_id == user_id)
            )
            progress_result = await session.execute(
                delete(UserProgress).where(UserProgress.user_id == user_id)
            )

        result = {
            "user_id": user_id,
            "history_deleted": history_result.rowcount,
            "progress_deleted": progress_result.rowcount,
        }
        self.log.info(
            "Answer history reset",
            extra={**result, "operation": "reset_history"},
        )
        await self.emit_event("progress.history_reset", result)
        return result

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def get_user_stats(self, user_id: str) -> Dict[str, Any]:
        """
        Per-category aggregates plus overall totals.

        Returns:
            Dict with ``categories`` (list of {category_id, category_name,
            correct, total, points}), ``total_correct``, ``total_answered``,
            ``total_points`` and ``accuracy`` (percentage, 0 when nothing
            was answered)
        """
        user_id = InputValidator.validate_entity_id(user_id, "user_id")
        self.log_operation("get_user_stats", user_id=user_id)

        async with DatabaseService.get_session() as session:
            rows = (
                await session.execute(
                    select(
                        UserProgress.category_id,
                        Category.name,
                        UserProgress.correct,
                        UserProgress.total,
                        UserProgress.points,
                    )
                    .join(Category, Category.id == UserProgress.category_id)
                    .where(UserProgress.user_id == user_id)
                    .order_by(Category.name)
                )
            ).all()

        categories = [
            {
                "category_id": row.category_id,
                "category_name": row.name,
                "correct": row.correct,
                "total": row.total,
                "points": row.points,
            }
            for row in rows
        ]
        total_correct = sum(c["correct"] for c in categories)
        total_answered = sum(c["total"] for c in categories)
        return {
            "user_id": user_id,
            "categories": categories,
            "total_correct": total_correct,
            "total_answered": total_answered,
            "total_points": sum(c["points"] for c in categories),
            "accuracy": (
                round(total_correct / total_answered * 100, 2) if total_answered else 0.0
            ),
        }

    # ========================================================================
    # INTERNAL
    # ========================================================================

    async def _record(
        self,
        session: AsyncSession,
        user_id: str,
        question_id: str,
        correct: bool,
        points: int,
        user_answer: Optional[str],
    ) -> Dict[str, Any]:
        # The category is read before the history insert so a missing
        # question fails as QuestionNotFoundError, not as an FK violation.
        category_id = await session.scalar(
            select(Question.category_id).where(Question.id == question_id)
        )
        if category_id is None:
            self.log.warning(
                "Answer references missing question",
                extra={"user_id": user_id, "question_id": question_id},
            )
            raise QuestionNotFoundError(question_id)

        now = utc_now()
        history_id = new_id()
        await session.execute(
            GameHistory.__table__.insert().values(
                id=history_id,
                user_id=user_id,
                question_id=question_id,
                correct=correct,
                points=points,
                user_answer=user_answer,
                timestamp=now,
            )
        )

        progress_table = UserProgress.__table__
        upsert = DatabaseService.dialect_insert(session, progress_table).values(
            id=new_id(),
            user_id=user_id,
            category_id=category_id,
            correct=1 if correct else 0,
            total=1,
            points=points,
            created_at=now,
            updated_at=now,
        )
        upsert = upsert.on_conflict_do_update(
            index_elements=["user_id", "category_id"],
            set_={
                "correct": progress_table.c.correct + upsert.excluded.correct,
                "total": progress_table.c.total + upsert.excluded.total,
                "points": progress_table.c.points + upsert.excluded.points,
                "updated_at": upsert.excluded.updated_at,
            },
        ).returning(
            progress_table.c.correct,
            progress_table.c.total,
            progress_table.c.points,
        )
        progress = (await session.execute(upsert)).one()

        self.log.debug(
            "Answer recorded",
            extra={
                "user_id": user_id,
                "question_id": question_id,
                "category_id": category_id,
                "history_id": history_id,
                "progress_total": progress.total,
            },
        )

        return {
            "history_id": history_id,
            "user_id": user_id,
            "question_id": question_id,
            "category_id": category_id,
            "correct": correct,
            "points": points,
            "progress": {
                "correct": progress.correct,
                "total": progress.total,
                "points": progress.points,
            },
        }
