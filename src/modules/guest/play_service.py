"""
Guest Play Service
==================

Purpose
-------
The guest-facing play surfaces: a single practice question, a quick-play
board, and answers on that board. Everything written here is staged on a
guest session and only becomes durable player progress when the session
is claimed (see ``claim_service``).

Domain
------
- Every step is gated by the trial policy before anything is written
- A RANDOM_QUESTION session holds exactly one outcome; a second answer
  on a still-actionable session replaces it and counts as the second
  question against the quota
- Board answers are recorded once per question: the guest question
  upsert only flips an unanswered row, and the running score moves by
  ``+value`` / ``-value`` only when that flip happened

Events
------
- ``guest.question_recorded`` after a practice outcome commits
- ``guest.game_started`` after a quick-play board is created
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import selectinload

from src.core.database.base import utc_now
from src.core.database.service import DatabaseService
from src.core.validation.input_validator import InputValidator
from src.database.models import (
    GameStatus,
    GuestGame,
    GuestGameQuestion,
    GuestSession,
    GuestSessionKind,
    Question,
    Round,
)
from src.modules.guest.payloads import QuestionOutcome, generate_seed
from src.modules.guest.policy import check_limit
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import (
    GuestLimitReachedError,
    QuestionNotFoundError,
    SessionNotFoundError,
)

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.event.bus import EventBus
    from src.modules.answers.override_service import AnswerOverrideService
    from src.modules.guest.config_service import GuestConfigService
    from src.modules.guest.session_service import GuestSessionService


DEFAULT_GAME_CONFIG: Dict[str, Any] = {
    "mode": "random",
    "rounds": {"single": True, "double": True, "final": False},
    "spoiler_protection": {"enabled": False, "cutoff_date": None},
}


class GuestPlayService(BaseService):
    """
    Public Methods
    --------------
    - record_question_outcome() -> Stage a practice answer on a session
    - start_game() -> Create a quick-play board for a guest
    - answer_game_question() -> Answer one board question
    """

    def __init__(
        self,
        config: Any,
        event_bus: Optional[EventBus],
        logger: Logger,
        config_service: GuestConfigService,
        session_service: GuestSessionService,
        override_service: AnswerOverrideService,
    ) -> None:
        super().__init__(config, event_bus, logger)
        self._guest_config = config_service
        self._sessions = session_service
        self._overrides = override_service

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def record_question_outcome(
        self,
        question_id: str,
        correct: bool,
        points: int,
        user_answer: Optional[str] = None,
        guest_session_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Stage one answered practice question.

        Reuses ``guest_session_id`` while it is actionable, otherwise starts
        a new session.

        Returns:
            Dict with guest_session_id, expires_at and limit_reached (True
            when the guest must sign in before the next question)

        Raises:
            GuestLimitReachedError: If the quota is already used up
        """
        question_id = InputValidator.validate_entity_id(question_id, "question_id")
        correct = InputValidator.validate_bool(correct, "correct")
        points = InputValidator.validate_integer(points, "points")
        user_answer = InputValidator.validate_answer_text(user_answer, "user_answer")
        if guest_session_id is not None:
            guest_session_id = InputValidator.validate_entity_id(
                guest_session_id, "guest_session_id"
            )

        self.log_operation(
            "record_question_outcome",
            question_id=question_id,
            session_id=guest_session_id,
        )
        snapshot = await self._guest_config.get_config()

        async with DatabaseService.get_transaction() as session:
            existing = None
            if guest_session_id is not None:
                existing = await self._sessions.load_actionable(session, guest_session_id)
                if existing is not None and existing.kind is not GuestSessionKind.RANDOM_QUESTION:
                    existing = None

            current_count = 1 if existing is not None else 0
            decision = check_limit(GuestSessionKind.RANDOM_QUESTION, current_count, snapshot)
            if not decision.allowed:
                raise GuestLimitReachedError(
                    GuestSessionKind.RANDOM_QUESTION.value, decision.reason
                )

            question = await session.get(
                Question, question_id, options=[selectinload(Question.category)]
            )
            outcome = QuestionOutcome(
                question_id=question_id,
                correct=correct,
                points=points,
                user_answer=user_answer or None,
                category_name=question.category.name if question else None,
                knowledge_category=question.knowledge_category.value if question else None,
            )

            replaced = False
            if existing is not None:
                result = await session.execute(
                    update(GuestSession)
                    .where(
                        GuestSession.id == existing.id,
                        GuestSession.claimed_at.is_(None),
                        GuestSession.expires_at > utc_now(),
                    )
                    .values(payload=outcome.to_payload(), updated_at=utc_now())
                    .execution_options(synchronize_session=False)
                )
                replaced = result.rowcount == 1

            if replaced:
                session_id, expires_at = existing.id, existing.expires_at
            else:
                created = await self._sessions.create_session(
                    GuestSessionKind.RANDOM_QUESTION,
                    outcome,
                    config=snapshot,
                    session=session,
                )
                session_id, expires_at = created.id, created.expires_at

        limit_reached = not check_limit(
            GuestSessionKind.RANDOM_QUESTION, 1, snapshot
        ).allowed

        await self.emit_event(
            "guest.question_recorded",
            {
                "session_id": session_id,
                "question_id": question_id,
                "correct": correct,
            },
        )
        return {
            "guest_session_id": session_id,
            "expires_at": expires_at,
            "limit_reached": limit_reached,
        }

    async def start_game(
        self,
        seed: Optional[str] = None,
        game_config: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Create a RANDOM_GAME session and its board.

        Returns:
            Dict with guest_session_id, guest_game_id, seed, status,
            current_round and expires_at
        """
        if seed is not None:
            seed = InputValidator.validate_string(seed, "seed", min_length=1, max_length=64)
        seed = seed or generate_seed()
        game_config = dict(game_config) if game_config is not None else dict(DEFAULT_GAME_CONFIG)

        self.log_operation("start_guest_game", seed=seed)

        async with DatabaseService.get_transaction() as session:
            guest_session = await self._sessions.create_session(
                GuestSessionKind.RANDOM_GAME,
                {"seed": seed, "config": game_config},
                session=session,
            )
            guest_game = GuestGame(
                guest_session_id=guest_session.id,
                seed=seed,
                config=game_config,
                status=GameStatus.IN_PROGRESS,
                current_round=Round.SINGLE,
                current_score=0,
            )
            session.add(guest_game)
            await session.flush()

        result = {
            "guest_session_id": guest_session.id,
            "guest_game_id": guest_game.id,
            "seed": guest_game.seed,
            "status": guest_game.status.value,
            "current_round": guest_game.current_round.value,
            "expires_at": guest_session.expires_at,
        }
        await self.emit_event(
            "guest.game_started",
            {
                "session_id": guest_session.id,
                "guest_game_id": guest_game.id,
                "seed": seed,
            },
        )
        return result

    async def answer_game_question(
        self,
        guest_game_id: str,
        question_id: str,
        answer_text: str,
    ) -> Dict[str, Any]:
        """
        Answer one question of a guest board.

        Returns:
            For a new answer: correct, answer, points, current_score,
            limit_reached and requires_auth. For a question answered before:
            correct, already_answered=True and current_score.

        Raises:
            SessionNotFoundError: Unknown board, or its session expired or
                was claimed
            QuestionNotFoundError: Unknown question
            GuestLimitReachedError: The answer would exceed a trial quota
        """
        guest_game_id = InputValidator.validate_entity_id(guest_game_id, "guest_game_id")
        question_id = InputValidator.validate_entity_id(question_id, "question_id")
        answer_text = InputValidator.validate_answer_text(answer_text, "answer")

        self.log_operation(
            "answer_guest_game_question",
            guest_game_id=guest_game_id,
            question_id=question_id,
        )
        snapshot = await self._guest_config.get_config()

        async with DatabaseService.get_transaction() as session:
            guest_game = await session.get(
                GuestGame,
                guest_game_id,
                options=[
                    selectinload(GuestGame.guest_session),
                    selectinload(GuestGame.questions),
                ],
            )
            if guest_game is None or not guest_game.guest_session.is_actionable(utc_now()):
                raise SessionNotFoundError(
                    guest_game.guest_session_id if guest_game else None
                )

            question = await session.get(Question, question_id)
            if question is None:
                raise QuestionNotFoundError(question_id)

            previous = next(
                (q for q in guest_game.questions if q.question_id == question_id and q.answered),
                None,
            )
            if previous is not None:
                return {
                    "correct": previous.correct,
                    "already_answered": True,
                    "current_score": guest_game.current_score,
                }

            answered_rows = (
                await session.execute(
                    select(Question.category_id, Question.round)
                    .join(GuestGameQuestion, GuestGameQuestion.question_id == Question.id)
                    .where(
                        GuestGameQuestion.guest_game_id == guest_game_id,
                        GuestGameQuestion.answered.is_(True),
                    )
                )
            ).all()
            answered_count = len(answered_rows)
            # Category and round caps only bind when this answer opens a new one
            categories = {row.category_id for row in answered_rows}
            rounds = {row.round for row in answered_rows}
            decision = check_limit(
                GuestSessionKind.RANDOM_GAME,
                answered_count,
                snapshot,
                category_count=(
                    len(categories) if question.category_id not in categories else None
                ),
                round_count=len(rounds) if question.round not in rounds else None,
            )
            if not decision.allowed:
                raise GuestLimitReachedError(GuestSessionKind.RANDOM_GAME.value, decision.reason)

            overrides = await self._overrides.get_overrides(question_id, session=session)
            correct = self._overrides.checker.is_answer_accepted(
                answer_text, question.answer, overrides
            )
            value = question.value or 0
            points = value if correct else -value

            flipped = await self._mark_answered(session, guest_game_id, question_id, correct)
            if not flipped:
                # Lost a race with a concurrent answer to the same question
                stored = await session.scalar(
                    select(GuestGameQuestion.correct).where(
                        GuestGameQuestion.guest_game_id == guest_game_id,
                        GuestGameQuestion.question_id == question_id,
                    )
                )
                current_score = await session.scalar(
                    select(GuestGame.current_score).where(GuestGame.id == guest_game_id)
                )
                return {
                    "correct": stored,
                    "already_answered": True,
                    "current_score": current_score,
                }

            current_score = (
                await session.execute(
                    update(GuestGame)
                    .where(GuestGame.id == guest_game_id)
                    .values(
                        current_score=GuestGame.current_score + points,
                        updated_at=utc_now(),
                    )
                    .returning(GuestGame.current_score)
                    .execution_options(synchronize_session=False)
                )
            ).scalar_one()

        limit_reached = answered_count + 1 >= snapshot.random_game_max_questions_before_auth
        return {
            "correct": correct,
            "answer": question.answer,
            "points": points,
            "current_score": current_score,
            "limit_reached": limit_reached,
            "requires_auth": limit_reached,
        }

    # ========================================================================
    # INTERNAL
    # ========================================================================

    async def _mark_answered(
        self,
        session: AsyncSession,
        guest_game_id: str,
        question_id: str,
        correct: bool,
    ) -> bool:
        """Insert or flip the guest question to answered; False if it already was."""
        table = GuestGameQuestion.__table__
        now = utc_now()
        stmt = DatabaseService.dialect_insert(session, table).values(
            guest_game_id=guest_game_id,
            question_id=question_id,
            answered=True,
            correct=correct,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["guest_game_id", "question_id"],
            set_={
                "answered": True,
                "correct": stmt.excluded.correct,
                "updated_at": stmt.excluded.updated_at,
            },
            where=table.c.answered.is_(False),
        )
        result = await session.execute(stmt)
        return result.rowcount == 1
