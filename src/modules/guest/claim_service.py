"""
Guest Claim Service
===================

Purpose
-------
Turns one guest session into durable records of a newly signed-in user,
exactly once.

Transaction Model
-----------------
Everything happens in one transaction whose first statement is the claim
marker::

    UPDATE guest_sessions
       SET claimed_at = :now, claimed_by_user_id = :user
     WHERE id = :id AND claimed_at IS NULL AND expires_at > :now

Zero affected rows means the session is missing, expired or already
claimed, and the call fails with ``SessionNotFoundError`` without saying
which. Because the marker and the migration commit or roll back together,
a retried or concurrent claim finds the marker set and can never credit
the same outcome twice; a failed migration leaves the session unclaimed
and retryable.

Kinds
-----
- RANDOM_QUESTION: the staged outcome goes through the progress recorder
- DAILY_CHALLENGE: a UserDailyChallenge row, tolerating one that exists
- RANDOM_GAME: a Game copying the board, a GameQuestion per guest
  question and a progress record per answered one

Events
------
- ``guest.session_claimed`` after the claim commits
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from sqlalchemy import select, update
from sqlalchemy.orm import selectinload

from src.core.database.base import utc_now
from src.core.database.service import DatabaseService
from src.core.logging.logger import LogContext
from src.core.validation.input_validator import InputValidator
from src.database.models import (
    Category,
    Game,
    GameQuestion,
    GameStatus,
    GuestGame,
    GuestSession,
    GuestSessionKind,
    Question,
    UserDailyChallenge,
)
from src.modules.guest.payloads import (
    DailyChallengeOutcome,
    QuestionOutcome,
    generate_seed,
)
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import (
    MigrationFailedError,
    SessionNotFoundError,
    StumperDomainException,
)

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.event.bus import EventBus
    from src.modules.progress.service import ProgressService


DAILY_CHALLENGE_PATH = "/daily-challenge"
PRACTICE_CATEGORY_PATH = "/practice/category"


def _uri_component(value: str) -> str:
    return quote(str(value), safe="!~*'()")


def practice_redirect(
    knowledge_category: str, question_id: str, category_id: Optional[str] = None
) -> str:
    """Practice page that continues where the guest left off."""
    path = f"{PRACTICE_CATEGORY_PATH}?knowledgeCategory={_uri_component(knowledge_category)}"
    if category_id is not None:
        path += f"&category={_uri_component(category_id)}"
    return f"{path}&question={question_id}"


@dataclass(frozen=True)
class ClaimResult:
    success: bool
    game_id: Optional[str] = None
    challenge_id: Optional[str] = None
    redirect_path: Optional[str] = None
    history_ids: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["history_ids"] = list(self.history_ids)
        return data


@dataclass
class _Migration:
    """What one claim produced; becomes the result and the event payload."""

    game_id: Optional[str] = None
    challenge_id: Optional[str] = None
    redirect_path: Optional[str] = None
    history_ids: List[str] = field(default_factory=list)
    answers: List[Dict[str, Any]] = field(default_factory=list)
    daily_correct: Optional[bool] = None
    game_status: Optional[str] = None
    final_score: Optional[int] = None


class GuestClaimService(BaseService):
    """
    Public Methods
    --------------
    - claim() -> Migrate a guest session to a user exactly once
    """

    def __init__(
        self,
        config: Any,
        event_bus: Optional[EventBus],
        logger: Logger,
        progress_service: ProgressService,
    ) -> None:
        super().__init__(config, event_bus, logger)
        self._progress = progress_service

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def claim(self, session_id: str, user_id: str) -> ClaimResult:
        """
        Claim ``session_id`` for ``user_id``.

        Raises:
            SessionNotFoundError: Missing, expired or already claimed
            MigrationFailedError: The migration failed; nothing was written
                and the session can be claimed again
        """
        user_id = InputValidator.validate_entity_id(user_id, "user_id")
        try:
            session_id = InputValidator.validate_entity_id(session_id, "session_id")
        except StumperDomainException:
            raise SessionNotFoundError(None) from None

        async with LogContext(
            user_id=user_id, session_id=session_id, operation="claim_guest_session"
        ):
            return await self._claim(session_id, user_id)

    async def _claim(self, session_id: str, user_id: str) -> ClaimResult:
        self.log_operation("claim_guest_session", session_id=session_id, user_id=user_id)

        async with DatabaseService.get_transaction() as session:
            now = utc_now()
            marked = await session.execute(
                update(GuestSession)
                .where(
                    GuestSession.id == session_id,
                    GuestSession.claimed_at.is_(None),
                    GuestSession.expires_at > now,
                )
                .values(claimed_at=now, claimed_by_user_id=user_id, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if marked.rowcount != 1:
                self.log.info(
                    "Guest session not claimable",
                    extra={"session_id": session_id, "user_id": user_id},
                )
                raise SessionNotFoundError(session_id)

            guest_session = await session.get(
                GuestSession,
                session_id,
                options=[
                    selectinload(GuestSession.guest_game).selectinload(GuestGame.questions)
                ],
            )
            kind = guest_session.kind

            try:
                if kind is GuestSessionKind.RANDOM_QUESTION:
                    migration = await self._claim_question(session, guest_session, user_id)
                elif kind is GuestSessionKind.DAILY_CHALLENGE:
                    migration = await self._claim_daily_challenge(
                        session, guest_session, user_id
                    )
                elif kind is GuestSessionKind.RANDOM_GAME:
                    migration = await self._claim_game(session, guest_session, user_id)
                else:
                    raise MigrationFailedError(session_id, f"Unknown session kind: {kind}")
            except StumperDomainException:
                raise
            except Exception as exc:
                self.log_error(
                    "claim_guest_session", exc, session_id=session_id, user_id=user_id
                )
                raise MigrationFailedError(session_id, "Failed to claim session") from exc

        self.log.info(
            "Guest session claimed",
            extra={
                "session_id": session_id,
                "user_id": user_id,
                "kind": kind.value,
                "history_rows": len(migration.history_ids),
                "game_id": migration.game_id,
            },
        )
        await self.emit_event(
            "guest.session_claimed",
            {
                "session_id": session_id,
                "user_id": user_id,
                "kind": kind.value,
                "game_id": migration.game_id,
                "challenge_id": migration.challenge_id,
                "history_ids": list(migration.history_ids),
                "answers": migration.answers,
                "daily_correct": migration.daily_correct,
                "game_status": migration.game_status,
                "final_score": migration.final_score,
            },
        )
        return ClaimResult(
            success=True,
            game_id=migration.game_id,
            challenge_id=migration.challenge_id,
            redirect_path=migration.redirect_path,
            history_ids=tuple(migration.history_ids),
        )

    # ========================================================================
    # INTERNAL - per-kind migrations
    # ========================================================================

    async def _claim_question(
        self, session: AsyncSession, guest_session: GuestSession, user_id: str
    ) -> _Migration:
        migration = _Migration()
        outcome = QuestionOutcome.from_payload(guest_session.payload)
        if not outcome.is_recorded:
            return migration

        question = await session.get(
            Question, outcome.question_id, options=[selectinload(Question.category)]
        )
        if question is None:
            # Content was removed since the guest played; claim without credit
            self.log.warning(
                "Claimed outcome references missing question",
                extra={"session_id": guest_session.id, "question_id": outcome.question_id},
            )
            return migration

        recorded = await self._progress.record_answer(
            user_id,
            outcome.question_id,
            outcome.correct,
            int(outcome.points),
            outcome.user_answer,
            session=session,
        )
        migration.history_ids.append(recorded["history_id"])
        migration.answers.append(
            {
                "question_id": outcome.question_id,
                "correct": outcome.correct,
                "history_id": recorded["history_id"],
            }
        )

        category_name = outcome.category_name or question.category.name
        knowledge_category = outcome.knowledge_category or question.knowledge_category.value
        category_id = await session.scalar(
            select(Category.id).where(Category.name == category_name)
        )
        migration.redirect_path = practice_redirect(
            knowledge_category, outcome.question_id, category_id
        )
        return migration

    async def _claim_daily_challenge(
        self, session: AsyncSession, guest_session: GuestSession, user_id: str
    ) -> _Migration:
        outcome = DailyChallengeOutcome.from_payload(guest_session.payload)
        migration = _Migration(
            challenge_id=outcome.challenge_id,
            redirect_path=DAILY_CHALLENGE_PATH,
        )
        if not outcome.is_recorded:
            return migration

        result = await session.execute(
            DatabaseService.dialect_insert(session, UserDailyChallenge.__table__)
            .values(
                user_id=user_id,
                challenge_id=outcome.challenge_id,
                correct=outcome.correct,
                user_answer=outcome.user_answer,
                completed_at=outcome.completed_at or utc_now(),
            )
            .on_conflict_do_nothing(index_elements=["user_id", "challenge_id"])
        )
        if result.rowcount == 1:
            migration.daily_correct = outcome.correct
        else:
            self.log.info(
                "Daily challenge already completed by user; keeping existing result",
                extra={"user_id": user_id, "challenge_id": outcome.challenge_id},
            )
        return migration

    async def _claim_game(
        self, session: AsyncSession, guest_session: GuestSession, user_id: str
    ) -> _Migration:
        guest_game = guest_session.guest_game
        if guest_game is None:
            raise MigrationFailedError(guest_session.id, "Guest game not found")

        game = Game(
            user_id=user_id,
            seed=guest_game.seed or generate_seed(),
            config=guest_game.config,
            status=guest_game.status,
            current_round=guest_game.current_round,
            current_score=guest_game.current_score,
            completed=guest_game.status is GameStatus.COMPLETED,
            score=guest_game.current_score,
        )
        session.add(game)
        await session.flush()

        migration = _Migration(
            game_id=game.id,
            game_status=guest_game.status.value,
            final_score=guest_game.current_score,
        )

        for guest_question in guest_game.questions:
            session.add(
                GameQuestion(
                    game_id=game.id,
                    question_id=guest_question.question_id,
                    answered=guest_question.answered,
                    correct=guest_question.correct,
                )
            )
            if not guest_question.answered or not isinstance(guest_question.correct, bool):
                continue

            value = await session.scalar(
                select(Question.value).where(Question.id == guest_question.question_id)
            )
            points = (value or 0) if guest_question.correct else -(value or 0)
            recorded = await self._progress.record_answer(
                user_id,
                guest_question.question_id,
                guest_question.correct,
                points,
                session=session,
            )
            migration.history_ids.append(recorded["history_id"])
            migration.answers.append(
                {
                    "question_id": guest_question.question_id,
                    "correct": guest_question.correct,
                    "history_id": recorded["history_id"],
                }
            )

        await session.flush()
        return migration
