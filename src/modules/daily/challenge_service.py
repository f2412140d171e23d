"""
Daily Challenge Service
=======================

Purpose
-------
Maps each calendar date to exactly one final-round question and records
each user's single attempt at it.

Domain
------
- ``ensure_challenge`` is safe to call from every request, a scheduler
  and a pre-generation job at once: the unique date column decides the
  winner, losers re-read and return the stored mapping
- A question is used for at most one date ever (unique question_id); a
  conflict on the question instead of the date retries selection with
  the next attempt index
- Selection is deterministic for a date and attempt: eligible questions
  ordered by air date (newest first) then id, picked at
  ``(year + month + day + attempt) % count``
- Episodes (and air dates) already used within
  ``DAILY_CHALLENGE_EPISODE_REUSE_DAYS`` of the date are skipped
- Guests answer into a DAILY_CHALLENGE guest session for a later claim;
  users get one UserDailyChallenge row per challenge

Events
------
- ``daily.challenge_created`` after a new mapping commits
- ``daily.challenge_completed`` after a user's first attempt commits
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from src.core.database.base import new_id, utc_now
from src.core.database.service import DatabaseService
from src.core.logging.logger import get_logger
from src.core.validation.input_validator import InputValidator
from src.database.models import (
    DailyChallenge,
    GuestSessionKind,
    Question,
    Round,
    UserDailyChallenge,
)
from src.modules.daily.dates import get_active_challenge_date
from src.modules.guest.payloads import DailyChallengeOutcome
from src.modules.shared.base_repository import BaseRepository
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import (
    AuthenticationRequiredError,
    NoEligibleQuestionError,
)

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.event.bus import EventBus
    from src.modules.answers.override_service import AnswerOverrideService
    from src.modules.guest.config_service import GuestConfigService, GuestConfigSnapshot
    from src.modules.guest.session_service import GuestSessionService


class DailyChallengeService(BaseService):
    """
    Public Methods
    --------------
    - ensure_challenge() -> Existing or newly scheduled challenge for a date
    - get_challenge() -> Stored challenge for a date, if any
    - submit_answer() -> Check and record a daily challenge attempt
    """

    def __init__(
        self,
        config: Any,
        event_bus: Optional[EventBus],
        logger: Logger,
        guest_config_service: GuestConfigService,
        guest_session_service: GuestSessionService,
        override_service: AnswerOverrideService,
    ) -> None:
        super().__init__(config, event_bus, logger)
        self._guest_config = guest_config_service
        self._guest_sessions = guest_session_service
        self._overrides = override_service
        self._repo = BaseRepository(
            DailyChallenge, get_logger(f"{__name__}.DailyChallengeRepository")
        )

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def get_challenge(self, target_date: date | str) -> Optional[DailyChallenge]:
        target_date = InputValidator.validate_date(target_date, "target_date")
        async with DatabaseService.get_session() as session:
            return await self._repo.find_one_where(session, DailyChallenge.date == target_date)

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def ensure_challenge(self, target_date: date | str) -> DailyChallenge:
        """
        The challenge for ``target_date``, scheduling one if none exists.

        Concurrent callers for the same date all return the same row.

        Raises:
            NoEligibleQuestionError: Empty pool, or every attempt collided
        """
        target_date = InputValidator.validate_date(target_date, "target_date")
        max_attempts = int(self.get_config("DAILY_CHALLENGE_MAX_ATTEMPTS", 5))

        for attempt in range(max_attempts):
            existing = await self.get_challenge(target_date)
            if existing is not None:
                return existing

            guest_config = await self._guest_config.get_config()
            async with DatabaseService.get_session() as session:
                question = await self._select_question(
                    session, target_date, guest_config, attempt
                )
            if question is None:
                self.log.warning(
                    "No eligible daily challenge question",
                    extra={"challenge_date": target_date.isoformat(), "attempt": attempt},
                )
                raise NoEligibleQuestionError(target_date.isoformat(), attempt + 1)

            challenge = DailyChallenge(
                date=target_date,
                question_id=question.id,
                air_date=question.air_date,
                episode_id=question.episode_id,
            )
            try:
                async with DatabaseService.get_transaction() as session:
                    session.add(challenge)
                    await session.flush()
            except IntegrityError:
                # Either the date was taken (the re-read returns it) or the
                # question was claimed for another date (select again).
                self.log.info(
                    "Daily challenge insert lost a race",
                    extra={
                        "challenge_date": target_date.isoformat(),
                        "question_id": question.id,
                        "attempt": attempt,
                    },
                )
                continue

            self.log.info(
                "Daily challenge scheduled",
                extra={
                    "challenge_date": target_date.isoformat(),
                    "question_id": question.id,
                    "episode_id": question.episode_id,
                    "attempt": attempt,
                },
            )
            await self.emit_event(
                "daily.challenge_created",
                {
                    "challenge_id": challenge.id,
                    "date": target_date.isoformat(),
                    "question_id": question.id,
                },
            )
            return challenge

        existing = await self.get_challenge(target_date)
        if existing is not None:
            return existing
        raise NoEligibleQuestionError(target_date.isoformat(), max_attempts)

    async def submit_answer(
        self,
        answer_text: str,
        user_id: Optional[str] = None,
        target_date: Optional[date | str] = None,
    ) -> Dict[str, Any]:
        """
        Check an answer to the daily challenge and record the attempt.

        Args:
            answer_text: Raw answer as typed
            user_id: Authenticated user, or None for a guest
            target_date: Challenge date; defaults to the active date

        Returns:
            Users: {challenge_id, correct, correct_answer, already_answered}.
            Guests additionally get guest_session_id and expires_at; the
            attempt is credited when the session is claimed.

        Raises:
            AuthenticationRequiredError: Guest play for the daily challenge
                is disabled
            NoEligibleQuestionError: No challenge could be scheduled
        """
        answer_text = InputValidator.validate_answer_text(answer_text)
        if user_id is not None:
            user_id = InputValidator.validate_entity_id(user_id, "user_id")
        if target_date is None:
            target_date = get_active_challenge_date()
        else:
            target_date = InputValidator.validate_date(target_date, "target_date")

        if user_id is None:
            guest_config = await self._guest_config.get_config()
            if not guest_config.daily_challenge_guest_enabled:
                raise AuthenticationRequiredError("daily_challenge")

        challenge = await self.ensure_challenge(target_date)

        if user_id is not None:
            async with DatabaseService.get_session() as session:
                existing = await self._find_completion(session, user_id, challenge.id)
            if existing is not None:
                return self._already_answered(challenge, existing.correct)

        correct = await self._overrides.check_answer(challenge.question_id, answer_text)
        async with DatabaseService.get_session() as session:
            correct_answer = await session.scalar(
                select(Question.answer).where(Question.id == challenge.question_id)
            )

        if user_id is None:
            return await self._record_guest(challenge, answer_text, correct, correct_answer)

        self.log_operation(
            "submit_daily_answer",
            user_id=user_id,
            challenge_id=challenge.id,
            correct=correct,
        )

        completed_at = utc_now()
        async with DatabaseService.get_transaction() as session:
            result = await session.execute(
                DatabaseService.dialect_insert(session, UserDailyChallenge.__table__)
                .values(
                    id=new_id(),
                    user_id=user_id,
                    challenge_id=challenge.id,
                    correct=correct,
                    user_answer=answer_text,
                    completed_at=completed_at,
                )
                .on_conflict_do_nothing(index_elements=["user_id", "challenge_id"])
            )
            created = result.rowcount == 1
            if not created:
                existing = await self._find_completion(session, user_id, challenge.id)

        if not created:
            return self._already_answered(challenge, existing.correct)

        await self.emit_event(
            "daily.challenge_completed",
            {
                "user_id": user_id,
                "challenge_id": challenge.id,
                "date": challenge.date.isoformat(),
                "correct": correct,
                "completed_at": completed_at.isoformat(),
            },
        )
        return {
            "challenge_id": challenge.id,
            "correct": correct,
            "correct_answer": correct_answer,
            "already_answered": False,
        }

    # ========================================================================
    # INTERNAL
    # ========================================================================

    async def _record_guest(
        self,
        challenge: DailyChallenge,
        answer_text: str,
        correct: bool,
        correct_answer: Optional[str],
    ) -> Dict[str, Any]:
        guest_session = await self._guest_sessions.create_session(
            GuestSessionKind.DAILY_CHALLENGE,
            DailyChallengeOutcome(
                challenge_id=challenge.id,
                question_id=challenge.question_id,
                correct=correct,
                user_answer=answer_text,
            ),
        )
        return {
            "challenge_id": challenge.id,
            "correct": correct,
            "correct_answer": correct_answer,
            "already_answered": False,
            "guest_session_id": guest_session.id,
            "expires_at": guest_session.expires_at,
        }

    @staticmethod
    def _already_answered(challenge: DailyChallenge, correct: bool) -> Dict[str, Any]:
        return {
            "challenge_id": challenge.id,
            "correct": correct,
            "already_answered": True,
        }

    @staticmethod
    async def _find_completion(
        session: AsyncSession, user_id: str, challenge_id: str
    ) -> Optional[UserDailyChallenge]:
        return await session.scalar(
            select(UserDailyChallenge).where(
                UserDailyChallenge.user_id == user_id,
                UserDailyChallenge.challenge_id == challenge_id,
            )
        )

    async def _select_question(
        self,
        session: AsyncSession,
        target_date: date,
        guest_config: GuestConfigSnapshot,
        attempt: int,
    ) -> Optional[Question]:
        reuse_days = int(self.get_config("DAILY_CHALLENGE_EPISODE_REUSE_DAYS", 365))
        lookback_cutoff = target_date - timedelta(days=guest_config.daily_challenge_min_lookback_days)
        reuse_cutoff = target_date - timedelta(days=reuse_days)

        # No upper bound: challenges scheduled after target_date block their episodes too
        recent = select(DailyChallenge).where(DailyChallenge.date >= reuse_cutoff).subquery()
        recent_episodes = select(recent.c.episode_id).where(recent.c.episode_id.is_not(None))
        recent_air_dates = select(recent.c.air_date).where(recent.c.air_date.is_not(None))
        used_questions = select(DailyChallenge.question_id)

        conditions = [
            Question.round == Round.FINAL,
            Question.air_date.is_not(None),
            Question.air_date < lookback_cutoff,
            Question.id.not_in(used_questions),
            Question.air_date.not_in(recent_air_dates),
            Question.episode_id.is_(None) | Question.episode_id.not_in(recent_episodes),
        ]
        if guest_config.daily_challenge_seasons:
            conditions.append(Question.season.in_(guest_config.daily_challenge_seasons))

        count = await session.scalar(
            select(func.count()).select_from(Question).where(*conditions)
        )
        if not count:
            return None

        index = (target_date.year + target_date.month + target_date.day + attempt) % count
        self.log.debug(
            "Daily challenge candidate pool",
            extra={
                "challenge_date": target_date.isoformat(),
                "pool_size": count,
                "attempt": attempt,
                "index": index,
            },
        )
        return await session.scalar(
            select(Question)
            .where(*conditions)
            .order_by(Question.air_date.desc(), Question.id)
            .offset(index)
            .limit(1)
        )
