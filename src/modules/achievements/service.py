"""
Achievement Service
===================

Purpose
-------
Decides which milestone achievements a user has just earned and unlocks
each of them exactly once.

Domain
------
- Evaluation is read-then-write: the unlocked set, the user row and the
  lifetime stats are read, predicates run in memory, qualifying codes are
  inserted
- The unique (user_id, achievement_id) pair is the idempotency boundary.
  Unlock inserts use ``ON CONFLICT DO NOTHING``; a zero rowcount or an
  ``IntegrityError`` means another evaluation won, which is success
- Only the codes relevant to the event are checked, and lifetime stats
  are loaded only when one of them needs more than the event itself
- Listeners registered on the EventBus never raise: a failing evaluation
  is logged and the flow that published the event is unaffected

Events
------
- ``achievements.unlocked`` after new unlocks commit
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from sqlalchemy import distinct, func, select
from sqlalchemy.exc import IntegrityError

from src.core.database.base import new_id, utc_now
from src.core.database.service import DatabaseService
from src.core.event.types import ListenerPriority
from src.core.validation.input_validator import InputValidator
from src.database.models import (
    Achievement,
    DailyChallenge,
    Game,
    GameHistory,
    GameQuestion,
    GameStatus,
    KnowledgeCategory,
    Question,
    Round,
    User,
    UserAchievement,
    UserDailyChallenge,
)
from src.modules.achievements.catalog import codes_for_event, load_catalog
from src.modules.achievements.predicates import (
    ACCURACY_WINDOW,
    EVENT_ONLY_CODES,
    AchievementEvent,
    AchievementEventKind,
    AchievementStats,
    EvaluationContext,
    GameQuestionState,
    UserSnapshot,
    daily_challenge_streak,
    qualifies,
)
from src.modules.daily.dates import get_active_challenge_date
from src.modules.shared.base_service import BaseService

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.event.bus import EventBus
    from src.core.event.types import EventPayload

DAILY_STREAK_LOOKBACK = 30


def _count(stmt) -> Any:
    return select(func.count()).select_from(stmt.subquery())


class AchievementService(BaseService):
    """
    Public Methods
    --------------
    - seed_catalog() -> Insert missing catalog entries
    - evaluate() -> Unlock newly earned achievements for an event
    - get_user_achievements() -> Catalog with the user's unlock state
    - register_listeners() -> Subscribe evaluation to domain events
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

    async def seed_catalog(self) -> int:
        """
        Insert every catalog definition that is not in the store yet.

        Returns:
            Number of definitions inserted by this call
        """
        definitions = load_catalog()
        self.log_operation("seed_catalog", definition_count=len(definitions))

        inserted = 0
        async with DatabaseService.get_transaction() as session:
            for definition in definitions:
                now = utc_now()
                result = await session.execute(
                    DatabaseService.dialect_insert(session, Achievement.__table__)
                    .values(id=new_id(), created_at=now, updated_at=now, **definition.to_row())
                    .on_conflict_do_nothing(index_elements=["code"])
                )
                inserted += result.rowcount

        self.log.info(
            "Achievement catalog seeded",
            extra={"inserted": inserted, "definition_count": len(definitions)},
        )
        return inserted

    async def evaluate(self, user_id: str, event: AchievementEvent) -> List[str]:
        """
        Unlock every not-yet-unlocked achievement that ``event`` makes
        the user qualify for.

        Safe to call repeatedly and concurrently: a code is unlocked at
        most once per user whichever call gets there first.

        Returns:
            Codes unlocked by this call, in evaluation order
        """
        user_id = InputValidator.validate_entity_id(user_id, "user_id")
        candidates = codes_for_event(event.kind)
        if not candidates:
            return []

        async with DatabaseService.get_session() as session:
            catalog_ids = dict(
                (
                    await session.execute(
                        select(Achievement.code, Achievement.id).where(
                            Achievement.code.in_(candidates)
                        )
                    )
                ).all()
            )
            unlocked = set(
                (
                    await session.scalars(
                        select(Achievement.code)
                        .join(UserAchievement, UserAchievement.achievement_id == Achievement.id)
                        .where(UserAchievement.user_id == user_id)
                    )
                ).all()
            )

            pending = [c for c in candidates if c in catalog_ids and c not in unlocked]
            if not pending:
                return []

            user = await session.get(User, user_id)
            user_snapshot = (
                UserSnapshot(
                    current_streak=user.current_streak,
                    longest_streak=user.longest_streak,
                    last_game_date=user.last_game_date,
                )
                if user is not None
                else UserSnapshot()
            )

            if any(code not in EVENT_ONLY_CODES for code in pending):
                stats = await self._load_stats(session, user_id, event)
            else:
                stats = AchievementStats()

        self.log.debug(
            "Evaluating achievements",
            extra={
                "user_id": user_id,
                "event_kind": event.kind.value,
                "pending": len(pending),
            },
        )

        context = EvaluationContext(
            event=event, user=user_snapshot, stats=stats, unlocked=unlocked
        )
        newly_unlocked: List[str] = []
        for code in pending:
            if not qualifies(code, context):
                continue
            if await self._unlock(user_id, catalog_ids[code]):
                newly_unlocked.append(code)
            # Counts toward ALL_HIDDEN whether this call or a concurrent one won
            context.unlocked.add(code)

        if newly_unlocked:
            self.log.info(
                "Achievements unlocked",
                extra={
                    "user_id": user_id,
                    "codes": newly_unlocked,
                    "event_kind": event.kind.value,
                },
            )
            await self.emit_event(
                "achievements.unlocked",
                {
                    "user_id": user_id,
                    "codes": newly_unlocked,
                    "event_kind": event.kind.value,
                },
            )
        return newly_unlocked

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def get_user_achievements(self, user_id: str) -> List[Dict[str, Any]]:
        """
        Every catalog entry with the user's unlock state, ordered by name.

        Hidden entries the user has not unlocked are included with their
        ``is_hidden`` flag set; masking them is a presentation concern.
        """
        user_id = InputValidator.validate_entity_id(user_id, "user_id")

        async with DatabaseService.get_session() as session:
            rows = (
                await session.execute(
                    select(Achievement, UserAchievement.unlocked_at)
                    .outerjoin(
                        UserAchievement,
                        (UserAchievement.achievement_id == Achievement.id)
                        & (UserAchievement.user_id == user_id),
                    )
                    .order_by(Achievement.name)
                )
            ).all()

        return [
            {
                "code": achievement.code,
                "name": achievement.name,
                "description": achievement.description,
                "icon": achievement.icon,
                "category": achievement.category.value,
                "tier": achievement.tier,
                "is_hidden": achievement.is_hidden,
                "unlocked": unlocked_at is not None,
                "unlocked_at": unlocked_at,
            }
            for achievement, unlocked_at in rows
        ]

    # ========================================================================
    # EVENT LISTENERS
    # ========================================================================

    def register_listeners(self, bus: EventBus) -> None:
        """Evaluate achievements after every commit that can earn one."""
        bus.subscribe(
            "progress.answer_recorded",
            self._on_answer_recorded,
            priority=ListenerPriority.HIGH,
            identifier="achievements.on_answer_recorded",
        )
        bus.subscribe(
            "guest.session_claimed",
            self._on_session_claimed,
            priority=ListenerPriority.HIGH,
            identifier="achievements.on_session_claimed",
        )
        bus.subscribe(
            "games.completed",
            self._on_game_completed,
            priority=ListenerPriority.HIGH,
            identifier="achievements.on_game_completed",
        )
        bus.subscribe(
            "games.streak_updated",
            self._on_streak_updated,
            priority=ListenerPriority.HIGH,
            identifier="achievements.on_streak_updated",
        )
        bus.subscribe(
            "daily.challenge_completed",
            self._on_daily_completed,
            priority=ListenerPriority.HIGH,
            identifier="achievements.on_daily_completed",
        )
        self.log.info("Achievement listeners registered")

    async def _on_answer_recorded(self, payload: EventPayload) -> List[str]:
        return await self._safe_evaluate(
            payload.get("user_id"),
            [
                AchievementEvent(
                    kind=AchievementEventKind.QUESTION_ANSWERED,
                    question_id=payload.get("question_id"),
                    correct=payload.get("correct"),
                )
            ],
        )

    async def _on_session_claimed(self, payload: EventPayload) -> List[str]:
        events: List[AchievementEvent] = []
        answers = payload.get("answers") or []
        if answers:
            last = answers[-1]
            events.append(
                AchievementEvent(
                    kind=AchievementEventKind.QUESTION_ANSWERED,
                    question_id=last.get("question_id"),
                    correct=last.get("correct"),
                )
            )
        if payload.get("daily_correct") is not None:
            events.append(
                AchievementEvent(
                    kind=AchievementEventKind.DAILY_CHALLENGE_COMPLETED,
                    challenge_id=payload.get("challenge_id"),
                    correct=payload.get("daily_correct"),
                )
            )
        if payload.get("game_status") == GameStatus.COMPLETED.value:
            events.append(
                AchievementEvent(
                    kind=AchievementEventKind.GAME_COMPLETED,
                    game_id=payload.get("game_id"),
                    final_score=payload.get("final_score"),
                )
            )
        return await self._safe_evaluate(payload.get("user_id"), events)

    async def _on_game_completed(self, payload: EventPayload) -> List[str]:
        return await self._safe_evaluate(
            payload.get("user_id"),
            [
                AchievementEvent(
                    kind=AchievementEventKind.GAME_COMPLETED,
                    game_id=payload.get("game_id"),
                    final_score=payload.get("final_score"),
                )
            ],
        )

    async def _on_streak_updated(self, payload: EventPayload) -> List[str]:
        previous = payload.get("previous_game_date")
        return await self._safe_evaluate(
            payload.get("user_id"),
            [
                AchievementEvent(
                    kind=AchievementEventKind.STREAK_UPDATED,
                    current_streak=payload.get("current_streak"),
                    previous_game_date=date.fromisoformat(previous) if previous else None,
                )
            ],
        )

    async def _on_daily_completed(self, payload: EventPayload) -> List[str]:
        completed_at = payload.get("completed_at")
        return await self._safe_evaluate(
            payload.get("user_id"),
            [
                AchievementEvent(
                    kind=AchievementEventKind.DAILY_CHALLENGE_COMPLETED,
                    challenge_id=payload.get("challenge_id"),
                    correct=payload.get("correct"),
                    occurred_at=(
                        datetime.fromisoformat(completed_at) if completed_at else utc_now()
                    ),
                )
            ],
        )

    async def _safe_evaluate(
        self, user_id: Optional[str], events: Iterable[AchievementEvent]
    ) -> List[str]:
        unlocked: List[str] = []
        if not user_id:
            return unlocked
        for event in events:
            try:
                unlocked.extend(await self.evaluate(user_id, event))
            except Exception as exc:
                self.log_error(
                    "evaluate_achievements",
                    exc,
                    user_id=user_id,
                    event_kind=event.kind.value,
                )
        return unlocked

    # ========================================================================
    # INTERNAL
    # ========================================================================

    async def _unlock(self, user_id: str, achievement_id: str) -> bool:
        """Insert the unlock row; False when it already existed."""
        try:
            async with DatabaseService.get_transaction() as session:
                result = await session.execute(
                    DatabaseService.dialect_insert(session, UserAchievement.__table__)
                    .values(
                        id=new_id(),
                        user_id=user_id,
                        achievement_id=achievement_id,
                        unlocked_at=utc_now(),
                    )
                    .on_conflict_do_nothing(index_elements=["user_id", "achievement_id"])
                )
        except IntegrityError:
            return False
        return result.rowcount == 1

    async def _load_stats(
        self, session: AsyncSession, user_id: str, event: AchievementEvent
    ) -> AchievementStats:
        history = select(GameHistory).where(GameHistory.user_id == user_id)
        correct_history = (
            select(GameHistory.id)
            .join(Question, Question.id == GameHistory.question_id)
            .where(GameHistory.user_id == user_id, GameHistory.correct.is_(True))
        )

        total_questions = await session.scalar(_count(history))
        total_correct = await session.scalar(
            _count(history.where(GameHistory.correct.is_(True)))
        )
        total_triple_stumpers = await session.scalar(
            _count(correct_history.where(Question.was_triple_stumper.is_(True)))
        )
        final_jeopardy_correct = await session.scalar(
            _count(correct_history.where(Question.round == Round.FINAL))
        )
        total_games = await session.scalar(
            _count(
                select(Game.id).where(
                    Game.user_id == user_id, Game.status == GameStatus.COMPLETED
                )
            )
        )
        daily_completed = await session.scalar(
            _count(select(UserDailyChallenge.id).where(UserDailyChallenge.user_id == user_id))
        )

        challenge_dates = (
            await session.scalars(
                select(DailyChallenge.date)
                .join(UserDailyChallenge, UserDailyChallenge.challenge_id == DailyChallenge.id)
                .where(UserDailyChallenge.user_id == user_id)
                .order_by(DailyChallenge.date.desc())
                .limit(DAILY_STREAK_LOOKBACK)
            )
        ).all()

        category_rows = (
            await session.execute(
                select(Question.knowledge_category, func.count(distinct(GameHistory.question_id)))
                .join(Question, Question.id == GameHistory.question_id)
                .where(GameHistory.user_id == user_id, GameHistory.correct.is_(True))
                .group_by(Question.knowledge_category)
            )
        ).all()
        category_counts = {category: 0 for category in KnowledgeCategory}
        category_counts.update({category: count for category, count in category_rows})

        recent_results = (
            await session.scalars(
                select(GameHistory.correct)
                .where(GameHistory.user_id == user_id)
                .order_by(GameHistory.timestamp.desc(), GameHistory.id.desc())
                .limit(ACCURACY_WINDOW)
            )
        ).all()

        game_questions: tuple = ()
        if event.game_id is not None:
            rows = (
                await session.execute(
                    select(Question.round, GameQuestion.answered, GameQuestion.correct)
                    .join(Question, Question.id == GameQuestion.question_id)
                    .where(GameQuestion.game_id == event.game_id)
                )
            ).all()
            game_questions = tuple(
                GameQuestionState(round=r, answered=answered, correct=correct)
                for r, answered, correct in rows
            )

        return AchievementStats(
            total_questions=total_questions or 0,
            total_correct=total_correct or 0,
            total_triple_stumpers=total_triple_stumpers or 0,
            total_games=total_games or 0,
            daily_challenges_completed=daily_completed or 0,
            daily_challenge_streak=daily_challenge_streak(
                challenge_dates, get_active_challenge_date(event.occurred_at)
            ),
            final_jeopardy_correct=final_jeopardy_correct or 0,
            category_counts=category_counts,
            recent_results=tuple(recent_results),
            game_questions=game_questions,
        )
