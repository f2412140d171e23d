"""
Game Service
============

Purpose
-------
Finishes a user's board game and keeps the user's daily play streak.

Domain
------
- Completion is a conditional UPDATE (``status != COMPLETED``), so of two
  concurrent completions exactly one proceeds; the other sees the game
  already completed and returns without side effects
- ``score`` is frozen from ``current_score`` at completion
- Streak: playing again the same day leaves it unchanged, the next
  consecutive day extends it, any gap restarts it at 1;
  ``longest_streak`` never decreases
- The User row is created on first completion

Events
------
- ``games.completed`` with game_id, user_id, final_score
- ``games.streak_updated`` with current/longest streak and the previous
  game date (ISO, or None on a first game)
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy import update

from src.core.database.base import utc_now
from src.core.database.service import DatabaseService
from src.core.validation.input_validator import InputValidator
from src.database.models import Game, GameStatus, User
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import InvalidOperationError, NotFoundError

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.event.bus import EventBus


def next_streak(current: int, last_game_date: Optional[date], today: date) -> int:
    """
    >>> next_streak(4, date(2025, 1, 9), date(2025, 1, 10))
    5
    >>> next_streak(4, date(2025, 1, 7), date(2025, 1, 10))
    1
    """
    if last_game_date == today:
        return max(current, 1)
    if last_game_date == today - timedelta(days=1):
        return current + 1
    return 1


class GameService(BaseService):
    """
    Public Methods
    --------------
    - complete_game() -> Finish a game and update the user's streak
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

    async def complete_game(
        self,
        game_id: str,
        user_id: str,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Mark a game completed and update the owner's streak.

        Args:
            game_id: Game to complete
            user_id: Caller; must own the game
            today: Calendar date of play (defaults to the current UTC date)

        Returns:
            Dict with game_id, final_score, already_completed and, for a
            fresh completion, current_streak, longest_streak

        Raises:
            NotFoundError: Unknown game
            InvalidOperationError: Game owned by another user
        """
        game_id = InputValidator.validate_entity_id(game_id, "game_id")
        user_id = InputValidator.validate_entity_id(user_id, "user_id")
        today = InputValidator.validate_date(today or utc_now().date(), "today")

        self.log_operation("complete_game", game_id=game_id, user_id=user_id)

        async with DatabaseService.get_transaction() as session:
            result = await session.execute(
                update(Game)
                .where(
                    Game.id == game_id,
                    Game.user_id == user_id,
                    Game.status != GameStatus.COMPLETED,
                )
                .values(
                    status=GameStatus.COMPLETED,
                    completed=True,
                    score=Game.current_score,
                    updated_at=utc_now(),
                )
                .execution_options(synchronize_session=False)
            )
            game = await session.get(Game, game_id, populate_existing=True)
            if game is None:
                raise NotFoundError("Game", game_id)
            if game.user_id != user_id:
                raise InvalidOperationError("complete_game", "Game belongs to another user")

            if result.rowcount != 1:
                self.log.info(
                    "Game already completed",
                    extra={"game_id": game_id, "user_id": user_id},
                )
                return {
                    "game_id": game_id,
                    "final_score": game.score,
                    "already_completed": True,
                }

            final_score = game.score
            previous_game_date, current_streak, longest_streak = await self._update_streak(
                session, user_id, today
            )

        self.log.info(
            "Game completed",
            extra={
                "game_id": game_id,
                "user_id": user_id,
                "final_score": final_score,
                "current_streak": current_streak,
            },
        )
        await self.emit_event(
            "games.completed",
            {"game_id": game_id, "user_id": user_id, "final_score": final_score},
        )
        await self.emit_event(
            "games.streak_updated",
            {
                "user_id": user_id,
                "current_streak": current_streak,
                "longest_streak": longest_streak,
                "previous_game_date": (
                    previous_game_date.isoformat() if previous_game_date else None
                ),
            },
        )
        return {
            "game_id": game_id,
            "final_score": final_score,
            "already_completed": False,
            "current_streak": current_streak,
            "longest_streak": longest_streak,
        }

    # ========================================================================
    # INTERNAL
    # ========================================================================

    async def _update_streak(
        self, session: AsyncSession, user_id: str, today: date
    ) -> tuple[Optional[date], int, int]:
        now = utc_now()
        await session.execute(
            DatabaseService.dialect_insert(session, User.__table__)
            .values(id=user_id, current_streak=0, longest_streak=0, created_at=now, updated_at=now)
            .on_conflict_do_nothing(index_elements=["id"])
        )
        user = await DatabaseService.get_locked_entity(session, User, user_id)

        previous_game_date = user.last_game_date
        user.current_streak = next_streak(user.current_streak, previous_game_date, today)
        user.longest_streak = max(user.longest_streak, user.current_streak)
        if previous_game_date is None or today > previous_game_date:
            user.last_game_date = today
        user.updated_at = now
        return previous_game_date, user.current_streak, user.longest_streak
