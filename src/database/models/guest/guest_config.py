"""
GuestConfig: process-wide guest trial thresholds.
Schema only. Singleton row with id ``"default"``, created on first read.
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, JSONType, TimestampMixin

GUEST_CONFIG_ID = "default"


class GuestConfig(Base, TimestampMixin):
    """
    NULL category/round caps mean "no cap". Defaults mirror the values a
    fresh deployment starts with.
    """

    __tablename__ = "guest_config"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=GUEST_CONFIG_ID)

    random_game_max_questions_before_auth: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )
    random_game_max_categories_before_auth: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )
    random_game_max_rounds_before_auth: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )
    random_game_max_games_before_auth: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    random_question_max_questions_before_auth: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )
    random_question_max_categories_before_auth: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )
    daily_challenge_guest_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    daily_challenge_guest_appears_on_leaderboard: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    daily_challenge_min_lookback_days: Mapped[int] = mapped_column(
        Integer, nullable=False, default=365
    )
    daily_challenge_seasons: Mapped[Optional[List[int]]] = mapped_column(
        JSONType, nullable=True
    )
    time_to_authenticate_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1440
    )
