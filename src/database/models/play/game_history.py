"""
GameHistory: append-only fact: one row per answered question per user.
Schema only. Rows are removed only by an explicit full-history reset.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin, UTCDateTime, utc_now


class GameHistory(Base, IdMixin):
    __tablename__ = "game_history"
    __table_args__ = (
        Index("ix_game_history_user_timestamp", "user_id", "timestamp"),
        Index("ix_game_history_user_correct", "user_id", "correct"),
    )

    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    user_answer: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utc_now
    )
