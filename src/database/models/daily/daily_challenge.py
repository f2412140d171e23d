"""
DailyChallenge / UserDailyChallenge: one final-round question per date.
Schema only.

Invariants enforced by unique constraints:
- a date maps to at most one question
- a question is used for at most one date, ever
- one completion per user per challenge
"""

from __future__ import annotations

import datetime as dt
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Date, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, IdMixin, TimestampMixin, UTCDateTime, utc_now

if TYPE_CHECKING:
    from src.database.models.content import Question


class DailyChallenge(Base, IdMixin, TimestampMixin):
    __tablename__ = "daily_challenges"

    date: Mapped[dt.date] = mapped_column(Date, nullable=False, unique=True)
    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    air_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True, index=True)
    episode_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)

    question: Mapped["Question"] = relationship("Question")


class UserDailyChallenge(Base, IdMixin):
    __tablename__ = "user_daily_challenges"
    __table_args__ = (
        UniqueConstraint("user_id", "challenge_id", name="uq_user_daily_challenges_user_challenge"),
    )

    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    challenge_id: Mapped[str] = mapped_column(
        ForeignKey("daily_challenges.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    user_answer: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utc_now
    )
