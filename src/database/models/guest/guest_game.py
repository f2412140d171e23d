"""
GuestGame / GuestGameQuestion: board state of a RANDOM_GAME guest session.
Schema only. Owned exclusively by its session until claimed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, IdMixin, JSONType, TimestampMixin, enum_column
from src.database.models.enums import GameStatus, Round

if TYPE_CHECKING:
    from .guest_session import GuestSession


class GuestGame(Base, IdMixin, TimestampMixin):
    __tablename__ = "guest_games"

    guest_session_id: Mapped[str] = mapped_column(
        ForeignKey("guest_sessions.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    seed: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, unique=True)
    config: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    status: Mapped[GameStatus] = mapped_column(
        enum_column(GameStatus), nullable=False, default=GameStatus.IN_PROGRESS
    )
    current_round: Mapped[Round] = mapped_column(
        enum_column(Round), nullable=False, default=Round.SINGLE
    )
    current_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    guest_session: Mapped["GuestSession"] = relationship(
        "GuestSession", back_populates="guest_game"
    )
    questions: Mapped[List["GuestGameQuestion"]] = relationship(
        "GuestGameQuestion",
        back_populates="guest_game",
        cascade="all, delete-orphan",
        order_by="GuestGameQuestion.created_at",
    )


class GuestGameQuestion(Base, IdMixin, TimestampMixin):
    __tablename__ = "guest_game_questions"
    __table_args__ = (
        UniqueConstraint(
            "guest_game_id", "question_id", name="uq_guest_game_questions_game_question"
        ),
    )

    guest_game_id: Mapped[str] = mapped_column(
        ForeignKey("guest_games.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
    )
    answered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    correct: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    guest_game: Mapped["GuestGame"] = relationship("GuestGame", back_populates="questions")
