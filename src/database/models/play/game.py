"""
Game / GameQuestion: a user's board game and its per-question state.
Schema only.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, IdMixin, JSONType, TimestampMixin, enum_column
from src.database.models.enums import GameStatus, Round


class Game(Base, IdMixin, TimestampMixin):
    """
    A board game owned by one user.

    ``seed`` and ``config`` regenerate the same board, so an unfinished
    game stays resumable; per-question answered state lives in
    GameQuestion.
    """

    __tablename__ = "games"

    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    seed: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    config: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    status: Mapped[GameStatus] = mapped_column(
        enum_column(GameStatus), nullable=False, default=GameStatus.IN_PROGRESS
    )
    current_round: Mapped[Round] = mapped_column(
        enum_column(Round), nullable=False, default=Round.SINGLE
    )
    current_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    questions: Mapped[List["GameQuestion"]] = relationship(
        "GameQuestion",
        back_populates="game",
        cascade="all, delete-orphan",
    )


class GameQuestion(Base, IdMixin):
    __tablename__ = "game_questions"
    __table_args__ = (
        UniqueConstraint("game_id", "question_id", name="uq_game_questions_game_question"),
    )

    game_id: Mapped[str] = mapped_column(
        ForeignKey("games.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
    )
    answered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    correct: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    game: Mapped["Game"] = relationship("Game", back_populates="questions")
