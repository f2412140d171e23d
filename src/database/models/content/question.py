"""
Question: immutable trivia item.
Schema only. Rows are supplied by the content pipeline; read-only here.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, IdMixin, enum_column
from src.database.models.enums import KnowledgeCategory, Round

if TYPE_CHECKING:
    from .category import Category


class Question(Base, IdMixin):
    """
    A clue and its canonical answer.

    Schema-only:
    - question / answer (canonical answer text)
    - value (board dollar value; NULL for final-round items)
    - category_id (FK to categories)
    - knowledge_category, round
    - air_date, season, episode_id (source episode, used by the daily
      challenge scheduler to avoid re-picking an episode too soon)
    - was_triple_stumper (no contestant answered it on air)
    """

    __tablename__ = "questions"
    __table_args__ = (
        Index("ix_questions_round_air_date", "round", "air_date"),
        Index("ix_questions_knowledge_category", "knowledge_category"),
    )

    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    value: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    category_id: Mapped[str] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    knowledge_category: Mapped[KnowledgeCategory] = mapped_column(
        enum_column(KnowledgeCategory),
        nullable=False,
        default=KnowledgeCategory.GENERAL_KNOWLEDGE,
    )
    round: Mapped[Round] = mapped_column(
        enum_column(Round), nullable=False, default=Round.SINGLE
    )

    air_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    season: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    episode_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    was_triple_stumper: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    category: Mapped["Category"] = relationship("Category")
