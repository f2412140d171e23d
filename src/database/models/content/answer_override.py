"""
AnswerOverride: an additional accepted phrasing for one question.
Schema only. Append-only; the canonical answer is never touched.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin, TimestampMixin, enum_column
from src.database.models.enums import OverrideSource


class AnswerOverride(Base, IdMixin, TimestampMixin):
    """
    ``text`` is stored already normalized, so (question_id, text) is
    unique per distinct accepted phrasing.
    """

    __tablename__ = "answer_overrides"
    __table_args__ = (
        UniqueConstraint("question_id", "text", name="uq_answer_overrides_question_text"),
    )

    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    text: Mapped[str] = mapped_column(String(500), nullable=False)
    created_by_user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    source: Mapped[OverrideSource] = mapped_column(
        enum_column(OverrideSource), nullable=False, default=OverrideSource.ADMIN
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
