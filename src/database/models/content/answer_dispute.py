"""
AnswerDispute: a user's claim that a rejected answer should be accepted.
Schema only. Approval produces an AnswerOverride with source DISPUTE.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin, TimestampMixin, UTCDateTime, enum_column
from src.database.models.enums import DisputeMode, DisputeStatus, Round


def pending_dispute_key(
    user_id: str, question_id: str, mode: DisputeMode, game_id: Optional[str]
) -> str:
    return f"{user_id}:{question_id}:{mode.value}:{game_id or '-'}"


class AnswerDispute(Base, IdMixin, TimestampMixin):
    """
    ``pending_key`` is set only while the dispute is PENDING and is unique,
    so one user holds at most one open dispute per answer (NULLs never
    collide once resolved).
    """

    __tablename__ = "answer_disputes"
    __table_args__ = (
        Index("ix_answer_disputes_status_created", "status", "created_at"),
    )

    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    game_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    mode: Mapped[DisputeMode] = mapped_column(enum_column(DisputeMode), nullable=False)
    round: Mapped[Round] = mapped_column(enum_column(Round), nullable=False)
    user_answer: Mapped[str] = mapped_column(Text, nullable=False)
    system_was_correct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    status: Mapped[DisputeStatus] = mapped_column(
        enum_column(DisputeStatus), nullable=False, default=DisputeStatus.PENDING
    )
    pending_key: Mapped[Optional[str]] = mapped_column(
        String(400), nullable=True, unique=True
    )

    admin_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    admin_comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    override_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("answer_overrides.id", ondelete="SET NULL"),
        nullable=True,
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
