"""
UserProgress: running per-user, per-category tally.
Schema only.

Invariants (maintained by the progress recorder, the only writer):
- total equals the number of matching game_history rows
- 0 <= correct <= total
"""

from __future__ import annotations

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin, TimestampMixin


class UserProgress(Base, IdMixin, TimestampMixin):
    __tablename__ = "user_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "category_id", name="uq_user_progress_user_category"),
        CheckConstraint("correct >= 0 AND correct <= total", name="correct_within_total"),
    )

    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    category_id: Mapped[str] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
    )
    correct: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
