"""
Achievement / UserAchievement: milestone catalog and unlocks.
Schema only.

A UserAchievement row's presence means "unlocked"; the unique
(user_id, achievement_id) pair is the idempotency boundary for unlocks.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin, TimestampMixin, UTCDateTime, enum_column, utc_now
from src.database.models.enums import AchievementCategory


class Achievement(Base, IdMixin, TimestampMixin):
    __tablename__ = "achievements"

    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String(16), nullable=False, default="")
    category: Mapped[AchievementCategory] = mapped_column(
        enum_column(AchievementCategory), nullable=False
    )
    is_hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tier: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


class UserAchievement(Base, IdMixin):
    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievements_user_achievement"),
    )

    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    achievement_id: Mapped[str] = mapped_column(
        ForeignKey("achievements.id", ondelete="CASCADE"),
        nullable=False,
    )
    unlocked_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utc_now
    )
