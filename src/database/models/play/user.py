"""
User: minimal per-user state owned by the engine (streaks).
Schema only.

Identity lives with the external auth provider; ``id`` is that provider's
user id. Other tables reference user ids as plain strings so recording an
answer never requires this row to exist.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import Date, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_game_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
