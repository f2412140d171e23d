"""
GuestSession: short-lived anonymous play record.
Schema only.

A session is actionable only while ``now < expires_at`` and
``claimed_at IS NULL``. It is never revoked; it simply stops being
actionable.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, IdMixin, JSONType, TimestampMixin, UTCDateTime, enum_column
from src.database.models.enums import GuestSessionKind

if TYPE_CHECKING:
    from .guest_game import GuestGame


class GuestSession(Base, IdMixin, TimestampMixin):
    __tablename__ = "guest_sessions"
    __table_args__ = (
        Index("ix_guest_sessions_expires_claimed", "expires_at", "claimed_at"),
    )

    kind: Mapped[GuestSessionKind] = mapped_column(
        enum_column(GuestSessionKind), nullable=False
    )
    payload: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    claimed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    claimed_by_user_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    guest_game: Mapped[Optional["GuestGame"]] = relationship(
        "GuestGame",
        back_populates="guest_session",
        uselist=False,
    )

    def is_actionable(self, now: datetime) -> bool:
        return self.claimed_at is None and now < self.expires_at
