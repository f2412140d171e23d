"""
Guest Session Service
=====================

Purpose
-------
Creates and reads the short-lived records that hold anonymous play until
the player signs in and claims them.

Domain
------
- A session is actionable only while ``now < expires_at`` and it has not
  been claimed; it is never revoked, it simply stops being actionable
- ``get_session`` returns None for a missing, expired or claimed session
  and never says which
- ``expires_at`` is ``now + time_to_authenticate_minutes`` from the guest
  config read for that operation
- Trial quotas are checked by the pure policy in ``policy.py`` against a
  config snapshot fetched once per call

Events
------
- ``guest.session_created`` after a session created in its own
  transaction commits
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from src.core.database.base import utc_now
from src.core.database.service import DatabaseService
from src.core.logging.logger import get_logger
from src.core.validation.input_validator import InputValidator
from src.database.models import GuestGame, GuestSession, GuestSessionKind
from src.modules.guest.payloads import GuestPayload, payload_to_json
from src.modules.guest.policy import LimitDecision, check_limit
from src.modules.shared.base_repository import BaseRepository
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.event.bus import EventBus
    from src.modules.guest.config_service import GuestConfigService, GuestConfigSnapshot


class GuestSessionService(BaseService):
    """
    Public Methods
    --------------
    - create_session() -> New session expiring after the configured TTL
    - get_session() -> Actionable session or None
    - check_limit() -> Trial quota decision for a guest
    - get_session_stats() -> Active/claimed/expired counts and conversion
    """

    def __init__(
        self,
        config: Any,
        event_bus: Optional[EventBus],
        logger: Logger,
        config_service: GuestConfigService,
    ) -> None:
        super().__init__(config, event_bus, logger)
        self._guest_config = config_service
        self._repo = BaseRepository(
            GuestSession, get_logger(f"{__name__}.GuestSessionRepository")
        )

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def create_session(
        self,
        kind: GuestSessionKind | str,
        payload: Optional[GuestPayload] = None,
        *,
        config: Optional[GuestConfigSnapshot] = None,
        session: Optional[AsyncSession] = None,
    ) -> GuestSession:
        """
        Persist a new guest session.

        Args:
            kind: Session kind
            payload: Initial payload matching ``kind``
            config: Snapshot already fetched by the caller, if any
            session: Join this transaction; no event is published then

        Raises:
            ValidationError: Unknown kind or payload of another kind
        """
        kind = InputValidator.validate_enum(kind, "kind", GuestSessionKind)
        try:
            stored_payload = payload_to_json(kind, payload)
        except ValueError as exc:
            raise ValidationError("payload", str(exc)) from exc

        if session is not None:
            return await self._create(session, kind, stored_payload, config)

        async with DatabaseService.get_transaction() as own_session:
            guest_session = await self._create(own_session, kind, stored_payload, config)

        await self.emit_event(
            "guest.session_created",
            {
                "session_id": guest_session.id,
                "kind": kind.value,
                "expires_at": guest_session.expires_at.isoformat(),
            },
        )
        return guest_session

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def get_session(self, session_id: str) -> Optional[GuestSession]:
        """
        The session with its guest board loaded, or None when it is missing,
        expired or already claimed.
        """
        try:
            session_id = InputValidator.validate_entity_id(session_id, "session_id")
        except ValidationError:
            return None

        async with DatabaseService.get_session() as session:
            guest_session = await self.load_actionable(session, session_id)

        if guest_session is None:
            self.log.debug(
                "Guest session not actionable",
                extra={"session_id": session_id, "operation": "get_session"},
            )
        return guest_session

    async def load_actionable(
        self, session: AsyncSession, session_id: str
    ) -> Optional[GuestSession]:
        """``get_session`` against a caller-supplied store session."""
        guest_session = await session.get(
            GuestSession,
            session_id,
            options=[
                selectinload(GuestSession.guest_game).selectinload(GuestGame.questions)
            ],
        )
        if guest_session is None or not guest_session.is_actionable(utc_now()):
            return None
        return guest_session

    async def check_limit(
        self,
        kind: GuestSessionKind | str,
        current_count: int,
        category_count: Optional[int] = None,
        round_count: Optional[int] = None,
    ) -> LimitDecision:
        """
        Whether a guest may take one more step of ``kind``.

        Reads the guest config once and applies the pure policy; mutates
        nothing.
        """
        kind = InputValidator.validate_enum(kind, "kind", GuestSessionKind)
        current_count = InputValidator.validate_non_negative_integer(
            current_count, "current_count"
        )
        category_count = InputValidator.validate_optional_non_negative_integer(
            category_count, "category_count"
        )
        round_count = InputValidator.validate_optional_non_negative_integer(
            round_count, "round_count"
        )

        snapshot = await self._guest_config.get_config()
        decision = check_limit(kind, current_count, snapshot, category_count, round_count)
        if not decision.allowed:
            self.log.info(
                "Guest limit reached",
                extra={
                    "kind": kind.value,
                    "current_count": current_count,
                    "reason": decision.reason,
                },
            )
        return decision

    async def get_session_stats(self) -> Dict[str, Any]:
        """
        Session counts for operators.

        Returns:
            Dict with active, claimed and expired totals, active sessions by
            kind, and the last 24h unclaimed/claimed counts with the
            resulting conversion rate (percentage).
        """
        self.log_operation("get_session_stats")
        now = utc_now()
        day_ago = now - timedelta(hours=24)
        unclaimed = GuestSession.claimed_at.is_(None)

        async with DatabaseService.get_session() as session:
            active = await self._repo.count(
                session, GuestSession.expires_at > now, unclaimed
            )
            claimed = await self._repo.count(session, GuestSession.claimed_at.is_not(None))
            expired = await self._repo.count(
                session, GuestSession.expires_at <= now, unclaimed
            )
            by_kind_rows = (
                await session.execute(
                    select(GuestSession.kind, func.count())
                    .where(GuestSession.expires_at > now, unclaimed)
                    .group_by(GuestSession.kind)
                )
            ).all()
            recent_unclaimed = await self._repo.count(
                session,
                GuestSession.created_at >= day_ago,
                GuestSession.expires_at > now,
                unclaimed,
            )
            recent_claimed = await self._repo.count(
                session, GuestSession.claimed_at >= day_ago
            )

        recent_total = recent_unclaimed + recent_claimed
        return {
            "active": active,
            "claimed": claimed,
            "expired": expired,
            "by_kind": {kind.value: count for kind, count in by_kind_rows},
            "recent": {
                "unclaimed": recent_unclaimed,
                "claimed": recent_claimed,
                "conversion_rate": (
                    round(recent_claimed / recent_total * 100, 2) if recent_total else 0.0
                ),
            },
        }

    # ========================================================================
    # INTERNAL
    # ========================================================================

    async def _create(
        self,
        session: AsyncSession,
        kind: GuestSessionKind,
        payload: Optional[Dict[str, Any]],
        config: Optional[GuestConfigSnapshot],
    ) -> GuestSession:
        if config is None:
            config = await self._guest_config.get_config(session)

        guest_session = GuestSession(
            kind=kind,
            payload=payload,
            expires_at=utc_now() + timedelta(minutes=config.time_to_authenticate_minutes),
        )
        session.add(guest_session)
        await session.flush()

        self.log.info(
            "Guest session created",
            extra={
                "session_id": guest_session.id,
                "kind": kind.value,
                "ttl_minutes": config.time_to_authenticate_minutes,
            },
        )
        return guest_session
