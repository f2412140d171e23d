"""
Guest Config Service
====================

Purpose
-------
Reads and updates the GuestConfig singleton: the trial quotas and the
session time-to-live that bound what an unauthenticated player can do.

Domain
------
- One row, id ``"default"``, created with defaults on first read
- Creation races are settled by ``INSERT ... ON CONFLICT DO NOTHING``
  followed by a re-read; no caller ever sees two rows
- Reads return a frozen ``GuestConfigSnapshot`` that callers pass
  explicitly to policy code instead of consulting a global

Events
------
- ``guest.config_updated`` after an update commits
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from sqlalchemy import update

from src.core.database.base import utc_now
from src.core.database.service import DatabaseService
from src.core.validation.input_validator import InputValidator
from src.database.models import GUEST_CONFIG_ID, GuestConfig
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.event.bus import EventBus


@dataclass(frozen=True)
class GuestConfigSnapshot:
    """Immutable view of the guest thresholds; defaults match a fresh row."""

    random_game_max_questions_before_auth: int = 1
    random_game_max_categories_before_auth: Optional[int] = None
    random_game_max_rounds_before_auth: Optional[int] = None
    random_game_max_games_before_auth: int = 0
    random_question_max_questions_before_auth: int = 1
    random_question_max_categories_before_auth: Optional[int] = None
    daily_challenge_guest_enabled: bool = False
    daily_challenge_guest_appears_on_leaderboard: bool = False
    daily_challenge_min_lookback_days: int = 365
    daily_challenge_seasons: Optional[Tuple[int, ...]] = None
    time_to_authenticate_minutes: int = 1440

    @classmethod
    def from_row(cls, row: GuestConfig) -> "GuestConfigSnapshot":
        values = {f.name: getattr(row, f.name) for f in fields(cls)}
        if values["daily_challenge_seasons"] is not None:
            values["daily_challenge_seasons"] = tuple(values["daily_challenge_seasons"])
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.daily_challenge_seasons is not None:
            data["daily_challenge_seasons"] = list(self.daily_challenge_seasons)
        return data


# field -> (min, max); None bound means unbounded
_INT_FIELDS: Dict[str, Tuple[int, Optional[int]]] = {
    "random_game_max_questions_before_auth": (0, None),
    "random_game_max_games_before_auth": (0, None),
    "random_question_max_questions_before_auth": (0, None),
    "daily_challenge_min_lookback_days": (30, 1825),
    "time_to_authenticate_minutes": (1, None),
}
_NULLABLE_CAP_FIELDS = (
    "random_game_max_categories_before_auth",
    "random_game_max_rounds_before_auth",
    "random_question_max_categories_before_auth",
)
_BOOL_FIELDS = (
    "daily_challenge_guest_enabled",
    "daily_challenge_guest_appears_on_leaderboard",
)


class GuestConfigService(BaseService):
    """
    Public Methods
    --------------
    - get_config() -> Current snapshot, creating the default row if absent
    - update_config() -> Validate and apply threshold changes
    """

    def __init__(
        self,
        config: Any,
        event_bus: Optional[EventBus],
        logger: Logger,
    ) -> None:
        super().__init__(config, event_bus, logger)

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def get_config(
        self, session: Optional[AsyncSession] = None
    ) -> GuestConfigSnapshot:
        """
        Current guest thresholds.

        The row is created with defaults if it does not exist yet. Pass
        ``session`` to read inside a caller's transaction.
        """
        if session is not None:
            return GuestConfigSnapshot.from_row(await self._load_or_create(session))

        async with DatabaseService.get_session() as read_session:
            row = await read_session.get(GuestConfig, GUEST_CONFIG_ID)
            if row is not None:
                return GuestConfigSnapshot.from_row(row)

        async with DatabaseService.get_transaction() as write_session:
            row = await self._load_or_create(write_session)
            return GuestConfigSnapshot.from_row(row)

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def update_config(self, **changes: Any) -> GuestConfigSnapshot:
        """
        Apply threshold changes.

        Args:
            **changes: GuestConfig fields to set. Category/round caps accept
                None (no cap); ``daily_challenge_seasons`` accepts None or a
                list of season numbers.

        Raises:
            ValidationError: Unknown field or value out of range
        """
        validated = self._validate_changes(changes)
        self.log_operation("update_guest_config", fields=sorted(validated))

        async with DatabaseService.get_transaction() as session:
            await self._insert_default(session)
            if validated:
                await session.execute(
                    update(GuestConfig)
                    .where(GuestConfig.id == GUEST_CONFIG_ID)
                    .values(**validated, updated_at=utc_now())
                    .execution_options(synchronize_session=False)
                )
            row = await session.get(
                GuestConfig, GUEST_CONFIG_ID, populate_existing=True
            )
            snapshot = GuestConfigSnapshot.from_row(row)

        await self.emit_event(
            "guest.config_updated",
            {"fields": sorted(validated), "config": snapshot.to_dict()},
        )
        return snapshot

    # ========================================================================
    # INTERNAL
    # ========================================================================

    async def _insert_default(self, session: AsyncSession) -> bool:
        result = await session.execute(
            DatabaseService.dialect_insert(session, GuestConfig.__table__)
            .values(id=GUEST_CONFIG_ID)
            .on_conflict_do_nothing(index_elements=["id"])
        )
        created = result.rowcount == 1
        if created:
            self.log.info(
                "Default guest config created",
                extra={"config_id": GUEST_CONFIG_ID},
            )
        return created

    async def _load_or_create(self, session: AsyncSession) -> GuestConfig:
        row = await session.get(GuestConfig, GUEST_CONFIG_ID)
        if row is None:
            await self._insert_default(session)
            row = await session.get(GuestConfig, GUEST_CONFIG_ID)
        return row

    @staticmethod
    def _validate_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
        validated: Dict[str, Any] = {}
        for name, value in changes.items():
            if name in _INT_FIELDS:
                low, high = _INT_FIELDS[name]
                validated[name] = InputValidator.validate_integer(
                    value, name, min_value=low, max_value=high
                )
            elif name in _NULLABLE_CAP_FIELDS:
                validated[name] = InputValidator.validate_optional_non_negative_integer(
                    value, name
                )
            elif name in _BOOL_FIELDS:
                validated[name] = InputValidator.validate_bool(value, name)
            elif name == "daily_challenge_seasons":
                if value is None:
                    validated[name] = None
                elif isinstance(value, (list, tuple)):
                    validated[name] = [
                        InputValidator.validate_positive_integer(season, name)
                        for season in value
                    ]
                else:
                    raise ValidationError(name, "Must be a list of season numbers or null")
            else:
                raise ValidationError(name, "Unknown guest config field")
        return validated
