"""
Service Container
=================

Purpose
-------
Dependency injection container for the engine's domain services.
Builds one instance of each service around a shared EventBus and wires
the achievement listeners onto it.

Responsibilities
----------------
- Initialize all domain services in dependency order
- Register event listeners (achievement evaluation)
- Provide access to services throughout the application

Non-Responsibilities
--------------------
- Database, logging and catalog lifecycle (delegated to ApplicationContext)
- Business logic

Architecture Notes
------------------
- Every domain service takes ``(config, event_bus, logger)`` first;
  collaborators are passed as further keyword arguments
- Dependency order: answers/progress/guest config → guest sessions →
  guest play/claim → daily → games → achievements; disputes follow overrides
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Dict, Optional

from src.core.logging.logger import get_logger
from src.modules.achievements import AchievementService
from src.modules.answers import AnswerDisputeService, AnswerOverrideService
from src.modules.daily import DailyChallengeService
from src.modules.games import GameService
from src.modules.guest import (
    GuestClaimService,
    GuestConfigService,
    GuestPlayService,
    GuestSessionService,
)
from src.modules.progress import ProgressService

if TYPE_CHECKING:
    from logging import Logger

    from src.core.event.bus import EventBus


class ServiceContainer:
    """
    Usage:
        container = ServiceContainer(Config, event_bus, logger)
        await container.initialize()
        await container.progress.record_answer(...)
    """

    def __init__(
        self,
        config: Any,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        self._config = config
        self._event_bus = event_bus
        self._logger = logger
        self._services: Dict[str, Any] = {}
        self._initialized = False

        self._service_init_times: Dict[str, float] = {}
        self._init_start: Optional[float] = None
        self._init_end: Optional[float] = None

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def initialize(self) -> None:
        """Build every service and register listeners on the event bus."""
        if self._initialized:
            self._logger.warning("ServiceContainer already initialized")
            return

        self._init_start = time.perf_counter()
        self._logger.info("Service container initialization starting...")

        try:
            overrides = self._create_service("answer_overrides", AnswerOverrideService)
            self._create_service(
                "answer_disputes", AnswerDisputeService, override_service=overrides
            )
            progress = self._create_service("progress", ProgressService)
            guest_config = self._create_service("guest_config", GuestConfigService)
            guest_sessions = self._create_service(
                "guest_sessions",
                GuestSessionService,
                config_service=guest_config,
            )
            self._create_service(
                "guest_play",
                GuestPlayService,
                config_service=guest_config,
                session_service=guest_sessions,
                override_service=overrides,
            )
            self._create_service(
                "guest_claim",
                GuestClaimService,
                progress_service=progress,
            )
            self._create_service(
                "daily_challenge",
                DailyChallengeService,
                guest_config_service=guest_config,
                guest_session_service=guest_sessions,
                override_service=overrides,
            )
            self._create_service("games", GameService)
            achievements = self._create_service("achievements", AchievementService)

            achievements.register_listeners(self._event_bus)

            self._init_end = time.perf_counter()
            self._initialized = True

            extra_data: Dict[str, Any] = {
                "total_time_seconds": round(self._init_end - self._init_start, 3),
                "service_count": len(self._service_init_times),
                "listener_count": self._event_bus.get_listener_count(),
            }
            if self._service_init_times:
                slowest = max(
                    self._service_init_times,
                    key=self._service_init_times.__getitem__,
                )
                extra_data["slowest_service"] = slowest
                extra_data["slowest_duration"] = round(self._service_init_times[slowest], 3)

            self._logger.info("Service container initialized successfully", extra=extra_data)

        except Exception as e:
            self._logger.critical(
                "Service container initialization failed",
                exc_info=True,
                extra={"error": str(e)},
            )
            raise

    def _create_service(self, name: str, cls: type, **dependencies: Any) -> Any:
        start = time.perf_counter()
        try:
            instance = cls(
                config=self._config,
                event_bus=self._event_bus,
                logger=get_logger(f"{cls.__module__}.{cls.__name__}"),
                **dependencies,
            )
        except Exception:
            self._logger.error(f"Failed to initialize {name}", exc_info=True)
            raise

        duration = time.perf_counter() - start
        self._services[name] = instance
        self._service_init_times[name] = duration
        self._logger.debug(f"Initialized {name} in {duration:.3f}s")
        return instance

    async def shutdown(self) -> None:
        if not self._initialized:
            return

        self._logger.info("Shutting down service container...")
        self._event_bus.clear()
        await self._event_bus.drain()
        self._services.clear()
        self._initialized = False
        self._logger.info("Service container shut down")

    async def health_check(self) -> Dict[str, bool | float | int | None]:
        return {
            "initialized": self._initialized,
            "service_count": len(self._services),
            "total_init_time_seconds": (
                round(self._init_end - self._init_start, 3)
                if self._init_start and self._init_end
                else None
            ),
        }

    def _get(self, name: str) -> Any:
        if not self._initialized or name not in self._services:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return self._services[name]

    # ========================================================================
    # Services
    # ========================================================================

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def answer_overrides(self) -> AnswerOverrideService:
        return self._get("answer_overrides")

    @property
    def answer_disputes(self) -> AnswerDisputeService:
        return self._get("answer_disputes")

    @property
    def progress(self) -> ProgressService:
        return self._get("progress")

    @property
    def guest_config(self) -> GuestConfigService:
        return self._get("guest_config")

    @property
    def guest_sessions(self) -> GuestSessionService:
        return self._get("guest_sessions")

    @property
    def guest_play(self) -> GuestPlayService:
        return self._get("guest_play")

    @property
    def guest_claim(self) -> GuestClaimService:
        return self._get("guest_claim")

    @property
    def daily_challenge(self) -> DailyChallengeService:
        return self._get("daily_challenge")

    @property
    def games(self) -> GameService:
        return self._get("games")

    @property
    def achievements(self) -> AchievementService:
        return self._get("achievements")
