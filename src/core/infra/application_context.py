"""
Application Context (Kernel) - Stumper Infrastructure Orchestration
===================================================================

Purpose
-------
Central kernel that brings the engine up and down in the correct
dependency order.

Responsibilities
----------------
- Load and validate Config
- Start the logging subsystem
- Initialize the database subsystem (optionally creating the schema)
- Build the ServiceContainer around one EventBus
- Seed the achievement catalog
- Coordinate graceful shutdown in reverse order

Non-Responsibilities
--------------------
- Business logic (delegated to domain services)
- Request handling (the hosting web layer owns that)

Initialization Order (Critical):
    1. Config + logging
    2. Database subsystem
    3. ServiceContainer (EventBus + listeners)
    4. Achievement catalog seed

Shutdown Order (Reverse):
    1. ServiceContainer.shutdown()
    2. Database subsystem
    3. Logging
"""

from __future__ import annotations

import time
from typing import Optional

from src.core.config import Config
from src.core.database.bootstrap import (
    initialize_database_subsystem,
    shutdown_database_subsystem,
)
from src.core.event.bus import EventBus
from src.core.logging.logger import get_logger, setup_logging, shutdown_logging
from src.core.services.container import ServiceContainer

logger = get_logger(__name__)


class ApplicationContext:
    """
    Usage:
        context = ApplicationContext()
        await context.initialize()
        await context.services.progress.record_answer(...)
        await context.shutdown()

    Args:
        database_url: Overrides ``Config.DATABASE_URL``
        create_schema: Create missing tables at startup (development, tests)
        seed_catalog: Insert missing achievement definitions at startup
    """

    def __init__(
        self,
        *,
        database_url: Optional[str] = None,
        create_schema: bool = False,
        seed_catalog: bool = True,
    ) -> None:
        self._database_url = database_url
        self._create_schema = create_schema
        self._seed_catalog = seed_catalog
        self._event_bus: Optional[EventBus] = None
        self._service_container: Optional[ServiceContainer] = None
        self._initialized: bool = False

        logger.debug("ApplicationContext created")

    # ========================================================================
    # INITIALIZATION
    # ========================================================================

    async def initialize(self) -> None:
        """
        Raises:
            RuntimeError: If already initialized or initialization fails
        """
        if self._initialized:
            raise RuntimeError("ApplicationContext already initialized")

        Config.validate()
        setup_logging()

        logger.info("=" * 70)
        logger.info("APPLICATION CONTEXT INITIALIZATION")
        logger.info("=" * 70)

        start_time = time.perf_counter()

        try:
            db_start = time.perf_counter()
            await initialize_database_subsystem(
                url=self._database_url,
                verify_health=True,
                create_schema=self._create_schema,
            )
            logger.info(
                "✓ Database subsystem initialized (%.2fms)",
                (time.perf_counter() - db_start) * 1000,
            )

            service_start = time.perf_counter()
            self._event_bus = EventBus()
            self._service_container = ServiceContainer(
                config=Config,
                event_bus=self._event_bus,
                logger=get_logger("src.core.services.container"),
            )
            await self._service_container.initialize()
            logger.info(
                "✓ ServiceContainer initialized (%.2fms)",
                (time.perf_counter() - service_start) * 1000,
            )

            if self._seed_catalog:
                seed_start = time.perf_counter()
                inserted = await self._service_container.achievements.seed_catalog()
                logger.info(
                    "✓ Achievement catalog seeded, %d new (%.2fms)",
                    inserted,
                    (time.perf_counter() - seed_start) * 1000,
                )

            self._initialized = True
            logger.info("=" * 70)
            logger.info("✓ Application context initialized successfully")
            logger.info("  Total time: %.2fms", (time.perf_counter() - start_time) * 1000)
            logger.info("=" * 70)

        except Exception as exc:
            logger.critical(
                "Application context initialization failed",
                extra={
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            await self._emergency_shutdown()
            raise RuntimeError("Failed to initialize application context") from exc

    # ========================================================================
    # GRACEFUL SHUTDOWN (Reverse Order: Services → Database → Logging)
    # ========================================================================

    async def shutdown(self) -> None:
        if not self._initialized:
            logger.warning("ApplicationContext not initialized, nothing to shut down")
            return

        logger.info("=" * 70)
        logger.info("APPLICATION CONTEXT SHUTDOWN")
        logger.info("=" * 70)

        if self._service_container:
            try:
                await self._service_container.shutdown()
                logger.info("✓ ServiceContainer shut down")
            except Exception as exc:
                logger.error(
                    "Error shutting down service container",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )

        await shutdown_database_subsystem()

        self._initialized = False
        logger.info("✓ Application context shutdown complete")
        shutdown_logging()

    async def _emergency_shutdown(self) -> None:
        """Best-effort cleanup when initialization fails partway through."""
        logger.warning("Performing emergency shutdown")

        if self._service_container:
            try:
                await self._service_container.shutdown()
            except Exception as exc:
                logger.error(
                    "Error shutting down service container",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                )

        await shutdown_database_subsystem()

    # ========================================================================
    # PROPERTIES
    # ========================================================================

    @property
    def services(self) -> ServiceContainer:
        """The service container (only after initialization)."""
        if not self._initialized or self._service_container is None:
            raise RuntimeError(
                "ServiceContainer not available: ApplicationContext not initialized"
            )
        return self._service_container

    @property
    def event_bus(self) -> EventBus:
        if not self._initialized or self._event_bus is None:
            raise RuntimeError("EventBus not available: ApplicationContext not initialized")
        return self._event_bus

    @property
    def is_initialized(self) -> bool:
        return self._initialized
