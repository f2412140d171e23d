"""
Database Subsystem Bootstrap

Purpose
-------
Single entry point for initializing and shutting down the database
subsystem, with optional health verification and schema creation.

Responsibilities
----------------
- Initialize DatabaseService (engine, session factory, connection pool)
- Optionally verify database readiness via health check with timeout
- Optionally create the schema (development and tests; production uses
  migrations)
- Emit structured logs for bootstrap lifecycle events
- Graceful shutdown with resource cleanup

Configuration
-------------
- DATABASE_URL (required unless ``url`` is passed)
- DATABASE_BOOTSTRAP_HEALTH_TIMEOUT_SECONDS (default: 5.0)

Usage Example
-------------
>>> await initialize_database_subsystem(verify_health=True, create_schema=True)
>>> ...
>>> await shutdown_database_subsystem()
"""

from __future__ import annotations

import asyncio
from typing import Optional

from src.core.config.config import Config
from src.core.database.service import (
    DatabaseInitializationError,
    DatabaseService,
)
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


async def initialize_database_subsystem(
    *,
    url: Optional[str] = None,
    verify_health: bool = True,
    create_schema: bool = False,
) -> None:
    """
    Initialize the database subsystem.

    Steps
    -----
    1. Initialize DatabaseService (engine + session factory)
    2. Optionally verify readiness with a health check
    3. Optionally create all tables

    Raises
    ------
    DatabaseInitializationError
        If initialization fails or the health check fails or times out.
    """
    logger.info("Initializing database subsystem")

    try:
        await DatabaseService.initialize(url)
    except DatabaseInitializationError:
        raise
    except Exception as exc:
        logger.error(
            "Unexpected error during database initialization",
            extra={"error": str(exc), "error_type": type(exc).__name__},
            exc_info=True,
        )
        raise DatabaseInitializationError(
            f"Database initialization failed: {exc}"
        ) from exc

    if verify_health:
        health_timeout = float(
            getattr(Config, "DATABASE_BOOTSTRAP_HEALTH_TIMEOUT_SECONDS", 5.0)
        )
        try:
            healthy = await asyncio.wait_for(
                DatabaseService.health_check(), timeout=health_timeout
            )
        except asyncio.TimeoutError as exc:
            logger.error(
                "Database health check timed out during bootstrap",
                extra={"timeout_seconds": health_timeout},
            )
            raise DatabaseInitializationError(
                f"Database health check timed out after {health_timeout}s"
            ) from exc

        if not healthy:
            logger.error("Database health check failed during bootstrap")
            raise DatabaseInitializationError(
                "Database is unreachable or unhealthy after initialization"
            )

    if create_schema:
        await DatabaseService.create_all()

    logger.info(
        "Database subsystem initialized",
        extra={"verify_health": verify_health, "create_schema": create_schema},
    )


async def shutdown_database_subsystem() -> None:
    """
    Shutdown the database subsystem.

    Safe to call multiple times. Errors are logged, never raised, so the
    rest of the shutdown sequence still runs.
    """
    logger.info("Shutting down database subsystem")

    try:
        await DatabaseService.shutdown()
        logger.info("Database subsystem shutdown complete")
    except Exception as exc:
        logger.error(
            "Error during database subsystem shutdown",
            extra={"error": str(exc), "error_type": type(exc).__name__},
            exc_info=True,
        )
