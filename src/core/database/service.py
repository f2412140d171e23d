"""
Database Service - Core Infrastructure Layer

Purpose
-------
Centralized async database engine and session management for the Stumper
engine. Provides atomic transactions, portable upsert statements, row
locking and health checks for every store operation.

Responsibilities
----------------
- Initialize and manage a single AsyncEngine instance with connection pooling
- Provide async context managers for read sessions and atomic transactions
- Enforce transaction discipline: automatic commit on success, rollback on exception
- Build dialect-specific INSERT statements so services can use
  ON CONFLICT DO NOTHING / DO UPDATE on PostgreSQL and SQLite alike
- Support pessimistic row locking via `with_for_update=True`
- Configure statement timeouts (PostgreSQL) and busy timeouts (SQLite)
- Create and drop the schema for bootstrap and tests

Non-Responsibilities
--------------------
- Retry policies for transient failures (callers retry; idempotency makes
  every write safe to repeat)
- Domain logic or event emission

Architecture Notes
------------------
**Transaction Model**:
- `get_transaction()` is the primary interface for all state mutations
- Automatic commit on success, rollback on any exception
- Never manually call `session.commit()` inside service code
- Exclusivity comes from conditional UPDATEs and unique constraints;
  SQLite transactions begin IMMEDIATE, so writers queue on the busy
  timeout. Never open a second session while one is held in the same task

**Connection Pooling**:
- QueuePool for production (configurable pool_size and max_overflow)
- NullPool for testing environments and SQLite (no connection reuse)

**Uniqueness violations**:
- Logged at warning level on rollback. They are the expected outcome for
  the loser of a race, and the owning service recovers by re-reading.

Usage Example
-------------
>>> async with DatabaseService.get_transaction() as session:
>>>     stmt = DatabaseService.dialect_insert(session, UserAchievement.__table__)
>>>     await session.execute(stmt.values(...).on_conflict_do_nothing())

>>> async with DatabaseService.get_session() as session:
>>>     challenge = await session.scalar(
>>>         select(DailyChallenge).where(DailyChallenge.date == today)
>>>     )

Error Handling
--------------
**DatabaseInitializationError** - DATABASE_URL missing or engine creation failed
**DatabaseNotInitializedError** - session requested before initialize()
**Automatic Rollback** - any exception raised inside get_transaction()
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Optional, Type, TypeVar

from sqlalchemy import event, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, Pool, QueuePool

from src.core.config.config import Config
from src.core.database.base import Base
from src.core.logging.logger import get_logger

logger = get_logger(__name__)

# Type variable for generic entity locking
T = TypeVar("T")


# ============================================================================
# Exceptions
# ============================================================================


class DatabaseInitializationError(RuntimeError):
    """Raised when database engine initialization fails."""


class DatabaseNotInitializedError(RuntimeError):
    """Raised when database operations are attempted before initialization."""


# ============================================================================
# Configuration Snapshot
# ============================================================================


@dataclass(frozen=True)
class _DatabaseConfigSnapshot:
    """
    Immutable snapshot of database configuration.

    Prevents repeated Config lookups and provides a stable configuration
    view for the lifetime of the engine.
    """

    url: str
    echo: bool
    pool_class: Type[Pool]
    pool_size: int
    max_overflow: int
    pool_recycle: int
    pool_timeout: int
    statement_timeout_ms: int
    sqlite_busy_timeout: int

    @property
    def is_postgres(self) -> bool:
        return self.url.startswith(("postgresql://", "postgresql+asyncpg://"))

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def url_scheme(self) -> str:
        return self.url.split(":", 1)[0] if ":" in self.url else "unknown"


# ============================================================================
# DatabaseService - Core Infrastructure
# ============================================================================


class DatabaseService:
    """
    Centralized async database engine and session management.

    Public API
    ----------
    **Lifecycle**:
    - initialize() -> Initialize engine and session factory
    - shutdown() -> Dispose engine and cleanup resources
    - create_all() / drop_all() -> Schema management for bootstrap and tests

    **Session Management**:
    - get_session() -> Reads or manual transaction control
    - get_transaction() -> Atomic write transaction (preferred)

    **Utilities**:
    - health_check() -> Fast database reachability check
    - dialect_insert() -> INSERT supporting ON CONFLICT for the bound dialect
    - get_locked_entity() -> Helper for pessimistic row locking

    Thread Safety
    -------------
    All classmethods are safe for concurrent access. Initialization is
    protected by an async lock to ensure idempotent behavior.
    """

    _engine: Optional[AsyncEngine] = None
    _session_factory: Optional[async_sessionmaker[AsyncSession]] = None
    _config_snapshot: Optional[_DatabaseConfigSnapshot] = None
    _init_lock: Optional[asyncio.Lock] = None

    # ========================================================================
    # Initialization & Shutdown
    # ========================================================================

    @classmethod
    def _lock(cls) -> asyncio.Lock:
        if cls._init_lock is None:
            cls._init_lock = asyncio.Lock()
        return cls._init_lock

    @classmethod
    def _build_config_snapshot(cls, url: Optional[str] = None) -> _DatabaseConfigSnapshot:
        """
        Build an immutable configuration snapshot from Config.

        Raises
        ------
        DatabaseInitializationError
            If DATABASE_URL is missing or invalid.
        """
        database_url = url or getattr(Config, "DATABASE_URL", None)
        if not database_url or not isinstance(database_url, str):
            logger.error("DATABASE_URL is not configured or invalid")
            raise DatabaseInitializationError(
                "DATABASE_URL must be configured as a non-empty string"
            )

        is_testing = bool(getattr(Config, "TESTING", False)) or (
            hasattr(Config, "is_testing") and Config.is_testing()
        )

        # SQLite connections are cheap and must not be shared across tasks
        pool_class: Type[Pool] = (
            NullPool if is_testing or database_url.startswith("sqlite") else QueuePool
        )

        snapshot = _DatabaseConfigSnapshot(
            url=database_url,
            echo=bool(getattr(Config, "DATABASE_ECHO", False)),
            pool_class=pool_class,
            pool_size=int(getattr(Config, "DATABASE_POOL_SIZE", 5)),
            max_overflow=int(getattr(Config, "DATABASE_MAX_OVERFLOW", 10)),
            pool_recycle=int(getattr(Config, "DATABASE_POOL_RECYCLE", 1800)),
            pool_timeout=int(getattr(Config, "DATABASE_POOL_TIMEOUT", 30)),
            statement_timeout_ms=int(
                getattr(Config, "DATABASE_STATEMENT_TIMEOUT_MS", 30_000)
            ),
            sqlite_busy_timeout=int(getattr(Config, "DATABASE_SQLITE_BUSY_TIMEOUT", 30)),
        )

        logger.debug(
            "Database configuration snapshot created",
            extra={
                "url_scheme": snapshot.url_scheme,
                "pool_class": pool_class.__name__,
                "pool_size": snapshot.pool_size,
                "max_overflow": snapshot.max_overflow,
                "statement_timeout_ms": snapshot.statement_timeout_ms,
                "is_testing": is_testing,
            },
        )

        return snapshot

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        """
        Initialize the database engine and session factory.

        Idempotent: if already initialized, returns immediately. ``url``
        overrides ``Config.DATABASE_URL`` (used by the test suite).

        Raises
        ------
        DatabaseInitializationError
            If configuration is invalid or engine creation fails.
        """
        async with cls._lock():
            if cls._engine is not None:
                logger.debug("DatabaseService already initialized; skipping")
                return

            logger.info("Initializing DatabaseService")

            try:
                config = cls._build_config_snapshot(url)
                cls._config_snapshot = config

                engine_kwargs: dict[str, Any] = {
                    "echo": config.echo,
                    "poolclass": config.pool_class,
                }

                if config.pool_class == QueuePool:
                    engine_kwargs.update(
                        {
                            "pool_size": config.pool_size,
                            "max_overflow": config.max_overflow,
                            "pool_recycle": config.pool_recycle,
                            "pool_timeout": config.pool_timeout,
                        }
                    )

                if config.is_sqlite:
                    engine_kwargs["connect_args"] = {"timeout": config.sqlite_busy_timeout}

                cls._engine = create_async_engine(config.url, **engine_kwargs)

                if config.is_sqlite:
                    event.listen(
                        cls._engine.sync_engine, "connect", _configure_sqlite_connection
                    )
                    event.listen(cls._engine.sync_engine, "begin", _begin_sqlite_immediate)

                cls._session_factory = async_sessionmaker(
                    bind=cls._engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                )

                logger.info(
                    "DatabaseService initialized successfully",
                    extra={
                        "url_scheme": config.url_scheme,
                        "pool_class": config.pool_class.__name__,
                    },
                )

            except Exception as exc:
                cls._engine = None
                cls._session_factory = None
                cls._config_snapshot = None
                logger.error(
                    "DatabaseService initialization failed",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "config_error": isinstance(exc, DatabaseInitializationError),
                    },
                    exc_info=True,
                )
                raise DatabaseInitializationError(
                    f"Database initialization failed: {exc}"
                ) from exc

    @classmethod
    async def shutdown(cls) -> None:
        """
        Dispose the engine and reset internal state.

        Safe to call multiple times; no-op if already shut down.
        """
        async with cls._lock():
            if cls._engine is None:
                logger.debug("DatabaseService not initialized; nothing to shutdown")
                return

            logger.info("Shutting down DatabaseService")

            try:
                await cls._engine.dispose()
                logger.info("DatabaseService shutdown complete")
            finally:
                cls._engine = None
                cls._session_factory = None
                cls._config_snapshot = None

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._engine is not None

    @classmethod
    def get_engine(cls) -> AsyncEngine:
        cls._ensure_initialized()
        assert cls._engine is not None
        return cls._engine

    # ========================================================================
    # Schema Management
    # ========================================================================

    @classmethod
    async def create_all(cls) -> None:
        """Create every table registered on ``Base.metadata``."""
        import src.database.models  # noqa: F401  (registers all tables)

        engine = cls.get_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info(
            "Database schema created",
            extra={"tables": len(Base.metadata.tables)},
        )

    @classmethod
    async def drop_all(cls) -> None:
        """Drop every table registered on ``Base.metadata``."""
        import src.database.models  # noqa: F401

        engine = cls.get_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("Database schema dropped")

    # ========================================================================
    # Health Check
    # ========================================================================

    @classmethod
    async def health_check(cls) -> bool:
        """
        Lightweight ``SELECT 1`` reachability check.

        Never raises; returns False on failure.
        """
        if cls._engine is None:
            logger.warning("Health check called on uninitialized DatabaseService")
            return False

        start = time.perf_counter()
        success = False

        try:
            async with cls._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            success = True
            return True

        except (OperationalError, DBAPIError) as exc:
            logger.warning(
                "Database health check failed",
                extra={
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            return False

        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            logger.debug(
                "Database health check completed",
                extra={"success": success, "duration_ms": duration_ms},
            )

    # ========================================================================
    # Session & Transaction Context Managers
    # ========================================================================

    @classmethod
    def _ensure_initialized(cls) -> None:
        if cls._session_factory is None or cls._engine is None:
            logger.error("DatabaseService operation attempted before initialization")
            raise DatabaseNotInitializedError(
                "DatabaseService must be initialized before use. "
                "Call DatabaseService.initialize() during startup."
            )

    @classmethod
    def _get_config_snapshot(cls) -> _DatabaseConfigSnapshot:
        if cls._config_snapshot is None:
            raise DatabaseNotInitializedError("DatabaseService is not initialized")
        return cls._config_snapshot

    @classmethod
    @asynccontextmanager
    async def get_session(cls) -> AsyncGenerator[AsyncSession, None]:
        """
        Create a database session without automatic commit.

        Use for reads. For write operations use `get_transaction()`, which
        provides automatic commit/rollback semantics.

        Raises
        ------
        DatabaseNotInitializedError
            If DatabaseService has not been initialized.
        """
        cls._ensure_initialized()
        assert cls._session_factory is not None

        start = time.perf_counter()
        async with cls._session_factory() as session:
            config = cls._get_config_snapshot()

            try:
                if config.is_postgres:
                    await session.execute(
                        text(
                            f"SET LOCAL statement_timeout = "
                            f"{config.statement_timeout_ms}"
                        )
                    )

                yield session

            finally:
                await session.close()
                logger.debug(
                    "Database session closed",
                    extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
                )

    @classmethod
    @asynccontextmanager
    async def get_transaction(cls) -> AsyncGenerator[AsyncSession, None]:
        """
        Create a database session wrapped in an atomic transaction.

        This is the **primary interface for all state mutations**.

        On success the transaction is committed. On any exception it is
        rolled back and the original exception re-raised.

        Usage Example
        -------------
        >>> async with DatabaseService.get_transaction() as session:
        >>>     session.add(GameHistory(user_id=user_id, question_id=qid, ...))
        >>>     # Automatic commit on exit
        """
        cls._ensure_initialized()
        assert cls._session_factory is not None

        start = time.perf_counter()
        async with cls._session_factory() as session:
            config = cls._get_config_snapshot()
            committed = False

            try:
                if config.is_postgres:
                    await session.execute(
                        text(
                            f"SET LOCAL statement_timeout = "
                            f"{config.statement_timeout_ms}"
                        )
                    )

                yield session

                await session.commit()
                committed = True
                logger.debug(
                    "Database transaction committed",
                    extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
                )

            except IntegrityError as exc:
                await session.rollback()
                logger.warning(
                    "IntegrityError in transaction; rolled back",
                    extra={
                        "error": str(exc.orig),
                        "error_type": type(exc).__name__,
                        "committed": committed,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                )
                raise

            except OperationalError as exc:
                await session.rollback()
                logger.error(
                    "OperationalError in transaction; rolled back",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "committed": committed,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                    exc_info=True,
                )
                raise

            except DBAPIError as exc:
                await session.rollback()
                logger.error(
                    "DBAPIError in transaction; rolled back",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "committed": committed,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                    exc_info=True,
                )
                raise

            except BaseException as exc:
                await session.rollback()
                # Domain exceptions are logged by the raising service
                logger.debug(
                    "Transaction aborted; rolled back",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "committed": committed,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                )
                raise

            finally:
                await session.close()

    # ========================================================================
    # Statement Helpers
    # ========================================================================

    @staticmethod
    def dialect_insert(session: AsyncSession, target: Any):
        """
        INSERT construct for the session's dialect.

        Returns the PostgreSQL or SQLite ``Insert`` so callers can chain
        ``on_conflict_do_nothing()`` / ``on_conflict_do_update()``; both
        dialects accept the same ``index_elements`` / ``set_`` arguments.
        """
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(target)
        if dialect == "sqlite":
            return sqlite.insert(target)
        raise DatabaseInitializationError(
            f"Unsupported dialect for upsert statements: {dialect}"
        )

    # ========================================================================
    # Pessimistic Locking Helper
    # ========================================================================

    @classmethod
    async def get_locked_entity(
        cls,
        session: AsyncSession,
        model: Type[T],
        primary_key: Any,
    ) -> Optional[T]:
        """
        Fetch an entity with a pessimistic row lock (SELECT FOR UPDATE).

        Syntactic sugar over ``session.get(Model, pk, with_for_update=True)``.
        SQLite ignores FOR UPDATE; its write lock is taken at the first write.
        """
        return await session.get(model, primary_key, with_for_update=True)


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    # The driver's implicit BEGIN is replaced by _begin_sqlite_immediate
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def _begin_sqlite_immediate(connection) -> None:
    # Take the write lock up front: a deferred transaction that reads and
    # then writes fails with SQLITE_BUSY under concurrent writers instead
    # of waiting out the busy timeout.
    connection.exec_driver_sql("BEGIN IMMEDIATE")
