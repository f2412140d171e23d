"""
Database subsystem for Stumper.

Provides the async SQLAlchemy engine, session and transaction management,
dialect-aware upsert helpers, and the ORM base classes and column types
used by the model definitions.
"""

from src.core.database.base import (
    Base,
    IdMixin,
    JSONType,
    TimestampMixin,
    UTCDateTime,
    enum_column,
    new_id,
    utc_now,
)
from src.core.database.bootstrap import (
    initialize_database_subsystem,
    shutdown_database_subsystem,
)
from src.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)

__all__ = [
    # ORM Base & Mixins
    "Base",
    "IdMixin",
    "TimestampMixin",
    "UTCDateTime",
    "JSONType",
    "enum_column",
    "new_id",
    "utc_now",
    # Main service
    "DatabaseService",
    # Bootstrap
    "initialize_database_subsystem",
    "shutdown_database_subsystem",
    # Exceptions
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
]
