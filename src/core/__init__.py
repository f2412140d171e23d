"""
Core infrastructure layer for the Stumper engine.

Purpose
-------
Provide a single, well-structured import surface for the core infrastructure
subsystems:

- Configuration (Config)
- Database subsystem (DatabaseService, initialization helpers)
- Event bus (EventBus, ListenerPriority)
- Logging (structured logging, logger factory)
- Validation utilities (InputValidator)
- Infrastructure exceptions (StumperInfrastructureException hierarchy)

Design Decisions
----------------
- This module is intentionally thin: no logic, no configuration, no I/O.
- Public API is explicit via __all__ to avoid leaking internal symbols.
- Domain exceptions live in ``src.modules.shared``; they are not
  re-exported here.
"""

from __future__ import annotations

from src.core.config import Config
from src.core.database import (
    DatabaseService,
    initialize_database_subsystem,
    shutdown_database_subsystem,
)
from src.core.event import EventBus, ListenerPriority
from src.core.exceptions import (
    ConfigurationError,
    DatabaseError,
    ErrorSeverity,
    EventBusError,
    StumperInfrastructureException,
)
from src.core.logging import get_logger, setup_logging
from src.core.validation import InputValidator

__all__ = [
    # Configuration
    "Config",
    # Database
    "DatabaseService",
    "initialize_database_subsystem",
    "shutdown_database_subsystem",
    # Events
    "EventBus",
    "ListenerPriority",
    # Logging
    "setup_logging",
    "get_logger",
    # Validation
    "InputValidator",
    # Infrastructure Exceptions
    "StumperInfrastructureException",
    "ConfigurationError",
    "DatabaseError",
    "EventBusError",
    "ErrorSeverity",
]
