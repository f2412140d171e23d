"""
Stumper Logging Infrastructure

Queue-based structured logging plus the ``LogContext`` scope used to tag
records with the user and session an operation runs for.
"""

from src.core.logging.logger import (
    LogContext,
    LoggerConfig,
    get_logger,
    set_log_context,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "LogContext",
    "set_log_context",
    "LoggerConfig",
]
