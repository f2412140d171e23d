"""
Base Service Foundation

Purpose
-------
Provides the foundational class for all domain services in Stumper.
Services implement the integrity rules, own their transactions through
DatabaseService, raise domain exceptions and emit domain events after
their transactions commit.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Safe config access patterns
- Event emission helpers
- Validation error wrapping

What this class does NOT do:
- Manage database transactions (that's DatabaseService's job)
- Contain trivia-specific logic

Usage
-----
    class ProgressService(BaseService):
        def __init__(self, event_bus, config=Config):
            super().__init__(config, event_bus, get_logger(__name__))

        async def record_answer(self, user_id: str, question_id: str, ...):
            # Service logic here, using self.log, self.get_config, self.emit_event
            pass
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from logging import Logger

    from src.core.event.bus import EventBus


class BaseService:
    """
    Base class for all domain services.

    Args:
        config: Configuration source exposing settings as attributes
            (``src.core.config.Config`` in production)
        event_bus: Event bus for cross-module communication, or None to
            disable event emission
        logger: Structured logger instance
    """

    def __init__(
        self,
        config: Any,
        event_bus: Optional[EventBus],
        logger: Logger,
    ) -> None:
        self._config = config
        self._events = event_bus
        self.log = logger

    def get_config(
        self, key: str, default: Optional[Any] = None, required: bool = False
    ) -> Any:
        """
        Safely retrieve a configuration value.

        Raises:
            ConfigurationError: If required=True and key is missing
        """
        from src.core.exceptions import ConfigurationError

        value = getattr(self._config, key, default)
        if required and value is None:
            raise ConfigurationError(
                key, f"Required configuration key '{key}' is missing"
            )
        return value

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Emit a domain event for cross-module communication.

        Must only be called after the producing transaction has committed.
        Listener failures are isolated by the bus and never reach here.
        """
        if self._events is None:
            return
        await self._events.publish(event_type, {**data, **(context or {})})

    def log_operation(
        self, operation: str, **context: Any
    ) -> None:
        """Log a service operation with structured context."""
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(
        self,
        operation: str,
        error: Exception,
        **context: Any,
    ) -> None:
        """Log a service error with full context."""
        self.log.error(
            f"Service error during {operation}: {str(error)}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                **context,
            },
        )
