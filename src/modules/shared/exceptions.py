"""
Domain exceptions for the Stumper engine.

Purpose
-------
Define the structured, domain-specific exception hierarchy for trivia
integrity logic. Services raise these for business rule violations and
missing resources; request handlers (outside this package) translate them
into responses.

Design Notes
------------
- All domain exceptions inherit from `StumperDomainException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict-like)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
- Guest session lookups fail with one uniform `SessionNotFoundError`
  whether the session is missing, expired or already claimed.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from src.core.exceptions import ErrorSeverity


class StumperDomainException(Exception):
    """
    Base exception for all domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error (dict-like)
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise StumperDomainException(
        ...     "Claim failed",
        ...     {"session_id": "3f0c..."}
        ... )
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class NotFoundError(StumperDomainException):
    """
    Raised when a requested resource cannot be found.

    Args:
        resource_type: Type of resource (e.g., "Question", "Game")
        identifier: Optional identifier for the missing resource
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier

        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"

        super().__init__(
            message,
            details={
                "resource_type": resource_type,
                "identifier": identifier,
            },
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class QuestionNotFoundError(NotFoundError):
    """
    Raised when an answer references a question that does not exist.

    Signals a referential integrity failure inside a write transaction,
    so it is logged as a warning and the whole transaction is rolled back.
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(self, question_id: str) -> None:
        self.question_id = question_id
        super().__init__("Question", question_id)


class SessionNotFoundError(StumperDomainException):
    """
    Raised when a guest session is missing, expired, or already claimed.

    The message never says which of the three applied.
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    MESSAGE = "Session not found, expired, or already claimed"

    def __init__(self, session_id: Optional[str] = None) -> None:
        self.session_id = session_id
        super().__init__(
            self.MESSAGE,
            details={"session_id": session_id},
            error_code="SESSION_NOT_FOUND",
        )


class MigrationFailedError(StumperDomainException):
    """
    Raised when a guest claim fails after the session was validated.

    The claim transaction has been rolled back, so the session is still
    unclaimed and the caller may retry.
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = True

    def __init__(self, session_id: str, reason: str) -> None:
        self.session_id = session_id
        self.reason = reason
        super().__init__(
            f"Failed to migrate guest session: {reason}",
            details={"session_id": session_id, "reason": reason},
            error_code="MIGRATION_FAILED",
            is_retryable=True,
        )


class NoEligibleQuestionError(StumperDomainException):
    """Raised when no question can be assigned to a daily challenge date."""

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = False

    def __init__(self, challenge_date: Any, attempts: int) -> None:
        self.challenge_date = challenge_date
        self.attempts = attempts
        super().__init__(
            f"No eligible question for daily challenge {challenge_date}",
            details={"date": str(challenge_date), "attempts": attempts},
            error_code="NO_ELIGIBLE_QUESTION",
        )


class GuestLimitReachedError(StumperDomainException):
    """Raised when a guest hits a trial quota and must sign in to continue."""

    DEFAULT_SEVERITY = ErrorSeverity.DEBUG
    DEFAULT_RETRYABLE = False

    def __init__(self, kind: str, reason: str) -> None:
        self.kind = kind
        self.reason = reason
        super().__init__(
            reason,
            details={"kind": kind, "reason": reason},
            error_code="GUEST_LIMIT_REACHED",
        )


class AuthenticationRequiredError(StumperDomainException):
    """Raised when an operation is not available to guests."""

    DEFAULT_SEVERITY = ErrorSeverity.DEBUG
    DEFAULT_RETRYABLE = False

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(
            f"Authentication required for {action}",
            details={"action": action},
            error_code="AUTHENTICATION_REQUIRED",
        )


class ValidationError(StumperDomainException):
    """
    Raised when caller input fails domain validation.

    Args:
        field: Name of the field that failed validation
        message: Explanation of why validation failed
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        error_message = f"Validation error for {field}: {message}"
        super().__init__(
            error_message,
            details={
                "field": field,
                "validation_message": message,
            },
            error_code=f"VALIDATION_{field.upper()}",
        )


class InvalidOperationError(StumperDomainException):
    """
    Raised when an action violates game rules in the current state.

    Example:
        >>> raise InvalidOperationError(
        ...     "complete_game",
        ...     "Game belongs to another user"
        ... )
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        message = f"Invalid operation '{action}': {reason}"
        super().__init__(
            message,
            details={
                "action": action,
                "reason": reason,
            },
            error_code=f"INVALID_{action.upper()}",
        )
