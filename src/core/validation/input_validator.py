"""
Input Validation Layer for Stumper

Purpose
-------
Provide a centralized validation layer for caller-supplied values entering
the engine's public operations: identifiers, answer text, point values,
enum tags and guest configuration thresholds.

Responsibilities
----------------
- Validate and convert inputs to correct types (int, str, bool, enum, date)
- Enforce bounds checking for numerical inputs
- Validate identifier strings (user ids, question ids, session ids)
- Raise ValidationError with clear messages

Non-Responsibilities
--------------------
- Business rule validation (service layer concern)
- Database constraints and persistence (infra concern)
- Authentication of user ids (request handlers own that)

Observability
-------------
Every validation failure is logged at debug level with field_name,
raw_value (repr) and reason.
"""

from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Any, NoReturn, Optional, Type, TypeVar

from src.core.logging.logger import get_logger
from src.modules.shared.exceptions import ValidationError

logger = get_logger(__name__)

E = TypeVar("E", bound=enum.Enum)

MAX_ID_LENGTH = 128
MAX_ANSWER_LENGTH = 500


def _raise_validation_error(field_name: str, value: Any, message: str) -> NoReturn:
    """
    Centralized helper to log and raise a ValidationError.

    All validation failures go through this function to ensure consistent,
    structured logging and error construction.
    """
    logger.debug(
        "Input validation failed",
        extra={
            "field_name": field_name,
            "raw_value": repr(value),
            "reason": message,
        },
    )
    raise ValidationError(field_name, message)


class InputValidator:
    """
    Centralized input validation.

    All validation methods are stateless, return the validated value on
    success and raise ValidationError on failure.
    """

    # =========================================================================
    # INTEGER VALIDATION
    # =========================================================================

    @staticmethod
    def validate_integer(
        value: Any,
        field_name: str,
        min_value: Optional[int] = None,
        max_value: Optional[int] = None,
        allow_zero: bool = True,
    ) -> int:
        """
        Validate and convert value to integer with optional bounds checking.

        Booleans are rejected even though ``bool`` subclasses ``int``.

        Raises:
            ValidationError: If validation fails
        """
        if value is None:
            _raise_validation_error(field_name, value, "Value is required")

        if isinstance(value, bool):
            _raise_validation_error(field_name, value, "Must be a whole number, got a boolean")

        try:
            int_value = int(value)
        except (ValueError, TypeError):
            _raise_validation_error(
                field_name,
                value,
                f"Must be a whole number, got '{value}'",
            )

        if isinstance(value, float) and not value.is_integer():
            _raise_validation_error(field_name, value, "Must be a whole number")

        if not allow_zero and int_value == 0:
            _raise_validation_error(field_name, int_value, "Cannot be zero")

        if min_value is not None and int_value < min_value:
            _raise_validation_error(
                field_name,
                int_value,
                f"Must be at least {min_value}, got {int_value}",
            )

        if max_value is not None and int_value > max_value:
            _raise_validation_error(
                field_name,
                int_value,
                f"Cannot exceed {max_value}, got {int_value}",
            )

        return int_value

    @staticmethod
    def validate_positive_integer(
        value: Any,
        field_name: str,
        max_value: Optional[int] = None,
    ) -> int:
        """Validate that value is a strictly positive integer (>= 1)."""
        return InputValidator.validate_integer(
            value=value,
            field_name=field_name,
            min_value=1,
            max_value=max_value,
            allow_zero=False,
        )

    @staticmethod
    def validate_non_negative_integer(
        value: Any,
        field_name: str,
        max_value: Optional[int] = None,
    ) -> int:
        """Validate that value is a non-negative integer (>= 0)."""
        return InputValidator.validate_integer(
            value=value,
            field_name=field_name,
            min_value=0,
            max_value=max_value,
        )

    @staticmethod
    def validate_optional_non_negative_integer(
        value: Any,
        field_name: str,
    ) -> Optional[int]:
        """``None`` passes through (meaning "no limit")."""
        if value is None:
            return None
        return InputValidator.validate_non_negative_integer(value, field_name)

    # =========================================================================
    # STRING VALIDATION
    # =========================================================================

    @staticmethod
    def validate_entity_id(value: Any, field_name: str) -> str:
        """
        Validate an opaque identifier (user, question, session, game).

        Identifiers are non-empty strings without surrounding whitespace.
        """
        if value is None:
            _raise_validation_error(field_name, value, "Value is required")
        if not isinstance(value, str):
            _raise_validation_error(field_name, value, "Must be a string identifier")

        stripped = value.strip()
        if not stripped:
            _raise_validation_error(field_name, value, "Cannot be empty")
        if stripped != value:
            _raise_validation_error(field_name, value, "Cannot contain surrounding whitespace")
        if len(value) > MAX_ID_LENGTH:
            _raise_validation_error(
                field_name, value, f"Cannot exceed {MAX_ID_LENGTH} characters"
            )
        return value

    @staticmethod
    def validate_string(
        value: Any,
        field_name: str,
        min_length: Optional[int] = None,
        max_length: Optional[int] = None,
    ) -> str:
        """
        Validate string input with optional length constraints.

        Args:
            value: String value to validate (any object, converted via str())
            field_name: Name of field for error messages
            min_length: Minimum string length
            max_length: Maximum string length
        """
        if value is None:
            _raise_validation_error(field_name, value, "Value is required")

        str_value = str(value).strip()

        if min_length is not None and len(str_value) < min_length:
            _raise_validation_error(
                field_name,
                str_value,
                f"Must be at least {min_length} characters",
            )

        if max_length is not None and len(str_value) > max_length:
            _raise_validation_error(
                field_name,
                str_value,
                f"Cannot exceed {max_length} characters",
            )

        return str_value

    @staticmethod
    def validate_answer_text(value: Any, field_name: str = "answer") -> str:
        """
        Free-text answer as typed by a player.

        Empty answers are allowed (they are simply wrong); the raw text is
        kept for history, only the length is bounded.
        """
        if value is None:
            return ""
        if not isinstance(value, str):
            _raise_validation_error(field_name, value, "Must be text")
        if len(value) > MAX_ANSWER_LENGTH:
            _raise_validation_error(
                field_name, value, f"Cannot exceed {MAX_ANSWER_LENGTH} characters"
            )
        return value

    @staticmethod
    def validate_enum(value: Any, field_name: str, enum_cls: Type[E]) -> E:
        """Accept an enum member or its value; return the member."""
        if isinstance(value, enum_cls):
            return value
        try:
            return enum_cls(value)
        except ValueError:
            choices = ", ".join(str(member.value) for member in enum_cls)
            _raise_validation_error(
                field_name,
                value,
                f"Invalid choice '{value}'. Must be one of: {choices}",
            )

    # =========================================================================
    # MISC
    # =========================================================================

    @staticmethod
    def validate_bool(value: Any, field_name: str) -> bool:
        if not isinstance(value, bool):
            _raise_validation_error(field_name, value, "Must be true or false")
        return value

    @staticmethod
    def validate_date(value: Any, field_name: str) -> date:
        """Accept a ``date`` or ISO ``YYYY-MM-DD`` string."""
        if isinstance(value, datetime):
            _raise_validation_error(field_name, value, "Must be a calendar date, not a timestamp")
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return date.fromisoformat(value)
            except ValueError:
                pass
        _raise_validation_error(field_name, value, "Must be a date in YYYY-MM-DD format")
