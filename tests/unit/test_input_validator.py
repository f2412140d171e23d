"""
Unit tests for InputValidator and the domain exception payloads.
"""

from datetime import date, datetime

import pytest

from src.database.models import GuestSessionKind
from src.core.validation.input_validator import InputValidator
from src.modules.shared.exceptions import (
    GuestLimitReachedError,
    SessionNotFoundError,
    ValidationError,
)


@pytest.mark.unit
class TestIntegers:

    def test_accepts_integral_values(self):
        assert InputValidator.validate_integer("42", "points") == 42
        assert InputValidator.validate_integer(-200, "points") == -200
        assert InputValidator.validate_integer(3.0, "points") == 3

    @pytest.mark.parametrize("value", [None, True, "ten", 2.5])
    def test_rejects_non_integers(self, value):
        with pytest.raises(ValidationError) as exc_info:
            InputValidator.validate_integer(value, "points")
        assert exc_info.value.field == "points"

    def test_bounds(self):
        with pytest.raises(ValidationError):
            InputValidator.validate_integer(10, "x", min_value=30)
        with pytest.raises(ValidationError):
            InputValidator.validate_integer(2000, "x", max_value=1825)

    def test_positive_and_non_negative(self):
        assert InputValidator.validate_non_negative_integer(0, "count") == 0
        with pytest.raises(ValidationError):
            InputValidator.validate_positive_integer(0, "season")
        with pytest.raises(ValidationError):
            InputValidator.validate_non_negative_integer(-1, "count")

    def test_optional_passes_none_through(self):
        assert InputValidator.validate_optional_non_negative_integer(None, "cap") is None
        assert InputValidator.validate_optional_non_negative_integer(3, "cap") == 3


@pytest.mark.unit
class TestIdentifiersAndText:

    def test_entity_id(self):
        assert InputValidator.validate_entity_id("user-1", "user_id") == "user-1"

    @pytest.mark.parametrize("value", [None, "", "   ", " padded ", 42, "x" * 129])
    def test_entity_id_rejects(self, value):
        with pytest.raises(ValidationError):
            InputValidator.validate_entity_id(value, "user_id")

    def test_answer_text_keeps_raw_value(self):
        assert InputValidator.validate_answer_text("  Who is  ") == "  Who is  "

    def test_answer_text_none_is_empty(self):
        assert InputValidator.validate_answer_text(None) == ""

    def test_answer_text_length_bound(self):
        with pytest.raises(ValidationError):
            InputValidator.validate_answer_text("a" * 501)

    def test_answer_text_must_be_text(self):
        with pytest.raises(ValidationError):
            InputValidator.validate_answer_text(12)

    def test_string_is_stripped_and_bounded(self):
        assert InputValidator.validate_string("  seed ", "seed", min_length=1) == "seed"
        with pytest.raises(ValidationError):
            InputValidator.validate_string("", "seed", min_length=1)


@pytest.mark.unit
class TestMisc:

    def test_enum_accepts_member_or_value(self):
        assert (
            InputValidator.validate_enum("DAILY_CHALLENGE", "kind", GuestSessionKind)
            is GuestSessionKind.DAILY_CHALLENGE
        )
        assert (
            InputValidator.validate_enum(GuestSessionKind.RANDOM_GAME, "kind", GuestSessionKind)
            is GuestSessionKind.RANDOM_GAME
        )
        with pytest.raises(ValidationError):
            InputValidator.validate_enum("PARTY", "kind", GuestSessionKind)

    def test_bool_is_strict(self):
        assert InputValidator.validate_bool(False, "correct") is False
        with pytest.raises(ValidationError):
            InputValidator.validate_bool(1, "correct")

    def test_date(self):
        assert InputValidator.validate_date("2025-03-09", "d") == date(2025, 3, 9)
        assert InputValidator.validate_date(date(2025, 3, 9), "d") == date(2025, 3, 9)

    @pytest.mark.parametrize("value", [datetime(2025, 3, 9, 12, 0), "03/09/2025", None])
    def test_date_rejects(self, value):
        with pytest.raises(ValidationError):
            InputValidator.validate_date(value, "d")


@pytest.mark.unit
class TestDomainExceptions:

    def test_session_not_found_message_is_uniform(self):
        assert SessionNotFoundError("abc").message == SessionNotFoundError(None).message

    def test_to_dict(self):
        # Act
        data = GuestLimitReachedError("RANDOM_GAME", "Maximum 1 question(s)").to_dict()

        # Assert
        assert data["error_code"] == "GUEST_LIMIT_REACHED"
        assert data["details"] == {"kind": "RANDOM_GAME", "reason": "Maximum 1 question(s)"}
        assert data["is_retryable"] is False

    def test_validation_error_code(self):
        assert ValidationError("user_id", "bad").error_code == "VALIDATION_USER_ID"
