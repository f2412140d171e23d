"""
Unit tests for the logging context.

Tests that LogContext tags records through ContextFilter and that the JSON
formatter carries the tags.
"""

import json
import logging

import pytest

from src.core.logging.logger import ContextFilter, JSONFormatter, LogContext


def _record(message: str = "Guest session claimed", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "src.modules.guest.claim_service", logging.INFO, __file__, 1, message, None, None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    ContextFilter().filter(record)
    return record


@pytest.mark.unit
class TestLogContext:

    def test_tags_records_inside_scope(self):
        # Arrange / Act
        with LogContext(user_id="u-1", session_id="s-1", operation="claim_guest_session"):
            record = _record()

        # Assert
        assert record.user_id == "u-1"
        assert record.session_id == "s-1"
        assert record.operation == "claim_guest_session"
        assert record.correlation_id not in (None, "N/A")
        assert record.component == "src"

    def test_scope_is_restored_on_exit(self):
        with LogContext(user_id="outer"):
            with LogContext(user_id="inner", operation="approve_dispute"):
                inner = _record()
            outer = _record()

        assert inner.user_id == "inner"
        assert outer.user_id == "outer"
        assert outer.operation == "N/A"

    def test_explicit_extra_wins_over_context(self):
        with LogContext(user_id="u-1", operation="claim_guest_session"):
            record = _record(user_id="admin-1", operation="reject_dispute")

        assert record.user_id == "admin-1"
        assert record.operation == "reject_dispute"

    def test_correlation_id_is_kept(self):
        with LogContext(correlation_id="abc12345"):
            record = _record()

        assert record.correlation_id == "abc12345"
        assert record.request_id == "abc12345"

    async def test_async_scope(self):
        async with LogContext(user_id="u-2", operation="submit_dispute"):
            record = _record()

        assert record.user_id == "u-2"
        assert record.operation == "submit_dispute"


@pytest.mark.unit
class TestJSONFormatter:

    def test_includes_context_and_extra(self):
        # Arrange
        with LogContext(user_id="u-1", session_id="s-1", operation="claim_guest_session"):
            record = _record(history_rows=2)

        # Act
        data = json.loads(JSONFormatter().format(record))

        # Assert
        assert data["message"] == "Guest session claimed"
        assert data["level"] == "INFO"
        assert data["user_id"] == "u-1"
        assert data["session_id"] == "s-1"
        assert data["operation"] == "claim_guest_session"
        assert data["extra"] == {"history_rows": 2}

    def test_omits_unset_context(self):
        with LogContext():
            record = _record()

        data = json.loads(JSONFormatter().format(record))

        assert "user_id" not in data
        assert "session_id" not in data
        assert "operation" not in data
