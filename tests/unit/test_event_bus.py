"""
Unit tests for the EventBus.

Tests subscription rules, priority ordering, error isolation and timeouts.
"""

import asyncio

import pytest

from src.core.event.bus import EventBus
from src.core.event.types import ListenerPriority
from src.core.exceptions import EventBusError


@pytest.mark.unit
class TestSubscription:

    def test_rejects_listener_with_wrong_arity(self):
        # Arrange
        bus = EventBus()

        def two_params(payload, extra):
            return None

        # Act / Assert
        with pytest.raises(EventBusError):
            bus.subscribe("progress.answer_recorded", two_params)

    def test_rejects_empty_event_name(self):
        with pytest.raises(EventBusError):
            EventBus().subscribe("", lambda payload: None)

    def test_duplicate_identifier_is_ignored(self):
        bus = EventBus()
        bus.subscribe("a", lambda payload: 1, identifier="same")
        bus.subscribe("a", lambda payload: 2, identifier="same")
        assert bus.get_listener_count("a") == 1

    def test_unsubscribe(self):
        bus = EventBus()
        bus.subscribe("a", lambda payload: 1, identifier="one")
        assert bus.unsubscribe("a", "one") is True
        assert bus.unsubscribe("a", "one") is False
        assert bus.get_listener_count() == 0

    def test_clear(self):
        bus = EventBus()
        bus.subscribe("a", lambda payload: 1, identifier="one")
        bus.subscribe("b", lambda payload: 1, identifier="two")
        bus.clear()
        assert bus.get_listener_count() == 0


@pytest.mark.unit
class TestPublish:

    async def test_no_listeners_returns_empty(self):
        assert await EventBus().publish("nothing", {}) == []

    async def test_priority_order(self):
        # Arrange
        bus = EventBus()
        calls = []
        bus.subscribe("e", lambda p: calls.append("normal"), identifier="n")
        bus.subscribe(
            "e", lambda p: calls.append("high"), priority=ListenerPriority.HIGH, identifier="h"
        )
        bus.subscribe(
            "e",
            lambda p: calls.append("critical"),
            priority=ListenerPriority.CRITICAL,
            identifier="c",
        )

        # Act
        await bus.publish("e", {})

        # Assert
        assert calls == ["critical", "high", "normal"]

    async def test_async_and_sync_results(self):
        bus = EventBus()

        async def doubled(payload):
            return payload["value"] * 2

        bus.subscribe("e", doubled, priority=ListenerPriority.HIGH, identifier="async")
        bus.subscribe("e", lambda p: p["value"], identifier="sync")

        assert await bus.publish("e", {"value": 21}) == [42, 21]

    async def test_failing_listener_is_isolated(self):
        # Arrange
        bus = EventBus()
        calls = []

        def broken(payload):
            raise RuntimeError("boom")

        bus.subscribe("e", broken, priority=ListenerPriority.HIGH, identifier="broken")
        bus.subscribe("e", lambda p: calls.append(p), identifier="ok")

        # Act
        results = await bus.publish("e", {"x": 1})

        # Assert
        assert results[0] is None
        assert calls == [{"x": 1}]
        assert bus.get_metrics_summary()["total_errors"] == 1

    async def test_timeout_returns_none(self):
        bus = EventBus(high_timeout_seconds=0.01)

        async def slow(payload):
            await asyncio.sleep(1)
            return "late"

        bus.subscribe("e", slow, priority=ListenerPriority.HIGH, identifier="slow")
        assert await bus.publish("e", {}) == [None]

    async def test_wildcard_pattern(self):
        bus = EventBus()
        seen = []
        bus.subscribe("guest.*", lambda p: seen.append(p["n"]), identifier="all-guest")

        await bus.publish("guest.session_created", {"n": 1})
        await bus.publish("progress.answer_recorded", {"n": 2})

        assert seen == [1]

    async def test_once_listener_runs_once(self):
        bus = EventBus()
        seen = []
        bus.subscribe("e", lambda p: seen.append(1), identifier="once", once=True)

        await bus.publish("e", {})
        await bus.publish("e", {})

        assert seen == [1]

    async def test_low_priority_runs_in_background(self):
        # Arrange
        bus = EventBus()
        seen = []

        async def later(payload):
            seen.append(payload["n"])

        bus.subscribe("e", later, priority=ListenerPriority.LOW, identifier="low")

        # Act
        results = await bus.publish("e", {"n": 5})
        await bus.drain()

        # Assert
        assert results == []
        assert seen == [5]
