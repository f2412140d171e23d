"""
Pytest Configuration and Fixtures for the Stumper Engine Tests
==============================================================

Purpose
-------
Centralized fixtures for the Stumper test suite: a fresh database per
test, the service container wired around a real EventBus, and content
factories for categories, questions and games.

Responsibilities
----------------
- Test environment flags (set before ``src`` is imported)
- Database lifecycle per test (SQLite file by default, PostgreSQL via
  testcontainers when ``STUMPER_TEST_POSTGRES=1``)
- Service container and individual service fixtures
- Content factories and an event recorder
- Mocks for unit tests

Architecture Notes
------------------
- Unit tests use pure functions and mocks (fast, isolated)
- Integration tests go through ``DatabaseService`` exactly like the
  application does, so transactions and unique constraints are real
- Every integration test starts from an empty schema
"""

from __future__ import annotations

import os

os.environ.setdefault("TESTING", "true")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("EVENT_LISTENER_TIMEOUT_SECONDS", "30")

from datetime import date, timedelta
from typing import Any, AsyncGenerator, Dict, Generator, List, Optional, Sequence, Tuple

import pytest
import pytest_asyncio
from sqlalchemy import update

from src.core.config import Config
from src.core.database.base import utc_now
from src.core.database.service import DatabaseService
from src.core.event.bus import EventBus
from src.core.logging.logger import get_logger
from src.core.services.container import ServiceContainer
from src.database.models import (
    Category,
    Game,
    GameQuestion,
    GameStatus,
    GuestSession,
    KnowledgeCategory,
    Question,
    Round,
)

Config.load()

logger = get_logger(__name__)

USE_POSTGRES = os.getenv("STUMPER_TEST_POSTGRES", "").lower() in {"1", "true", "yes"}


# ============================================================================
# TESTCONTAINERS FIXTURES (optional PostgreSQL backend)
# ============================================================================


@pytest.fixture(scope="session")
def postgres_container() -> Generator[Any, None, None]:
    """
    Start a PostgreSQL testcontainer.

    Scope: session (container persists across all tests)
    Uses: Only requested when STUMPER_TEST_POSTGRES=1
    """
    from testcontainers.postgres import PostgresContainer

    logger.info("Starting PostgreSQL testcontainer...")
    container = PostgresContainer(image="postgres:17-alpine", driver="asyncpg")
    container.start()
    logger.info("PostgreSQL testcontainer started")

    yield container

    logger.info("Stopping PostgreSQL testcontainer...")
    container.stop()


@pytest.fixture
def database_url(request, tmp_path) -> str:
    """Connection URL for this test's database."""
    if USE_POSTGRES:
        container = request.getfixturevalue("postgres_container")
        return container.get_connection_url().replace("psycopg2", "asyncpg")
    return f"sqlite+aiosqlite:///{tmp_path / 'stumper-test.db'}"


# ============================================================================
# DATABASE FIXTURES (Integration Tests)
# ============================================================================


@pytest_asyncio.fixture
async def database(database_url: str) -> AsyncGenerator[None, None]:
    """
    Initialize DatabaseService against an empty schema.

    Scope: function (clean slate per test)
    """
    await DatabaseService.initialize(database_url)
    if USE_POSTGRES:
        await DatabaseService.drop_all()
    await DatabaseService.create_all()

    yield

    await DatabaseService.shutdown()


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest_asyncio.fixture
async def services(database, event_bus: EventBus) -> AsyncGenerator[ServiceContainer, None]:
    """Fully wired service container, achievement listeners included."""
    container = ServiceContainer(
        config=Config,
        event_bus=event_bus,
        logger=get_logger("tests.services"),
    )
    await container.initialize()

    yield container

    await container.shutdown()


@pytest_asyncio.fixture
async def seeded_catalog(services: ServiceContainer) -> int:
    return await services.achievements.seed_catalog()


@pytest.fixture
def override_service(services):
    return services.answer_overrides


@pytest.fixture
def dispute_service(services):
    return services.answer_disputes


@pytest.fixture
def progress_service(services):
    return services.progress


@pytest.fixture
def guest_config_service(services):
    return services.guest_config


@pytest.fixture
def guest_session_service(services):
    return services.guest_sessions


@pytest.fixture
def guest_play_service(services):
    return services.guest_play


@pytest.fixture
def claim_service(services):
    return services.guest_claim


@pytest.fixture
def daily_service(services):
    return services.daily_challenge


@pytest.fixture
def game_service(services):
    return services.games


@pytest.fixture
def achievement_service(services):
    return services.achievements


# ============================================================================
# EVENT RECORDER
# ============================================================================


class EventRecorder:
    """
    Captures payloads published on an EventBus.

    Usage:
        recorder.watch("daily.challenge_created")
        ...
        assert recorder.payloads("daily.challenge_created")
    """

    def __init__(self, bus: EventBus) -> None:
        self._bus = bus
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def watch(self, *event_names: str) -> "EventRecorder":
        for event_name in event_names:
            self._bus.subscribe(
                event_name,
                self._capture(event_name),
                identifier=f"tests.recorder@{event_name}",
            )
        return self

    def _capture(self, event_name: str):
        def listener(payload: Dict[str, Any]) -> None:
            self.events.append((event_name, dict(payload)))

        return listener

    def payloads(self, event_name: str) -> List[Dict[str, Any]]:
        return [payload for name, payload in self.events if name == event_name]


@pytest.fixture
def recorder(event_bus: EventBus) -> EventRecorder:
    return EventRecorder(event_bus)


# ============================================================================
# CONTENT FACTORIES
# ============================================================================


class ContentFactory:
    """Inserts content rows the engine treats as read-only."""

    def __init__(self) -> None:
        self._sequence = 0

    def _next(self) -> int:
        self._sequence += 1
        return self._sequence

    async def category(self, name: Optional[str] = None) -> Category:
        category = Category(name=name or f"Category {self._next()}")
        async with DatabaseService.get_transaction() as session:
            session.add(category)
        return category

    async def question(
        self,
        category: Optional[Category] = None,
        *,
        answer: str = "Paris",
        value: Optional[int] = 200,
        round: Round = Round.SINGLE,
        knowledge_category: KnowledgeCategory = KnowledgeCategory.GEOGRAPHY_AND_HISTORY,
        air_date: Optional[date] = None,
        season: Optional[int] = None,
        episode_id: Optional[str] = None,
        was_triple_stumper: bool = False,
    ) -> Question:
        if category is None:
            category = await self.category()
        question = Question(
            question=f"Clue number {self._next()}",
            answer=answer,
            value=value,
            category_id=category.id,
            knowledge_category=knowledge_category,
            round=round,
            air_date=air_date,
            season=season,
            episode_id=episode_id,
            was_triple_stumper=was_triple_stumper,
        )
        async with DatabaseService.get_transaction() as session:
            session.add(question)
        return question

    async def final_question(
        self,
        air_date: date,
        *,
        episode_id: Optional[str] = None,
        season: Optional[int] = None,
        answer: str = "Abraham Lincoln",
        category: Optional[Category] = None,
    ) -> Question:
        return await self.question(
            category,
            answer=answer,
            value=None,
            round=Round.FINAL,
            air_date=air_date,
            season=season,
            episode_id=episode_id,
        )

    async def final_pool(
        self, count: int, newest: date, *, category: Optional[Category] = None
    ) -> List[Question]:
        """``count`` final-round questions from distinct episodes, a week apart."""
        if category is None:
            category = await self.category()
        pool = []
        for index in range(count):
            air_date = newest - timedelta(days=7 * index)
            pool.append(
                await self.final_question(
                    air_date,
                    episode_id=f"ep-{air_date.isoformat()}",
                    category=category,
                )
            )
        return pool

    async def game(
        self,
        user_id: str,
        questions: Sequence[Tuple[Question, bool, Optional[bool]]] = (),
        *,
        current_score: int = 0,
        status: GameStatus = GameStatus.IN_PROGRESS,
    ) -> Game:
        """A board game with (question, answered, correct) entries."""
        game = Game(
            user_id=user_id,
            seed=f"seed-{self._next()}",
            status=status,
            current_round=Round.SINGLE,
            current_score=current_score,
            completed=status is GameStatus.COMPLETED,
        )
        async with DatabaseService.get_transaction() as session:
            session.add(game)
            await session.flush()
            for question, answered, correct in questions:
                session.add(
                    GameQuestion(
                        game_id=game.id,
                        question_id=question.id,
                        answered=answered,
                        correct=correct,
                    )
                )
        return game


@pytest.fixture
def content(database) -> ContentFactory:
    return ContentFactory()


async def expire_guest_session(session_id: str) -> None:
    """Move a guest session's expiry into the past."""
    async with DatabaseService.get_transaction() as session:
        await session.execute(
            update(GuestSession)
            .where(GuestSession.id == session_id)
            .values(expires_at=utc_now() - timedelta(minutes=1))
        )


# ============================================================================
# MOCK FIXTURES (Unit Tests)
# ============================================================================


@pytest.fixture
def mock_event_bus(mocker):
    """
    Mock EventBus for unit tests.

    Scope: function
    Uses: Unit tests that need to observe event publishing
    """
    mock_bus = mocker.MagicMock()
    mock_bus.publish = mocker.AsyncMock(return_value=[])
    mock_bus.subscribe = mocker.MagicMock()
    return mock_bus
