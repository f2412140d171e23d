"""
Database Models Package
========================

All SQLAlchemy ORM models of the Stumper engine, organized by domain.

All models are:
- Schema-only, no business logic
- Declared with Mapped[] syntax and mapped_column()
- Built on the shared mixins (IdMixin, TimestampMixin) and portable
  column types (UTCDateTime, JSONType, enum_column)
- Guarded by unique constraints wherever an operation must happen
  exactly once

Domain Organization:
--------------------
- content: Categories, questions, accepted answer overrides and disputes
- play: Users, answer history, per-category progress, games
- guest: Guest sessions, guest boards, guest trial configuration
- daily: Daily challenges and their completions
- achievements: Achievement catalog and unlocks
- enums: Shared type-safe enumerations
"""

from src.core.database.base import Base

from .achievements import Achievement, UserAchievement
from .content import AnswerDispute, AnswerOverride, Category, Question
from .daily import DailyChallenge, UserDailyChallenge
from .guest import GUEST_CONFIG_ID, GuestConfig, GuestGame, GuestGameQuestion, GuestSession
from .play import Game, GameHistory, GameQuestion, User, UserProgress

from . import enums
from .enums import (
    AchievementCategory,
    DisputeMode,
    DisputeStatus,
    GameStatus,
    GuestSessionKind,
    KnowledgeCategory,
    OverrideSource,
    Round,
)

__all__ = [
    # Base
    "Base",
    # Content
    "AnswerDispute",
    "AnswerOverride",
    "Category",
    "Question",
    # Play
    "Game",
    "GameHistory",
    "GameQuestion",
    "User",
    "UserProgress",
    # Guest
    "GUEST_CONFIG_ID",
    "GuestConfig",
    "GuestGame",
    "GuestGameQuestion",
    "GuestSession",
    # Daily
    "DailyChallenge",
    "UserDailyChallenge",
    # Achievements
    "Achievement",
    "UserAchievement",
    # Enums
    "enums",
    "AchievementCategory",
    "DisputeMode",
    "DisputeStatus",
    "GameStatus",
    "GuestSessionKind",
    "KnowledgeCategory",
    "OverrideSource",
    "Round",
]
