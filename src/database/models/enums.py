"""
Database Model Enums
====================

Type-safe constants for categorical columns. Values are the upper-case
member names so stored rows read the same on every backend.

Declarative schema helpers only, not business logic containers.
"""

from __future__ import annotations

import enum


class KnowledgeCategory(str, enum.Enum):
    """Broad knowledge domain a question belongs to."""

    GEOGRAPHY_AND_HISTORY = "GEOGRAPHY_AND_HISTORY"
    ENTERTAINMENT = "ENTERTAINMENT"
    ARTS_AND_LITERATURE = "ARTS_AND_LITERATURE"
    SCIENCE_AND_NATURE = "SCIENCE_AND_NATURE"
    SPORTS_AND_LEISURE = "SPORTS_AND_LEISURE"
    GENERAL_KNOWLEDGE = "GENERAL_KNOWLEDGE"


class Round(str, enum.Enum):
    """Board round a question aired in."""

    SINGLE = "SINGLE"
    DOUBLE = "DOUBLE"
    FINAL = "FINAL"


class GameStatus(str, enum.Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ABANDONED = "ABANDONED"


class GuestSessionKind(str, enum.Enum):
    """
    The closed set of guest play surfaces.

    Each kind owns exactly one payload shape; the claim transaction
    switches over this tag.
    """

    RANDOM_QUESTION = "RANDOM_QUESTION"
    RANDOM_GAME = "RANDOM_GAME"
    DAILY_CHALLENGE = "DAILY_CHALLENGE"


class OverrideSource(str, enum.Enum):
    """Where an accepted alternative answer came from."""

    ADMIN = "ADMIN"
    DISPUTE = "DISPUTE"


class AchievementCategory(str, enum.Enum):
    ONBOARDING = "onboarding"
    STREAK = "streak"
    VOLUME = "volume"
    SKILL = "skill"
    KNOWLEDGE = "knowledge"
    HIDDEN = "hidden"


class DisputeStatus(str, enum.Enum):
    """Lifecycle of a user's answer dispute; only PENDING can be resolved."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class DisputeMode(str, enum.Enum):
    """Surface the disputed answer was given on."""

    GAME = "GAME"
    PRACTICE = "PRACTICE"
