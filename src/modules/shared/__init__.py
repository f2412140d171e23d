"""
Stumper Shared Module

Purpose
-------
Provides domain-level foundations for all engine modules:
- Domain exceptions
- Base service and repository patterns

Architecture
------------
- BaseService: Foundation for service classes (logging, config, events)
- BaseRepository: Type-safe database read patterns
- Domain exceptions: Player-facing errors and integrity rule violations

Usage
-----
    from src.modules.shared import (
        BaseService,
        BaseRepository,
        SessionNotFoundError,
    )
"""

from __future__ import annotations

from .base_repository import BaseRepository
from .base_service import BaseService
from .exceptions import (
    AuthenticationRequiredError,
    GuestLimitReachedError,
    InvalidOperationError,
    MigrationFailedError,
    NoEligibleQuestionError,
    NotFoundError,
    QuestionNotFoundError,
    SessionNotFoundError,
    StumperDomainException,
    ValidationError,
)

__all__ = [
    # Base patterns
    "BaseService",
    "BaseRepository",
    # Exceptions
    "StumperDomainException",
    "NotFoundError",
    "QuestionNotFoundError",
    "SessionNotFoundError",
    "MigrationFailedError",
    "NoEligibleQuestionError",
    "GuestLimitReachedError",
    "AuthenticationRequiredError",
    "ValidationError",
    "InvalidOperationError",
]
