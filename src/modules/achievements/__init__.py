"""
Achievements Module
===================

Domain: milestone catalog, unlock predicates and idempotent unlocks

- AchievementService: seeds the catalog, evaluates events, lists unlocks
- catalog: definitions loaded from ``catalog.yaml`` and the event routing
- predicates: pure unlock rules over an EvaluationContext
"""

from .catalog import (
    AchievementDefinition,
    CatalogError,
    codes_for_event,
    get_definition,
    load_catalog,
)
from .predicates import (
    AchievementEvent,
    AchievementEventKind,
    AchievementStats,
    EvaluationContext,
    UserSnapshot,
    qualifies,
)
from .service import AchievementService

__all__ = [
    "AchievementDefinition",
    "AchievementEvent",
    "AchievementEventKind",
    "AchievementService",
    "AchievementStats",
    "CatalogError",
    "EvaluationContext",
    "UserSnapshot",
    "codes_for_event",
    "get_definition",
    "load_catalog",
    "qualifies",
]
