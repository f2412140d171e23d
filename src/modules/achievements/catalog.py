"""
Achievement catalog.

Display metadata comes from the packaged ``catalog.yaml``; which codes an
event can unlock is declared here in ``EVENT_ACHIEVEMENTS`` so evaluation
only runs the predicates relevant to that event. ``ALL_HIDDEN`` is listed
last for every event: it depends on unlocks made earlier in the same pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml

from src.core.logging.logger import get_logger
from src.database.models import AchievementCategory
from src.modules.achievements.predicates import HIDDEN_SET_CODES, AchievementEventKind

logger = get_logger(__name__)

CATALOG_PATH = Path(__file__).with_name("catalog.yaml")


@dataclass(frozen=True)
class AchievementDefinition:
    code: str
    name: str
    description: str
    icon: str
    category: AchievementCategory
    tier: int
    is_hidden: bool = False

    def to_row(self) -> Dict[str, object]:
        return {
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "category": self.category,
            "tier": self.tier,
            "is_hidden": self.is_hidden,
        }


_SCORE_CODES: Tuple[str, ...] = (
    "SCORE_5000",
    "SCORE_10000",
    "SCORE_15000",
    "SCORE_20000",
    "SCORE_30000",
    "SCORE_1984",
)

EVENT_ACHIEVEMENTS: Dict[AchievementEventKind, Tuple[str, ...]] = {
    AchievementEventKind.GAME_COMPLETED: (
        "FIRST_GAME",
        "FIRST_PERFECT_ROUND",
        "PERFECT_ROUND",
        "PERFECT_GAME",
        "PERFECT_ROUND_DOUBLE_JEOPARDY",
        *_SCORE_CODES,
        "GAMES_COMPLETED_10",
        "GAMES_COMPLETED_50",
        "GAMES_COMPLETED_100",
        "ALL_HIDDEN",
    ),
    AchievementEventKind.QUESTION_ANSWERED: (
        "FIRST_CORRECT",
        "FIRST_TRIPLE_STUMPER",
        "QUESTIONS_50",
        "QUESTIONS_100",
        "QUESTIONS_500",
        "QUESTIONS_1000",
        "QUESTIONS_5000",
        "QUESTIONS_1337",
        "TRIPLE_STUMPER_10",
        "TRIPLE_STUMPER_50",
        "TRIPLE_STUMPER_100",
        "ACCURACY_80_PERCENT",
        "ACCURACY_90_PERCENT",
        "ACCURACY_95_PERCENT",
        "FINAL_JEOPARDY_CORRECT",
        "FINAL_JEOPARDY_STREAK_5",
        "CATEGORY_MASTER_GEOGRAPHY",
        "CATEGORY_MASTER_ENTERTAINMENT",
        "CATEGORY_MASTER_ARTS",
        "CATEGORY_MASTER_SCIENCE",
        "CATEGORY_MASTER_SPORTS",
        "CATEGORY_MASTER_GENERAL",
        "ALL_CATEGORIES_MASTER",
        "ALL_HIDDEN",
    ),
    AchievementEventKind.DAILY_CHALLENGE_COMPLETED: (
        "FIRST_DAILY_CHALLENGE",
        "DAILY_CHALLENGE_STREAK_3",
        "DAILY_CHALLENGE_STREAK_7",
        "DAILY_CHALLENGE_STREAK_30",
        "DAILY_CHALLENGE_MIDNIGHT",
        "ALL_HIDDEN",
    ),
    AchievementEventKind.STREAK_UPDATED: (
        "STREAK_3",
        "STREAK_7",
        "STREAK_14",
        "STREAK_30",
        "STREAK_100",
        "STREAK_69",
        "RETURNING_PLAYER",
        "ALL_HIDDEN",
    ),
    AchievementEventKind.SCORE_REACHED: (*_SCORE_CODES, "ALL_HIDDEN"),
}


class CatalogError(ValueError):
    """The catalog file is malformed."""


def parse_catalog(data: object) -> List[AchievementDefinition]:
    """Build definitions from the YAML document (category -> list of entries)."""
    if not isinstance(data, dict):
        raise CatalogError("Achievement catalog root must be a mapping of categories")

    definitions: List[AchievementDefinition] = []
    seen: set = set()
    for category_name, entries in data.items():
        try:
            category = AchievementCategory(category_name)
        except ValueError as exc:
            raise CatalogError(f"Unknown achievement category: {category_name}") from exc

        for entry in entries or []:
            try:
                definition = AchievementDefinition(
                    code=str(entry["code"]),
                    name=str(entry["name"]),
                    description=str(entry["description"]),
                    icon=str(entry["icon"]),
                    category=category,
                    tier=int(entry["tier"]),
                    is_hidden=category is AchievementCategory.HIDDEN,
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise CatalogError(
                    f"Invalid achievement entry in '{category_name}': {entry!r}"
                ) from exc
            if definition.code in seen:
                raise CatalogError(f"Duplicate achievement code: {definition.code}")
            seen.add(definition.code)
            definitions.append(definition)
    return definitions


@lru_cache(maxsize=1)
def load_catalog(path: Optional[Path] = None) -> Tuple[AchievementDefinition, ...]:
    """Parse the packaged catalog once per process."""
    catalog_path = path or CATALOG_PATH
    with catalog_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)

    definitions = tuple(parse_catalog(data))
    logger.debug(
        "Achievement catalog loaded",
        extra={"file": str(catalog_path), "definition_count": len(definitions)},
    )
    return definitions


def get_definition(code: str) -> Optional[AchievementDefinition]:
    return next((d for d in load_catalog() if d.code == code), None)


def codes_for_event(kind: AchievementEventKind) -> Tuple[str, ...]:
    return EVENT_ACHIEVEMENTS.get(AchievementEventKind(kind), ())


__all__ = [
    "AchievementDefinition",
    "CATALOG_PATH",
    "CatalogError",
    "EVENT_ACHIEVEMENTS",
    "HIDDEN_SET_CODES",
    "codes_for_event",
    "get_definition",
    "load_catalog",
    "parse_catalog",
]
