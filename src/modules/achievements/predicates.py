"""
Achievement unlock rules.

Every catalog code that can be earned through play has a predicate here:
a pure function of an ``EvaluationContext`` (the triggering event, the
user's streak fields, lazily loaded lifetime stats and the codes already
unlocked). Nothing in this module touches the store, so the rules can be
tested exhaustively without a database.

Thresholds are ``>=`` except ``SCORE_1984`` (exact). Accuracy codes need
the full sample: 80% over the latest 50 answers, 90% over 100, 95% over
200.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, FrozenSet, Mapping, Optional, Sequence, Set, Tuple

from src.core.database.base import utc_now
from src.database.models import KnowledgeCategory, Round


class AchievementEventKind(str, enum.Enum):
    GAME_COMPLETED = "GAME_COMPLETED"
    QUESTION_ANSWERED = "QUESTION_ANSWERED"
    DAILY_CHALLENGE_COMPLETED = "DAILY_CHALLENGE_COMPLETED"
    STREAK_UPDATED = "STREAK_UPDATED"
    SCORE_REACHED = "SCORE_REACHED"


@dataclass(frozen=True)
class AchievementEvent:
    """A lifecycle event that may unlock achievements."""

    kind: AchievementEventKind
    game_id: Optional[str] = None
    final_score: Optional[int] = None
    question_id: Optional[str] = None
    correct: Optional[bool] = None
    challenge_id: Optional[str] = None
    current_streak: Optional[int] = None
    previous_game_date: Optional[date] = None
    occurred_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class UserSnapshot:
    current_streak: int = 0
    longest_streak: int = 0
    last_game_date: Optional[date] = None


@dataclass(frozen=True)
class GameQuestionState:
    round: Round
    answered: bool
    correct: Optional[bool]


@dataclass(frozen=True)
class AchievementStats:
    """Lifetime aggregates a predicate may consult."""

    total_questions: int = 0
    total_correct: int = 0
    total_triple_stumpers: int = 0
    total_games: int = 0
    daily_challenges_completed: int = 0
    daily_challenge_streak: int = 0
    final_jeopardy_correct: int = 0
    # Distinct correctly answered questions per knowledge category
    category_counts: Mapping[KnowledgeCategory, int] = field(default_factory=dict)
    # Latest answers first
    recent_results: Tuple[bool, ...] = ()
    game_questions: Tuple[GameQuestionState, ...] = ()


@dataclass
class EvaluationContext:
    event: AchievementEvent
    user: UserSnapshot
    stats: AchievementStats
    unlocked: Set[str]


Predicate = Callable[[EvaluationContext], bool]

CATEGORY_MASTER_THRESHOLD = 50
RETURNING_PLAYER_GAP_DAYS = 7
MIDNIGHT_WINDOW_END_HOUR = 3

HIDDEN_SET_CODES: Tuple[str, ...] = (
    "STREAK_69",
    "QUESTIONS_1337",
    "SCORE_1984",
    "DAILY_CHALLENGE_MIDNIGHT",
    "PERFECT_ROUND_DOUBLE_JEOPARDY",
)

CATEGORY_MASTER_CODES: Dict[str, KnowledgeCategory] = {
    "CATEGORY_MASTER_GEOGRAPHY": KnowledgeCategory.GEOGRAPHY_AND_HISTORY,
    "CATEGORY_MASTER_ENTERTAINMENT": KnowledgeCategory.ENTERTAINMENT,
    "CATEGORY_MASTER_ARTS": KnowledgeCategory.ARTS_AND_LITERATURE,
    "CATEGORY_MASTER_SCIENCE": KnowledgeCategory.SCIENCE_AND_NATURE,
    "CATEGORY_MASTER_SPORTS": KnowledgeCategory.SPORTS_AND_LEISURE,
    "CATEGORY_MASTER_GENERAL": KnowledgeCategory.GENERAL_KNOWLEDGE,
}

ACCURACY_RULES: Dict[str, Tuple[int, float]] = {
    "ACCURACY_80_PERCENT": (50, 0.80),
    "ACCURACY_90_PERCENT": (100, 0.90),
    "ACCURACY_95_PERCENT": (200, 0.95),
}

ACCURACY_WINDOW = max(sample for sample, _ in ACCURACY_RULES.values())


# ============================================================================
# Building blocks
# ============================================================================


def _at_least(getter: Callable[[EvaluationContext], Optional[int]], threshold: int) -> Predicate:
    def predicate(ctx: EvaluationContext) -> bool:
        value = getter(ctx)
        return value is not None and value >= threshold

    return predicate


def _streak(ctx: EvaluationContext) -> int:
    if ctx.event.current_streak is not None:
        return ctx.event.current_streak
    return ctx.user.current_streak


def _final_score(ctx: EvaluationContext) -> Optional[int]:
    return ctx.event.final_score


def accuracy_reached(results: Sequence[bool], sample_size: int, ratio: float) -> bool:
    """True if the latest ``sample_size`` results exist and meet ``ratio``."""
    if len(results) < sample_size:
        return False
    window = results[:sample_size]
    return sum(1 for correct in window if correct) / sample_size >= ratio


def perfect_round(questions: Sequence[GameQuestionState], round_: Optional[Round] = None) -> bool:
    """Every answered question (of ``round_`` when given) was correct; needs one answer."""
    answered = [
        q for q in questions if q.answered and (round_ is None or q.round is round_)
    ]
    return bool(answered) and all(q.correct for q in answered)


def perfect_game(questions: Sequence[GameQuestionState]) -> bool:
    """Every question of the game was answered, and answered correctly."""
    return bool(questions) and all(q.answered and q.correct for q in questions)


def daily_challenge_streak(challenge_dates: Sequence[date], today: date) -> int:
    """
    Consecutive challenge dates ending at ``today``.

    ``challenge_dates`` must be newest first; the run stops at the first gap.
    """
    streak = 0
    for offset, challenge_date in enumerate(challenge_dates):
        if (today - challenge_date).days != offset:
            break
        streak += 1
    return streak


def _game_completed(ctx: EvaluationContext) -> bool:
    return ctx.event.kind is AchievementEventKind.GAME_COMPLETED and ctx.event.game_id is not None


def _returning_player(ctx: EvaluationContext) -> bool:
    previous = ctx.event.previous_game_date
    if previous is None or _streak(ctx) != 1:
        return False
    gap = (ctx.event.occurred_at.date() - previous).days
    return gap >= RETURNING_PLAYER_GAP_DAYS


def _midnight(ctx: EvaluationContext) -> bool:
    return (
        ctx.event.kind is AchievementEventKind.DAILY_CHALLENGE_COMPLETED
        and ctx.event.occurred_at.hour < MIDNIGHT_WINDOW_END_HOUR
    )


def _category_master(category: KnowledgeCategory) -> Predicate:
    return lambda ctx: ctx.stats.category_counts.get(category, 0) >= CATEGORY_MASTER_THRESHOLD


def _all_categories(ctx: EvaluationContext) -> bool:
    return all(
        ctx.stats.category_counts.get(category, 0) >= CATEGORY_MASTER_THRESHOLD
        for category in KnowledgeCategory
    )


def _accuracy(sample_size: int, ratio: float) -> Predicate:
    return lambda ctx: accuracy_reached(ctx.stats.recent_results, sample_size, ratio)


def _all_hidden(ctx: EvaluationContext) -> bool:
    return all(code in ctx.unlocked for code in HIDDEN_SET_CODES)


# ============================================================================
# Registry
# ============================================================================

PREDICATES: Dict[str, Predicate] = {
    # Onboarding
    "FIRST_GAME": _at_least(lambda ctx: ctx.stats.total_games, 1),
    "FIRST_CORRECT": _at_least(lambda ctx: ctx.stats.total_correct, 1),
    "FIRST_DAILY_CHALLENGE": _at_least(lambda ctx: ctx.stats.daily_challenges_completed, 1),
    "FIRST_TRIPLE_STUMPER": _at_least(lambda ctx: ctx.stats.total_triple_stumpers, 1),
    "FIRST_PERFECT_ROUND": lambda ctx: _game_completed(ctx)
    and perfect_round(ctx.stats.game_questions),
    # Streaks
    "RETURNING_PLAYER": _returning_player,
    # Skill
    "PERFECT_ROUND": lambda ctx: _game_completed(ctx)
    and perfect_round(ctx.stats.game_questions),
    "PERFECT_GAME": lambda ctx: _game_completed(ctx) and perfect_game(ctx.stats.game_questions),
    "SCORE_1984": lambda ctx: ctx.event.final_score == 1984,
    "FINAL_JEOPARDY_CORRECT": _at_least(lambda ctx: ctx.stats.final_jeopardy_correct, 1),
    "FINAL_JEOPARDY_STREAK_5": _at_least(lambda ctx: ctx.stats.final_jeopardy_correct, 5),
    # Knowledge
    "ALL_CATEGORIES_MASTER": _all_categories,
    # Hidden
    "DAILY_CHALLENGE_MIDNIGHT": _midnight,
    "PERFECT_ROUND_DOUBLE_JEOPARDY": lambda ctx: _game_completed(ctx)
    and perfect_round(ctx.stats.game_questions, Round.DOUBLE),
    "ALL_HIDDEN": _all_hidden,
}

for _days in (3, 7, 14, 30, 69, 100):
    PREDICATES[f"STREAK_{_days}"] = _at_least(_streak, _days)
for _days in (3, 7, 30):
    PREDICATES[f"DAILY_CHALLENGE_STREAK_{_days}"] = _at_least(
        lambda ctx: ctx.stats.daily_challenge_streak, _days
    )
for _count in (50, 100, 500, 1000, 1337, 5000):
    PREDICATES[f"QUESTIONS_{_count}"] = _at_least(lambda ctx: ctx.stats.total_questions, _count)
for _count in (10, 50, 100):
    PREDICATES[f"TRIPLE_STUMPER_{_count}"] = _at_least(
        lambda ctx: ctx.stats.total_triple_stumpers, _count
    )
    PREDICATES[f"GAMES_COMPLETED_{_count}"] = _at_least(lambda ctx: ctx.stats.total_games, _count)
for _score in (5000, 10000, 15000, 20000, 30000):
    PREDICATES[f"SCORE_{_score}"] = _at_least(_final_score, _score)
for _code, _category in CATEGORY_MASTER_CODES.items():
    PREDICATES[_code] = _category_master(_category)
for _code, (_sample, _ratio) in ACCURACY_RULES.items():
    PREDICATES[_code] = _accuracy(_sample, _ratio)

# Codes whose predicates read nothing but the event and the user row
EVENT_ONLY_CODES: FrozenSet[str] = frozenset(
    {f"STREAK_{days}" for days in (3, 7, 14, 30, 69, 100)}
    | {f"SCORE_{score}" for score in (5000, 10000, 15000, 20000, 30000, 1984)}
    | {"RETURNING_PLAYER", "DAILY_CHALLENGE_MIDNIGHT", "ALL_HIDDEN"}
)


def qualifies(code: str, ctx: EvaluationContext) -> bool:
    """Whether ``code`` is earned in ``ctx``; unknown codes never are."""
    predicate = PREDICATES.get(code)
    return predicate is not None and predicate(ctx)
