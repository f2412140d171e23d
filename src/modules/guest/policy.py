"""
Guest trial policy.

Pure decision over a ``GuestConfigSnapshot``: may a guest of a given kind
take one more step? Nothing here touches the store; callers fetch the
snapshot once and pass it in, before they increment their own counters.

Category and round caps apply only when set to a positive number and a
count is supplied; ``None`` or ``0`` means "no cap".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from src.database.models import GuestSessionKind

if TYPE_CHECKING:
    from src.modules.guest.config_service import GuestConfigSnapshot


@dataclass(frozen=True)
class LimitDecision:
    allowed: bool
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"allowed": self.allowed}
        if self.reason is not None:
            data["reason"] = self.reason
        return data


ALLOWED = LimitDecision(allowed=True)


def _questions_denied(limit: int) -> LimitDecision:
    return LimitDecision(False, f"Maximum {limit} question(s) allowed before sign-in")


def _categories_denied(limit: int) -> LimitDecision:
    return LimitDecision(False, f"Maximum {limit} categor(ies) allowed before sign-in")


def _rounds_denied(limit: int) -> LimitDecision:
    return LimitDecision(False, f"Maximum {limit} round(s) allowed before sign-in")


def _cap_reached(cap: Optional[int], count: Optional[int]) -> bool:
    return bool(cap) and bool(count) and count >= cap


def check_limit(
    kind: GuestSessionKind,
    current_count: int,
    config: GuestConfigSnapshot,
    category_count: Optional[int] = None,
    round_count: Optional[int] = None,
) -> LimitDecision:
    """
    Decide whether a guest may continue.

    Args:
        kind: Guest session kind being played
        current_count: Questions (or daily attempts) already counted
        config: Thresholds to apply
        category_count: Distinct categories touched, if tracked
        round_count: Distinct rounds touched (RANDOM_GAME only)

    >>> check_limit(GuestSessionKind.DAILY_CHALLENGE, 1, GuestConfigSnapshot()).reason
    'Daily challenge requires sign-in'
    """
    kind = GuestSessionKind(kind)

    if kind is GuestSessionKind.RANDOM_QUESTION:
        if current_count >= config.random_question_max_questions_before_auth:
            return _questions_denied(config.random_question_max_questions_before_auth)
        cap = config.random_question_max_categories_before_auth
        if _cap_reached(cap, category_count):
            return _categories_denied(cap)
        return ALLOWED

    if kind is GuestSessionKind.RANDOM_GAME:
        if current_count >= config.random_game_max_questions_before_auth:
            return _questions_denied(config.random_game_max_questions_before_auth)
        cap = config.random_game_max_categories_before_auth
        if _cap_reached(cap, category_count):
            return _categories_denied(cap)
        cap = config.random_game_max_rounds_before_auth
        if _cap_reached(cap, round_count):
            return _rounds_denied(cap)
        return ALLOWED

    if current_count >= 1:
        return LimitDecision(False, "Daily challenge requires sign-in")
    return ALLOWED
