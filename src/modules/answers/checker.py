"""
Answer equivalence checking.

Decides whether a player's free-text answer matches a candidate answer
(the canonical answer or one of its overrides). Matching is deterministic:
both sides are normalized, and a bounded number of typos is tolerated in
proportion to the candidate's length. There is no synonym matching.

    accepted  <=>  levenshtein(user, candidate) <= floor(ratio * len(candidate))

with ``ratio`` taken from ``Config.ANSWER_TOLERANCE_RATIO`` (0.2 by default).
For "paris" (length 5) one typo is allowed: "parus" passes, "parux" fails.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Optional

from src.core.config.config import Config
from src.modules.answers.normalizer import normalize_answer


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance (insert, delete, substitute all cost 1)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Iterate over the shorter string to keep the row small.
    if len(a) < len(b):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + cost,
                )
            )
        previous = current
    return previous[-1]


def max_allowed_distance(candidate_length: int, tolerance_ratio: float) -> int:
    """floor(ratio * length); rounded first so 0.2 * 15 is 3, not 2."""
    return math.floor(round(candidate_length * tolerance_ratio, 9))


def _override_text(override: Any) -> str:
    if isinstance(override, str):
        return override
    return getattr(override, "text", "") or ""


class AnswerChecker:
    """
    Normalizing, typo-tolerant answer comparison.

    Args:
        tolerance_ratio: Share of the candidate's cleaned length allowed as
            edit distance. Defaults to ``Config.ANSWER_TOLERANCE_RATIO``.
    """

    def __init__(self, tolerance_ratio: Optional[float] = None) -> None:
        if tolerance_ratio is None:
            tolerance_ratio = Config.ANSWER_TOLERANCE_RATIO
        if not 0.0 <= tolerance_ratio <= 1.0:
            raise ValueError(
                f"tolerance_ratio must be between 0 and 1, got {tolerance_ratio}"
            )
        self.tolerance_ratio = float(tolerance_ratio)

    def is_equivalent(self, user_text: str, candidate_text: str) -> bool:
        """
        True if ``user_text`` matches ``candidate_text``.

        Directional: the tolerance is measured against the candidate.
        """
        cleaned_candidate = normalize_answer(candidate_text or "")
        cleaned_user = normalize_answer(user_text or "")
        if cleaned_user == cleaned_candidate:
            return True

        allowed = max_allowed_distance(len(cleaned_candidate), self.tolerance_ratio)
        if allowed == 0:
            return False
        # Lengths alone already exceed the budget.
        if abs(len(cleaned_user) - len(cleaned_candidate)) > allowed:
            return False
        return levenshtein_distance(cleaned_user, cleaned_candidate) <= allowed

    def is_answer_accepted(
        self,
        user_text: str,
        canonical_text: str,
        overrides: Iterable[Any] = (),
    ) -> bool:
        """
        True if the canonical answer or any override matches.

        ``overrides`` may hold strings or objects with a ``text`` attribute
        (``AnswerOverride`` rows).
        """
        if self.is_equivalent(user_text, canonical_text):
            return True
        for override in overrides:
            text = _override_text(override)
            if text and self.is_equivalent(user_text, text):
                return True
        return False


def is_equivalent(user_text: str, candidate_text: str) -> bool:
    """Module-level shortcut using the configured tolerance ratio."""
    return AnswerChecker().is_equivalent(user_text, candidate_text)


def is_answer_accepted(
    user_text: str, canonical_text: str, overrides: Iterable[Any] = ()
) -> bool:
    """Module-level shortcut using the configured tolerance ratio."""
    return AnswerChecker().is_answer_accepted(user_text, canonical_text, overrides)
