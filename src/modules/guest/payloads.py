"""
Guest session payloads.

The payload column is a closed tagged union keyed by ``GuestSessionKind``:

- RANDOM_QUESTION  -> ``QuestionOutcome``
- DAILY_CHALLENGE  -> ``DailyChallengeOutcome``
- RANDOM_GAME      -> ``{"seed", "config"}``; the board itself lives in
  the GuestGame rows

Readers never trust the stored JSON: ``from_payload`` tolerates missing
keys and ``is_recorded`` says whether there is an outcome worth crediting.
"""

from __future__ import annotations

import secrets
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Union

from src.core.database.base import utc_now
from src.database.models import GuestSessionKind

SEED_BYTES = 8


def generate_seed() -> str:
    """URL-safe random board seed."""
    return secrets.token_urlsafe(SEED_BYTES)


def _timestamp() -> str:
    return utc_now().isoformat()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class QuestionOutcome:
    """A single answered practice question played as a guest."""

    question_id: Optional[str]
    correct: Optional[bool]
    points: Optional[int]
    user_answer: Optional[str] = None
    category_name: Optional[str] = None
    knowledge_category: Optional[str] = None
    timestamp: str = field(default_factory=_timestamp)

    kind = GuestSessionKind.RANDOM_QUESTION

    @property
    def is_recorded(self) -> bool:
        return (
            bool(self.question_id)
            and isinstance(self.correct, bool)
            and _is_number(self.points)
        )

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "QuestionOutcome":
        payload = payload or {}
        return cls(
            question_id=payload.get("question_id"),
            correct=payload.get("correct"),
            points=payload.get("points"),
            user_answer=payload.get("user_answer"),
            category_name=payload.get("category_name"),
            knowledge_category=payload.get("knowledge_category"),
            timestamp=payload.get("timestamp") or _timestamp(),
        )


@dataclass(frozen=True)
class DailyChallengeOutcome:
    """A daily challenge attempt made as a guest."""

    challenge_id: Optional[str]
    question_id: Optional[str]
    correct: Optional[bool]
    user_answer: Optional[str] = None
    timestamp: str = field(default_factory=_timestamp)

    kind = GuestSessionKind.DAILY_CHALLENGE

    @property
    def is_recorded(self) -> bool:
        return bool(self.challenge_id) and isinstance(self.correct, bool)

    @property
    def completed_at(self) -> Optional[datetime]:
        try:
            return datetime.fromisoformat(self.timestamp)
        except (TypeError, ValueError):
            return None

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "DailyChallengeOutcome":
        payload = payload or {}
        return cls(
            challenge_id=payload.get("challenge_id"),
            question_id=payload.get("question_id"),
            correct=payload.get("correct"),
            user_answer=payload.get("user_answer"),
            timestamp=payload.get("timestamp") or _timestamp(),
        )


GuestPayload = Union[QuestionOutcome, DailyChallengeOutcome, Dict[str, Any]]


def payload_to_json(
    kind: GuestSessionKind, payload: Optional[GuestPayload]
) -> Optional[Dict[str, Any]]:
    """
    Serialize a payload for storage, rejecting one of the wrong kind.

    Raises:
        ValueError: If a typed outcome does not belong to ``kind``
    """
    if payload is None:
        return None
    if isinstance(payload, (QuestionOutcome, DailyChallengeOutcome)):
        if payload.kind is not kind:
            raise ValueError(
                f"{type(payload).__name__} cannot be stored on a {kind.value} session"
            )
        return payload.to_payload()
    return dict(payload)
