"""
Answers Module
==============

Domain: deciding whether a free-text answer is correct

- normalizer: canonical comparison form of answer text
- checker: typo-tolerant equivalence against canonical answers and overrides
- AnswerOverrideService: curated and dispute-resolved accepted phrasings
- AnswerDisputeService: user disputes and their admin resolution
"""

from .checker import (
    AnswerChecker,
    is_answer_accepted,
    is_equivalent,
    levenshtein_distance,
    max_allowed_distance,
)
from .dispute_service import AnswerDisputeService
from .normalizer import (
    normalize_answer,
    normalize_override_text,
    normalize_text,
    strip_answer_prefixes,
)
from .override_service import AnswerOverrideService

__all__ = [
    "AnswerChecker",
    "AnswerDisputeService",
    "AnswerOverrideService",
    "is_answer_accepted",
    "is_equivalent",
    "levenshtein_distance",
    "max_allowed_distance",
    "normalize_answer",
    "normalize_override_text",
    "normalize_text",
    "strip_answer_prefixes",
]
