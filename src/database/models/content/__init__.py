"""
Content domain ORM models (read-only to the engine, except overrides and disputes).

Exports:
- Category
- Question
- AnswerOverride
- AnswerDispute
"""

from .answer_dispute import AnswerDispute, pending_dispute_key
from .answer_override import AnswerOverride
from .category import Category
from .question import Question

__all__ = [
    "AnswerDispute",
    "AnswerOverride",
    "Category",
    "Question",
    "pending_dispute_key",
]
