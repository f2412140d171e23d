"""
Daily challenge domain ORM models.

Exports:
- DailyChallenge
- UserDailyChallenge
"""

from .daily_challenge import DailyChallenge, UserDailyChallenge

__all__ = [
    "DailyChallenge",
    "UserDailyChallenge",
]
