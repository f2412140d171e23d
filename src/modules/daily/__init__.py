"""
Daily Module
============

Domain: one final-round question per calendar date

Services:
- DailyChallengeService: scheduling and attempts

Pure helpers:
- dates: active challenge date and next unlock time
"""

from .challenge_service import DailyChallengeService
from .dates import get_active_challenge_date, get_next_unlock_time, is_challenge_unlocked

__all__ = [
    "DailyChallengeService",
    "get_active_challenge_date",
    "get_next_unlock_time",
    "is_challenge_unlocked",
]
