"""
Games Module
============

Domain: board game completion and daily play streaks

Services:
- GameService: completes games, maintains streaks
"""

from .service import GameService, next_streak

__all__ = [
    "GameService",
    "next_streak",
]
