"""
Play domain ORM models.

Exports:
- User
- GameHistory
- UserProgress
- Game
- GameQuestion
"""

from .game import Game, GameQuestion
from .game_history import GameHistory
from .user import User
from .user_progress import UserProgress

__all__ = [
    "Game",
    "GameHistory",
    "GameQuestion",
    "User",
    "UserProgress",
]
