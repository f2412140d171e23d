"""
Achievement domain ORM models.

Exports:
- Achievement
- UserAchievement
"""

from .achievement import Achievement, UserAchievement

__all__ = [
    "Achievement",
    "UserAchievement",
]
