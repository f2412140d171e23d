"""
Guest domain ORM models.

Exports:
- GuestSession
- GuestGame
- GuestGameQuestion
- GuestConfig
"""

from .guest_config import GUEST_CONFIG_ID, GuestConfig
from .guest_game import GuestGame, GuestGameQuestion
from .guest_session import GuestSession

__all__ = [
    "GUEST_CONFIG_ID",
    "GuestConfig",
    "GuestGame",
    "GuestGameQuestion",
    "GuestSession",
]
