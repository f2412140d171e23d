"""
Event System for Stumper.

Publishers emit after their transaction commits; listeners run with error
isolation. Each application container owns its own ``EventBus``.
"""

from .bus import EventBus
from .types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)

__all__ = [
    "EventBus",
    "EventPayload",
    "ListenerPriority",
    "EventListener",
    "CallbackType",
]
