"""
Guest Module
============

Domain: anonymous trial play and its one-time migration to a user

Services:
- GuestConfigService: trial thresholds singleton
- GuestSessionService: session lifecycle, quota checks, stats
- GuestPlayService: guest practice questions and quick-play boards
- GuestClaimService: exactly-once claim transaction

Pure helpers:
- check_limit / LimitDecision: trial policy
- QuestionOutcome / DailyChallengeOutcome: session payloads
"""

from .claim_service import ClaimResult, GuestClaimService, practice_redirect
from .config_service import GuestConfigService, GuestConfigSnapshot
from .payloads import DailyChallengeOutcome, QuestionOutcome, generate_seed
from .play_service import DEFAULT_GAME_CONFIG, GuestPlayService
from .policy import LimitDecision, check_limit
from .session_service import GuestSessionService

__all__ = [
    "ClaimResult",
    "DEFAULT_GAME_CONFIG",
    "DailyChallengeOutcome",
    "GuestClaimService",
    "GuestConfigService",
    "GuestConfigSnapshot",
    "GuestPlayService",
    "GuestSessionService",
    "LimitDecision",
    "QuestionOutcome",
    "check_limit",
    "generate_seed",
    "practice_redirect",
]
