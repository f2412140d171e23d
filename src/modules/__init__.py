"""
Domain modules of the Stumper engine.

- answers: normalization, fuzzy equivalence, accepted-answer overrides
- progress: answer history and per-category aggregates
- guest: trial sessions, quotas, guest boards and the claim transaction
- achievements: milestone catalog and idempotent unlocks
- daily: one final-round question per date
- games: board completion and play streaks
- shared: base service/repository and domain exceptions
"""
