"""
Progress Module
===============

Domain: exactly-once recording of answered questions

Services:
- ProgressService: history append + per-category aggregate upsert
"""

from .service import ProgressService

__all__ = [
    "ProgressService",
]
