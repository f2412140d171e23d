"""
Validation utilities for Stumper.

Stateless validators for values entering the engine's public operations.
Business rules stay in the services.
"""

from src.core.validation.input_validator import InputValidator

__all__ = [
    "InputValidator",
]
