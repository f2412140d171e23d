"""
Infrastructure orchestration for Stumper.

- ApplicationContext: startup and shutdown of config, logging, database
  and the service container, in dependency order
"""

from src.core.infra.application_context import ApplicationContext

__all__ = [
    "ApplicationContext",
]
