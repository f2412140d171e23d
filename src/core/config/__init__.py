"""
Configuration subsystem for Stumper.

Static configuration is loaded from environment variables at import time
(``.env`` supported through python-dotenv) and exposed as class attributes
of :class:`Config`. Store-backed guest tuning lives in
``src.modules.guest.config_service``.

Usage
-----
```python
from src.core.config import Config

db_url = Config.DATABASE_URL
ratio = Config.ANSWER_TOLERANCE_RATIO

if Config.is_production():
    logger.info("Running in production mode")
```
"""

from src.core.config.config import Config, Environment

__all__ = [
    "Config",
    "Environment",
]
