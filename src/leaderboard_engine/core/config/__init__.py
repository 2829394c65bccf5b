"""
Configuration subsystem.

Static configuration only: values are read from environment variables (with
``.env`` support) at import time and exposed as class attributes of `Config`.

Usage
-----
```python
from leaderboard_engine.core.config import Config

url = Config.REDIS_URL
if Config.is_production():
    ...
```
"""

from leaderboard_engine.core.config.config import Config, Environment
from leaderboard_engine.core.config.errors import ConfigError, ConfigValidationError

__all__ = [
    "Config",
    "Environment",
    "ConfigError",
    "ConfigValidationError",
]
