"""
Environment-driven settings for the leaderboard engine.

Purpose
-------
One static `Config` class holding every process-wide knob: Redis connection
and batching, the page size used by `Leaderboard.from_config`, and logging
output. Values come from environment variables (a `.env` file is honoured)
and fall back to documented defaults.

Parsing rules
-------------
- Integers outside their bounds, or not integers at all, are rejected with a
  warning and replaced by the default. Nothing raises while loading.
- Booleans accept true/false, yes/no, 1/0, on/off in any case.
- Every rejection is remembered; `Config.validate()` raises
  `ConfigValidationError` for them, but only in production.

Per-leaderboard state (name, page size of a given instance) does not live
here; it belongs to each Leaderboard.

Environment Variables
---------------------
ENVIRONMENT              development | testing | staging | production
DEBUG                    default False
LOG_LEVEL                default INFO
LOG_JSON                 unset: JSON only in production
REDIS_URL                default redis://localhost:6379/0
REDIS_PASSWORD           optional
REDIS_MAX_CONNECTIONS    default 50, 1..500
REDIS_SOCKET_TIMEOUT     seconds, default 5, 1..60
REDIS_BATCH_MAX_MEMBERS  members per pipelined round trip, default 1000, 1..100000
REDIS_SLOW_OPERATION_MS  slow command warning threshold, default 100
LEADERBOARD_PAGE_SIZE    default 25, 1..10000
"""

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from leaderboard_engine.core.config.errors import ConfigValidationError

load_dotenv()

_TRUE_WORDS = frozenset({"true", "yes", "1", "on"})
_FALSE_WORDS = frozenset({"false", "no", "0", "off"})


class Environment(Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Case-insensitive lookup; unknown names mean development.

        >>> Environment.from_string("Production") is Environment.PRODUCTION
        True
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            logging.warning(f"Unknown ENVIRONMENT {value!r}, treating as development")
            return cls.DEVELOPMENT


class _ConfigLoadMetrics:
    """Where each value came from, and which raw values were rejected."""

    def __init__(self) -> None:
        self.sources: Dict[str, str] = {}
        self.validation_errors: Dict[str, str] = {}
        self.last_reload: Optional[str] = None

    def record(self, key: str, from_env: bool) -> None:
        self.sources[key] = "environment" if from_env else "default"

    def reject(self, key: str, error: str) -> None:
        self.sources[key] = "default"
        self.validation_errors[key] = error

    def get_summary(self) -> Dict[str, Any]:
        from_env = [key for key, source in self.sources.items() if source == "environment"]
        return {
            "total_configs": len(self.sources),
            "from_environment": len(from_env),
            "from_defaults": len(self.sources) - len(from_env),
            "validation_errors": len(self.validation_errors),
            "defaults_used": sorted(set(self.sources) - set(from_env)),
            "last_reload": self.last_reload,
        }


class Config:
    """
    Process-wide settings; class attributes only, never instantiated.

    Usage
    -----
    >>> Config.REDIS_URL
    'redis://localhost:6379/0'
    >>> Config.load()          # re-read the environment
    >>> Config.validate()      # strict in production
    """

    _metrics: Optional[_ConfigLoadMetrics] = None
    _validated: bool = False

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_PASSWORD: Optional[str] = None
    REDIS_MAX_CONNECTIONS: int = 50
    REDIS_SOCKET_TIMEOUT: int = 5
    REDIS_BATCH_MAX_MEMBERS: int = 1000
    REDIS_SLOW_OPERATION_MS: int = 100

    # Leaderboard
    LEADERBOARD_PAGE_SIZE: int = 25

    # Runtime
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None

    # =========================================================================
    # Parsers
    # =========================================================================

    @classmethod
    def _tracker(cls) -> _ConfigLoadMetrics:
        if cls._metrics is None:
            cls._metrics = _ConfigLoadMetrics()
        return cls._metrics

    @classmethod
    def _reject(cls, key: str, error: str) -> None:
        logging.warning(error)
        cls._tracker().reject(key, error)

    @staticmethod
    def _parse_bool(raw_value: str) -> Optional[bool]:
        word = raw_value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        return None

    @classmethod
    def _safe_int(
        cls,
        key: str,
        default: int,
        min_val: Optional[int] = None,
        max_val: Optional[int] = None,
    ) -> int:
        """
        Integer from the environment, bounds inclusive.

        >>> Config._safe_int("REDIS_MAX_CONNECTIONS", 50, min_val=1, max_val=500)
        50
        """
        raw_value = os.getenv(key)
        if raw_value is None:
            cls._tracker().record(key, from_env=False)
            return default

        try:
            value = int(raw_value.strip())
        except ValueError:
            cls._reject(key, f"{key}={raw_value!r} is not an integer; using {default}")
            return default

        too_low = min_val is not None and value < min_val
        too_high = max_val is not None and value > max_val
        if too_low or too_high:
            bounds = f"[{min_val if min_val is not None else '-inf'}, {max_val if max_val is not None else 'inf'}]"
            cls._reject(key, f"{key}={value} outside {bounds}; using {default}")
            return default

        cls._tracker().record(key, from_env=True)
        return value

    @classmethod
    def _safe_bool(cls, key: str, default: bool) -> bool:
        value = cls._safe_optional_bool(key)
        return default if value is None else value

    @classmethod
    def _safe_optional_bool(cls, key: str) -> Optional[bool]:
        """Boolean from the environment; None when unset or unreadable."""
        raw_value = os.getenv(key)
        if raw_value is None:
            cls._tracker().record(key, from_env=False)
            return None

        value = cls._parse_bool(raw_value)
        if value is None:
            cls._reject(key, f"{key}={raw_value!r} is not a boolean; ignoring")
            return None

        cls._tracker().record(key, from_env=True)
        return value

    @classmethod
    def _safe_str(cls, key: str, default: str) -> str:
        raw_value = os.getenv(key)
        cls._tracker().record(key, from_env=raw_value is not None)
        return default if raw_value is None else raw_value

    # =========================================================================
    # Loading & validation
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """
        (Re)read every setting from the environment.

        Runs on import. Tests call it again after changing the environment.
        Sources and rejections are tracked afresh on every call.
        """
        cls._metrics = _ConfigLoadMetrics()

        cls.REDIS_URL = cls._safe_str("REDIS_URL", "redis://localhost:6379/0")
        cls.REDIS_PASSWORD = os.getenv("REDIS_PASSWORD") or None
        cls.REDIS_MAX_CONNECTIONS = cls._safe_int("REDIS_MAX_CONNECTIONS", 50, 1, 500)
        cls.REDIS_SOCKET_TIMEOUT = cls._safe_int("REDIS_SOCKET_TIMEOUT", 5, 1, 60)
        cls.REDIS_BATCH_MAX_MEMBERS = cls._safe_int(
            "REDIS_BATCH_MAX_MEMBERS", 1000, 1, 100_000
        )
        cls.REDIS_SLOW_OPERATION_MS = cls._safe_int("REDIS_SLOW_OPERATION_MS", 100, 1)

        cls.LEADERBOARD_PAGE_SIZE = cls._safe_int("LEADERBOARD_PAGE_SIZE", 25, 1, 10_000)

        cls.ENVIRONMENT = Environment.from_string(
            cls._safe_str("ENVIRONMENT", Environment.DEVELOPMENT.value)
        ).value
        cls.DEBUG = cls._safe_bool("DEBUG", False)
        cls.LOG_LEVEL = cls._safe_str("LOG_LEVEL", "INFO").upper()
        cls.LOG_JSON = cls._safe_optional_bool("LOG_JSON")

        cls._tracker().last_reload = datetime.now(timezone.utc).isoformat()

    @classmethod
    def validate(cls) -> None:
        """
        Reload, check cross-field sanity and report rejected values.

        Idempotent once it has passed.

        Raises
        ------
        ConfigValidationError:
            In production, if any value was rejected.
        """
        if cls._validated:
            return

        logger = logging.getLogger(__name__)
        cls.load()

        if cls.LOG_LEVEL not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            cls._reject("LOG_LEVEL", f"LOG_LEVEL={cls.LOG_LEVEL!r} is not a level; using INFO")
            cls.LOG_LEVEL = "INFO"

        if cls.is_production():
            if any(host in cls.REDIS_URL for host in ("localhost", "127.0.0.1")):
                logger.warning("Production configured with a local REDIS_URL")
            if cls.DEBUG:
                logger.warning("DEBUG is enabled in production")

        metrics = cls._tracker()
        logger.info("Configuration loaded", extra={"config": metrics.get_summary()})

        if metrics.validation_errors:
            logger.warning(
                "Configuration values rejected",
                extra={"rejected": sorted(metrics.validation_errors)},
            )
            if cls.is_production():
                raise ConfigValidationError(
                    f"Rejected configuration in production: {sorted(metrics.validation_errors)}"
                )

        cls._validated = True

    # =========================================================================
    # Queries
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == Environment.PRODUCTION.value

    @classmethod
    def is_development(cls) -> bool:
        return cls.ENVIRONMENT == Environment.DEVELOPMENT.value

    @classmethod
    def is_testing(cls) -> bool:
        return cls.ENVIRONMENT == Environment.TESTING.value

    @classmethod
    def get_metrics(cls) -> Optional[_ConfigLoadMetrics]:
        return cls._metrics

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Settings safe to log: no password, only the URL scheme."""
        scheme, sep, _ = cls.REDIS_URL.partition("://")
        return {
            "environment": cls.ENVIRONMENT,
            "debug": cls.DEBUG,
            "log_level": cls.LOG_LEVEL,
            "redis_url_scheme": scheme if sep else "unknown",
            "redis_password_set": cls.REDIS_PASSWORD is not None,
            "redis_max_connections": cls.REDIS_MAX_CONNECTIONS,
            "redis_socket_timeout": cls.REDIS_SOCKET_TIMEOUT,
            "redis_batch_max_members": cls.REDIS_BATCH_MAX_MEMBERS,
            "redis_slow_operation_ms": cls.REDIS_SLOW_OPERATION_MS,
            "leaderboard_page_size": cls.LEADERBOARD_PAGE_SIZE,
        }


Config.load()
