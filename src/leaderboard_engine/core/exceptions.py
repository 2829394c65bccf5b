"""
Infrastructure exceptions for the leaderboard engine.

Only setup problems are exceptions of our own: bad configuration, a store
client that cannot be built or reached, or one used before it exists.
Business conditions (absent member, empty leaderboard, out-of-range page)
surface as ``None`` or empty results, and failing store commands
(``redis.exceptions.*``) reach the caller unwrapped.

Every exception here carries a stable ``error_code``, structured ``details``,
an ``ErrorSeverity`` and an ``is_retryable`` flag. The module-level helpers
classify both these and raw redis errors, for callers that want to retry or
alert; the engine does neither.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

_TRANSIENT_REDIS_ERRORS = (RedisConnectionError, RedisTimeoutError)


class ErrorSeverity(Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class LeaderboardInfrastructureException(Exception):
    """
    Base class for infrastructure failures.

    Args:
        message: Human-readable description
        details: Structured context, safe to log
        severity: Overrides the class default
        is_retryable: Overrides the class default
        error_code: Overrides the class name as code

    Example:
        >>> err = LeaderboardInfrastructureException("store unreachable", {"url_scheme": "redis"})
        >>> err.to_dict()["error_code"]
        'LeaderboardInfrastructureException'
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})
        self.severity = severity if severity is not None else self.DEFAULT_SEVERITY
        self.is_retryable = (
            self.DEFAULT_RETRYABLE if is_retryable is None else is_retryable
        )
        self.error_code = error_code or type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        text = f"[{self.error_code}] {self.message}"
        if self.details:
            text += f" | Details: {self.details}"
        return text

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, details={self.details!r}, "
            f"severity={self.severity.value!r}, is_retryable={self.is_retryable!r})"
        )


class ConfigurationError(LeaderboardInfrastructureException):
    """A setting is missing or unusable."""

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            details={"config_key": config_key, "message": message},
            error_code="CONFIG_ERROR",
        )


class StoreInitializationError(LeaderboardInfrastructureException):
    """
    The shared store client could not be created or did not answer.

    Only the URL scheme is kept: the full URL may embed credentials.
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL
    DEFAULT_RETRYABLE = True

    def __init__(self, url_scheme: str, original_error: Exception) -> None:
        self.url_scheme = url_scheme
        self.original_error = original_error
        super().__init__(
            f"Failed to initialize store client: {original_error}",
            details={
                "url_scheme": url_scheme,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="STORE_INIT_ERROR",
        )


class StoreNotInitializedError(LeaderboardInfrastructureException):
    """The shared store client was requested before ``initialize()``."""

    def __init__(self, service: str) -> None:
        super().__init__(
            f"{service} not initialized. Call `await {service}.initialize()` first.",
            details={"service": service},
            error_code="STORE_NOT_INITIALIZED",
        )


# ============================================================================
# Classification helpers
# ============================================================================


def is_transient_error(exc: Exception) -> bool:
    """True if retrying the same call could succeed."""
    if isinstance(exc, LeaderboardInfrastructureException):
        return exc.is_retryable
    return isinstance(exc, _TRANSIENT_REDIS_ERRORS)


def get_error_severity(exc: Exception) -> ErrorSeverity:
    if isinstance(exc, LeaderboardInfrastructureException):
        return exc.severity
    if isinstance(exc, _TRANSIENT_REDIS_ERRORS):
        return ErrorSeverity.WARNING
    return ErrorSeverity.ERROR


def should_alert(exc: Exception) -> bool:
    return get_error_severity(exc) in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
