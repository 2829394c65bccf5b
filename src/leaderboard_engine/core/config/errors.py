"""
Configuration error hierarchy.

Exception Hierarchy
-------------------
ConfigError (base)
└── ConfigValidationError (type/bounds validation failures)
"""


class ConfigError(Exception):
    """
    Base exception for all configuration-related errors.

    Example
    -------
    >>> try:
    ...     Config.validate()
    ... except ConfigError as e:
    ...     logger.error(f"Config failed: {e}")
    """
    pass


class ConfigValidationError(ConfigError):
    """
    Raised when configuration validation fails in production.

    Outside production, invalid values only log a warning and fall back to
    their defaults.
    """
    pass


__all__ = [
    "ConfigError",
    "ConfigValidationError",
]
