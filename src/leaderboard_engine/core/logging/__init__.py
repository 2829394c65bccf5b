"""
Logging Infrastructure

Exports the structured logging subsystem, log context helpers,
and configuration interface.

This module provides:
- Structured JSON logging
- ContextVar-based contextual logging (`LogContext`)
- Setup and teardown helpers for the global logging system
"""

from leaderboard_engine.core.logging.logger import (
    LogContext,
    LoggingHealth,
    LogSettings,
    clear_log_context,
    get_log_context,
    get_logger,
    get_logging_health,
    new_correlation_id,
    set_log_context,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "get_logging_health",
    "LogContext",
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    "new_correlation_id",
    "LogSettings",
    "LoggingHealth",
]
