"""
Base Service Foundation

Purpose
-------
Provides the foundational class for domain services: structured logging with
operation context.

Design Notes
------------
What this class does NOT do:
- Manage store connections (that's RedisService's job)
- Catch or translate store errors

Usage
-----
    class Leaderboard(BaseService):
        def __init__(self, ..., logger):
            super().__init__(logger)

        async def leaders_in(self, leaderboard_name, current_page):
            self.log_operation("leaders_in", leaderboard=leaderboard_name)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from logging import Logger


class BaseService:
    """
    Base class for domain services.

    Args:
        logger: Structured logger instance
    """

    def __init__(self, logger: Logger) -> None:
        self.log = logger

    def log_operation(self, operation: str, **context: Any) -> None:
        """
        Log a service operation with structured context.

        Per-call operations are logged at DEBUG; they are too frequent for INFO.

        Args:
            operation: Name of the operation being performed
            **context: Additional context data
        """
        self.log.debug(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )
