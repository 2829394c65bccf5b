"""
Shared domain foundations.

Usage
-----
    from leaderboard_engine.modules.shared import BaseService
"""

from __future__ import annotations

from .base_service import BaseService

__all__ = [
    "BaseService",
]
