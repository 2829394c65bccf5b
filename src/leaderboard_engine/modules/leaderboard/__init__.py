"""
Leaderboard Module
==================

Services
--------
- Leaderboard: ranked leaderboard operations over an OrderedSetStore

Models
------
- LeaderData: member, score and rank for one query result
"""

from .models import LeaderData
from .service import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_REDIS_HOST,
    DEFAULT_REDIS_PORT,
    VERSION,
    Leaderboard,
)

__all__ = [
    "Leaderboard",
    "LeaderData",
    "VERSION",
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_REDIS_HOST",
    "DEFAULT_REDIS_PORT",
]
