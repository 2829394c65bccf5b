"""
leaderboard_engine
==================

Ranked leaderboards on Redis sorted sets, with asyncio.

Example Usage
-------------
>>> from leaderboard_engine import Leaderboard
>>> async with Leaderboard.connect("highscores") as board:
...     await board.rank_member("alice", 1200)
...     await board.leaders(1)
[LeaderData(member='alice', score=1200.0, rank=1)]
"""

from __future__ import annotations

from leaderboard_engine.core.redis import RedisOrderedSetStore, RedisService
from leaderboard_engine.core.store import OrderedSetStore, ScoredMember
from leaderboard_engine.modules.leaderboard import (
    DEFAULT_PAGE_SIZE,
    VERSION,
    LeaderData,
    Leaderboard,
)

__version__ = VERSION

__all__ = [
    "Leaderboard",
    "LeaderData",
    "VERSION",
    "DEFAULT_PAGE_SIZE",
    "OrderedSetStore",
    "ScoredMember",
    "RedisOrderedSetStore",
    "RedisService",
]
