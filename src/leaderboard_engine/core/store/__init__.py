"""
Store contract consumed by the leaderboard engine.
"""

from leaderboard_engine.core.store.base import OrderedSetStore, ScoreAndRank, ScoredMember

__all__ = [
    "OrderedSetStore",
    "ScoreAndRank",
    "ScoredMember",
]
