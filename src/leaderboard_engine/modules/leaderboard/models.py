"""
Leaderboard value types.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass
class LeaderData:
    """
    Snapshot of one member's position: built fresh for every query result.

    Fields are writable, but nothing is written back to the store.
    """

    member: str
    score: float
    rank: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
