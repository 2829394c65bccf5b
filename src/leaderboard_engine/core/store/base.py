"""
Ordered-Set Store Contract

Purpose
-------
Defines the abstract contract between the leaderboard engine and whatever
holds the data: an ordered collection of (member, score) pairs per leaderboard
name, sorted by score, with store-native tie-breaking.

Design Notes
------------
This base class provides:
- The primitive coroutines every backend must implement
- A default, NON-atomic `combined_read` (score read, then rank read)
- A default `combined_read_many` that loops over `combined_read`
- A no-op `close`

What this class does NOT do:
- Rank normalization, paging, windowing (that's the Leaderboard's job)
- Retry or recovery of backend failures (errors propagate unchanged)
- Store anything itself

Ranges
------
- Score ranges are inclusive on both ends.
- Offset ranges in `reverse_range_with_scores` are inclusive, 0-based
  positions in the descending ordering (offset 0 = highest score).

Usage
-----
    class MyStore(OrderedSetStore):
        async def cardinality(self, name: str) -> int:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, NamedTuple, Optional, Sequence, Tuple

ScoreAndRank = Tuple[Optional[float], Optional[int]]


class ScoredMember(NamedTuple):
    """One (member, score) pair as returned by a reverse range read."""

    member: str
    score: float


class OrderedSetStore(ABC):
    """
    Abstract ordered-set backend, keyed by leaderboard name.

    Attributes:
        atomic_combined_read: True when `combined_read` reads score and rank
            in one atomic step. The default implementation is two separate
            reads, so a concurrent writer can move the member between them.
    """

    atomic_combined_read: bool = False

    # ========================================================================
    # Writes
    # ========================================================================

    @abstractmethod
    async def add_or_update(self, name: str, member: str, score: float) -> int:
        """Insert member at score, or overwrite its score. Returns members added."""

    @abstractmethod
    async def increment(self, name: str, member: str, delta: float) -> float:
        """Add delta to member's score (absent counts as 0). Returns new score."""

    @abstractmethod
    async def remove_range_by_score(
        self, name: str, min_score: float, max_score: float
    ) -> int:
        """Remove members with min_score <= score <= max_score. Returns count."""

    @abstractmethod
    async def delete_collection(self, name: str) -> int:
        """Drop the whole collection. Returns 1 if it existed, else 0."""

    # ========================================================================
    # Reads
    # ========================================================================

    @abstractmethod
    async def cardinality(self, name: str) -> int:
        ...

    @abstractmethod
    async def count_in_score_range(
        self, name: str, min_score: float, max_score: float
    ) -> int:
        ...

    @abstractmethod
    async def score_of(self, name: str, member: str) -> Optional[float]:
        ...

    @abstractmethod
    async def reverse_rank_of(self, name: str, member: str) -> Optional[int]:
        """Zero-based rank in descending score order, None if absent."""

    @abstractmethod
    async def reverse_range_with_scores(
        self, name: str, start: int, end: int
    ) -> List[ScoredMember]:
        """Members at offsets start..end (inclusive), highest score first."""

    async def combined_read(self, name: str, member: str) -> ScoreAndRank:
        """
        Read a member's score and zero-based reverse rank together.

        The default issues two reads. Backends that can do this atomically
        override it and set `atomic_combined_read`.
        """
        score = await self.score_of(name, member)
        rank = await self.reverse_rank_of(name, member)
        return score, rank

    async def combined_read_many(
        self, name: str, members: Sequence[str]
    ) -> List[ScoreAndRank]:
        """`combined_read` for each member, results in input order."""
        return [await self.combined_read(name, member) for member in members]

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def close(self) -> None:
        """Release backend resources. Default is a no-op."""
        return None
