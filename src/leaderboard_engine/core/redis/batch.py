"""
Redis Batch Operations

Purpose
-------
Reduce network round trips for multi-member sorted-set reads by pipelining
ZSCORE/ZREVRANK pairs inside MULTI/EXEC.

Responsibilities
----------------
- Execute per-member score + rank reads in one round trip per chunk
- Chunk very large member lists
- Record batch latency into RedisMetrics
- Log batch operations

Non-Responsibilities
--------------------
- No business logic (rank normalization belongs to the Leaderboard)
- No retry logic (failures propagate to the caller)

Configuration Keys
------------------
- Config.REDIS_BATCH_MAX_MEMBERS : int (default 1000)

Architecture Notes
------------------
- Each chunk runs as one MULTI/EXEC transaction, so score and rank of a single
  member are always read from the same snapshot. Separate chunks are separate
  transactions.
- Preserves input order in the output
"""

from __future__ import annotations

import time
from typing import List, Optional, Sequence

from redis.asyncio import Redis
from redis.asyncio.client import Pipeline

from leaderboard_engine.core.config import Config
from leaderboard_engine.core.logging.logger import get_logger
from leaderboard_engine.core.redis.metrics import RedisMetrics
from leaderboard_engine.core.store.base import ScoreAndRank

logger = get_logger(__name__)


class RedisBatchOperations:
    """
    Pipelined sorted-set reads.

    Parameters
    ----------
    client : Redis
        The Redis client to use for operations
    max_members : Optional[int]
        Members per round trip, defaults to Config.REDIS_BATCH_MAX_MEMBERS
    """

    def __init__(self, client: Redis, max_members: Optional[int] = None) -> None:
        self._client = client
        self._max_members = max_members or Config.REDIS_BATCH_MAX_MEMBERS

        logger.debug(
            "RedisBatchOperations initialized",
            extra={"max_members_per_operation": self._max_members},
        )

    @property
    def max_members(self) -> int:
        return self._max_members

    # ═══════════════════════════════════════════════════════════════════════
    # PIPELINE
    # ═══════════════════════════════════════════════════════════════════════

    def pipeline(self, transaction: bool = True) -> Pipeline:
        """
        Create a Redis pipeline for batching multiple commands.

        Parameters
        ----------
        transaction : bool
            If True, pipeline will be wrapped in MULTI/EXEC

        Example
        -------
        >>> async with batch_ops.pipeline() as pipe:
        >>>     pipe.zscore("board", "alice")
        >>>     pipe.zrevrank("board", "alice")
        >>>     score, rank = await pipe.execute()
        """
        return self._client.pipeline(transaction=transaction)

    # ═══════════════════════════════════════════════════════════════════════
    # BATCH SCORE + RANK
    # ═══════════════════════════════════════════════════════════════════════

    async def score_and_rank_many(
        self, name: str, members: Sequence[str]
    ) -> List[ScoreAndRank]:
        """
        Read score and zero-based reverse rank for many members.

        Parameters
        ----------
        name : str
            Sorted-set key
        members : Sequence[str]
            Members to look up, duplicates allowed

        Returns
        -------
        List[ScoreAndRank]
            One (score, rank) pair per input member, in input order;
            (None, None) for absent members
        """
        if not members:
            return []

        if len(members) > self._max_members:
            logger.debug(
                "Batch ZSCORE/ZREVRANK exceeds max members, chunking operation",
                extra={
                    "total_members": len(members),
                    "max_members": self._max_members,
                    "chunks": (len(members) + self._max_members - 1) // self._max_members,
                },
            )

        results: List[ScoreAndRank] = []
        for i in range(0, len(members), self._max_members):
            chunk = members[i:i + self._max_members]
            results.extend(await self._score_and_rank_chunk(name, chunk))

        return results

    async def _score_and_rank_chunk(
        self, name: str, members: Sequence[str]
    ) -> List[ScoreAndRank]:
        start_time = time.monotonic()

        try:
            async with self.pipeline(transaction=True) as pipe:
                for member in members:
                    pipe.zscore(name, member)
                    pipe.zrevrank(name, member)
                raw = await pipe.execute()
        except Exception as exc:
            RedisMetrics.record_operation(
                "MULTI:ZSCORE+ZREVRANK",
                (time.monotonic() - start_time) * 1000,
                success=False,
            )
            logger.error(
                "Batch ZSCORE/ZREVRANK failed",
                extra={
                    "key": name,
                    "member_count": len(members),
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            raise

        latency_ms = (time.monotonic() - start_time) * 1000
        RedisMetrics.record_operation("MULTI:ZSCORE+ZREVRANK", latency_ms, success=True)

        logger.debug(
            "Batch ZSCORE/ZREVRANK completed",
            extra={
                "key": name,
                "member_count": len(members),
                "latency_ms": round(latency_ms, 2),
            },
        )

        return [
            (
                float(raw[i]) if raw[i] is not None else None,
                int(raw[i + 1]) if raw[i + 1] is not None else None,
            )
            for i in range(0, len(raw), 2)
        ]
