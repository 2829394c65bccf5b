"""
RedisOrderedSetStore: the ordered-set contract on Redis sorted sets.

Purpose
-------
Map each OrderedSetStore primitive onto one Redis sorted-set command. Redis
already orders members by score with lexicographic tie-breaking, so this
adapter adds no ordering logic of its own.

Command mapping
---------------
- add_or_update            -> ZADD key score member
- increment                -> ZINCRBY key delta member
- remove_range_by_score    -> ZREMRANGEBYSCORE key min max
- delete_collection        -> DEL key
- cardinality              -> ZCARD key
- count_in_score_range     -> ZCOUNT key min max
- score_of                 -> ZSCORE key member
- reverse_rank_of          -> ZREVRANK key member
- reverse_range_with_scores-> ZREVRANGE key start end WITHSCORES
- combined_read            -> MULTI; ZSCORE; ZREVRANK; EXEC
- combined_read_many       -> RedisBatchOperations.score_and_rank_many

Error Handling
--------------
Every command is timed into RedisMetrics. Redis exceptions are recorded as
failures and re-raised unchanged: no retry, no wrapping.
"""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar, Union

from redis.asyncio import Redis

from leaderboard_engine.core.logging.logger import get_logger
from leaderboard_engine.core.redis.batch import RedisBatchOperations
from leaderboard_engine.core.redis.metrics import RedisMetrics
from leaderboard_engine.core.store.base import OrderedSetStore, ScoreAndRank, ScoredMember

logger = get_logger(__name__)

T = TypeVar("T")


def _to_str(value: Union[str, bytes]) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class RedisOrderedSetStore(OrderedSetStore):
    """
    OrderedSetStore backed by a redis-py asyncio client.

    Works with clients created with or without ``decode_responses``. With
    ``owns_client=False`` the client belongs to someone else and ``close()``
    leaves it open.
    """

    atomic_combined_read = True

    def __init__(
        self,
        client: Redis,
        batch: Optional[RedisBatchOperations] = None,
        owns_client: bool = True,
    ) -> None:
        self._client = client
        self._owns_client = owns_client
        self._batch = batch or RedisBatchOperations(client)

    @property
    def client(self) -> Redis:
        return self._client

    async def _execute(
        self,
        command: str,
        key: str,
        call: Callable[[], Awaitable[T]],
    ) -> T:
        start_time = time.monotonic()
        try:
            result = await call()
        except Exception as exc:
            RedisMetrics.record_operation(
                command, (time.monotonic() - start_time) * 1000, success=False
            )
            logger.error(
                f"Redis {command} failed",
                extra={
                    "redis_command": command,
                    "key": key,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            raise

        RedisMetrics.record_operation(
            command, (time.monotonic() - start_time) * 1000, success=True
        )
        return result

    # ========================================================================
    # Writes
    # ========================================================================

    async def add_or_update(self, name: str, member: str, score: float) -> int:
        return int(
            await self._execute(
                "ZADD", name, lambda: self._client.zadd(name, {member: score})
            )
        )

    async def increment(self, name: str, member: str, delta: float) -> float:
        return float(
            await self._execute(
                "ZINCRBY", name, lambda: self._client.zincrby(name, delta, member)
            )
        )

    async def remove_range_by_score(
        self, name: str, min_score: float, max_score: float
    ) -> int:
        return int(
            await self._execute(
                "ZREMRANGEBYSCORE",
                name,
                lambda: self._client.zremrangebyscore(name, min_score, max_score),
            )
        )

    async def delete_collection(self, name: str) -> int:
        return int(await self._execute("DEL", name, lambda: self._client.delete(name)))

    # ========================================================================
    # Reads
    # ========================================================================

    async def cardinality(self, name: str) -> int:
        return int(await self._execute("ZCARD", name, lambda: self._client.zcard(name)))

    async def count_in_score_range(
        self, name: str, min_score: float, max_score: float
    ) -> int:
        return int(
            await self._execute(
                "ZCOUNT", name, lambda: self._client.zcount(name, min_score, max_score)
            )
        )

    async def score_of(self, name: str, member: str) -> Optional[float]:
        score = await self._execute(
            "ZSCORE", name, lambda: self._client.zscore(name, member)
        )
        return float(score) if score is not None else None

    async def reverse_rank_of(self, name: str, member: str) -> Optional[int]:
        rank = await self._execute(
            "ZREVRANK", name, lambda: self._client.zrevrank(name, member)
        )
        return int(rank) if rank is not None else None

    async def reverse_range_with_scores(
        self, name: str, start: int, end: int
    ) -> List[ScoredMember]:
        rows: List[Any] = await self._execute(
            "ZREVRANGE",
            name,
            lambda: self._client.zrevrange(name, start, end, withscores=True),
        )
        return [ScoredMember(_to_str(member), float(score)) for member, score in rows]

    async def combined_read(self, name: str, member: str) -> ScoreAndRank:
        async def _multi() -> List[Any]:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.zscore(name, member)
                pipe.zrevrank(name, member)
                return await pipe.execute()

        score, rank = await self._execute("MULTI:ZSCORE+ZREVRANK", name, _multi)
        return (
            float(score) if score is not None else None,
            int(rank) if rank is not None else None,
        )

    async def combined_read_many(
        self, name: str, members: Sequence[str]
    ) -> List[ScoreAndRank]:
        return await self._batch.score_and_rank_many(name, members)

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def close(self) -> None:
        if not self._owns_client:
            logger.debug("RedisOrderedSetStore released; shared client left open")
            return
        await self._client.aclose()
        logger.debug("RedisOrderedSetStore closed")
