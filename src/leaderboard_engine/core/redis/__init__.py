"""
Redis Infrastructure

Exports
-------
RedisService - shared client lifecycle, health and status
RedisOrderedSetStore - OrderedSetStore on Redis sorted sets
RedisBatchOperations - pipelined ZSCORE/ZREVRANK reads
RedisMetrics - per-command metrics collection

Example Usage
-------------
>>> await RedisService.initialize()
>>> store = RedisService.create_store()
>>> metrics = RedisMetrics.get_summary()
>>> await RedisService.shutdown()
"""

from __future__ import annotations

from leaderboard_engine.core.redis.batch import RedisBatchOperations
from leaderboard_engine.core.redis.metrics import RedisMetrics
from leaderboard_engine.core.redis.service import RedisService
from leaderboard_engine.core.redis.store import RedisOrderedSetStore

__all__ = [
    "RedisService",
    "RedisOrderedSetStore",
    "RedisBatchOperations",
    "RedisMetrics",
]
