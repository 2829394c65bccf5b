"""
Unit tests for the Redis ordered-set store and pipelined batch reads.

The redis client is mocked; these tests pin the command mapping and the
conversion of raw replies, not Redis behaviour itself.
"""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from leaderboard_engine.core.redis.batch import RedisBatchOperations
from leaderboard_engine.core.redis.metrics import RedisMetrics
from leaderboard_engine.core.redis.store import RedisOrderedSetStore
from leaderboard_engine.core.store.base import ScoredMember

pytestmark = pytest.mark.unit


@pytest.fixture
def redis_store(mock_redis_client) -> RedisOrderedSetStore:
    return RedisOrderedSetStore(mock_redis_client)


@pytest.mark.asyncio
class TestCommandMapping:
    """Test each store primitive maps onto one sorted-set command."""

    async def test_add_or_update(self, redis_store, mock_redis_client):
        mock_redis_client.zadd.return_value = 1

        assert await redis_store.add_or_update("board", "alice", 10) == 1
        mock_redis_client.zadd.assert_awaited_once_with("board", {"alice": 10})

    async def test_increment(self, redis_store, mock_redis_client):
        mock_redis_client.zincrby.return_value = 15.0

        assert await redis_store.increment("board", "alice", 5) == 15.0
        mock_redis_client.zincrby.assert_awaited_once_with("board", 5, "alice")

    async def test_remove_range_by_score(self, redis_store, mock_redis_client):
        mock_redis_client.zremrangebyscore.return_value = 3

        assert await redis_store.remove_range_by_score("board", 100, 102) == 3
        mock_redis_client.zremrangebyscore.assert_awaited_once_with("board", 100, 102)

    async def test_delete_collection(self, redis_store, mock_redis_client):
        mock_redis_client.delete.return_value = 1

        assert await redis_store.delete_collection("board") == 1
        mock_redis_client.delete.assert_awaited_once_with("board")

    async def test_cardinality_and_count(self, redis_store, mock_redis_client):
        mock_redis_client.zcard.return_value = 8
        mock_redis_client.zcount.return_value = 3

        assert await redis_store.cardinality("board") == 8
        assert await redis_store.count_in_score_range("board", 2, 4) == 3
        mock_redis_client.zcount.assert_awaited_once_with("board", 2, 4)

    async def test_score_of(self, redis_store, mock_redis_client):
        mock_redis_client.zscore.return_value = "76"
        assert await redis_store.score_of("board", "alice") == 76.0

        mock_redis_client.zscore.return_value = None
        assert await redis_store.score_of("board", "missing") is None

    async def test_reverse_rank_of(self, redis_store, mock_redis_client):
        mock_redis_client.zrevrank.return_value = 4
        assert await redis_store.reverse_rank_of("board", "alice") == 4

        mock_redis_client.zrevrank.return_value = None
        assert await redis_store.reverse_rank_of("board", "missing") is None

    async def test_reverse_range_with_scores(self, redis_store, mock_redis_client):
        mock_redis_client.zrevrange.return_value = [("bob", 20.0), (b"alice", 10.0)]

        rows = await redis_store.reverse_range_with_scores("board", 0, 24)

        assert rows == [ScoredMember("bob", 20.0), ScoredMember("alice", 10.0)]
        mock_redis_client.zrevrange.assert_awaited_once_with(
            "board", 0, 24, withscores=True
        )

    async def test_close(self, redis_store, mock_redis_client):
        await redis_store.close()
        mock_redis_client.aclose.assert_awaited_once()

    async def test_close_leaves_borrowed_client_open(self, mock_redis_client):
        store = RedisOrderedSetStore(mock_redis_client, owns_client=False)

        await store.close()

        mock_redis_client.aclose.assert_not_awaited()


@pytest.mark.asyncio
class TestCombinedRead:
    """Test score and rank are read in one MULTI/EXEC."""

    async def test_is_atomic(self, redis_store):
        assert redis_store.atomic_combined_read is True

    async def test_combined_read(self, redis_store, mock_redis_client):
        pipe = mock_redis_client.pipeline.return_value
        pipe.execute.return_value = ["12", 3]

        assert await redis_store.combined_read("board", "alice") == (12.0, 3)

        mock_redis_client.pipeline.assert_called_once_with(transaction=True)
        pipe.zscore.assert_called_once_with("board", "alice")
        pipe.zrevrank.assert_called_once_with("board", "alice")

    async def test_combined_read_absent(self, redis_store, mock_redis_client):
        mock_redis_client.pipeline.return_value.execute.return_value = [None, None]

        assert await redis_store.combined_read("board", "missing") == (None, None)

    async def test_combined_read_many_preserves_order(self, redis_store, mock_redis_client):
        mock_redis_client.pipeline.return_value.execute.return_value = [
            1.0, 4,
            None, None,
            5.0, 0,
        ]

        results = await redis_store.combined_read_many(
            "board", ["member_1", "missing", "member_5"]
        )

        assert results == [(1.0, 4), (None, None), (5.0, 0)]


@pytest.mark.asyncio
class TestBatchOperations:
    """Test chunking of pipelined reads."""

    async def test_empty_input_skips_round_trip(self, mock_redis_client):
        batch = RedisBatchOperations(mock_redis_client, max_members=2)

        assert await batch.score_and_rank_many("board", []) == []
        mock_redis_client.pipeline.assert_not_called()

    async def test_chunks_by_max_members(self, mock_redis_client):
        pipe = mock_redis_client.pipeline.return_value
        pipe.execute.side_effect = [[3.0, 0, 2.0, 1], [1.0, 2]]
        batch = RedisBatchOperations(mock_redis_client, max_members=2)

        results = await batch.score_and_rank_many("board", ["a", "b", "c"])

        assert results == [(3.0, 0), (2.0, 1), (1.0, 2)]
        assert mock_redis_client.pipeline.call_count == 2
        assert pipe.zscore.call_count == 3

    async def test_batch_failure_propagates(self, mock_redis_client):
        mock_redis_client.pipeline.return_value.execute.side_effect = (
            RedisConnectionError("down")
        )
        batch = RedisBatchOperations(mock_redis_client)

        with pytest.raises(RedisConnectionError):
            await batch.score_and_rank_many("board", ["a"])

        metrics = RedisMetrics.get_operation_metrics("MULTI:ZSCORE+ZREVRANK")
        assert metrics["failure_count"] == 1


@pytest.mark.asyncio
class TestErrorsAndMetrics:
    """Test failures propagate unchanged and every command is measured."""

    async def test_error_propagates_unchanged(self, redis_store, mock_redis_client):
        error = RedisConnectionError("connection refused")
        mock_redis_client.zcard.side_effect = error

        with pytest.raises(RedisConnectionError) as exc_info:
            await redis_store.cardinality("board")

        assert exc_info.value is error
        mock_redis_client.zcard.assert_awaited_once()

    async def test_failure_recorded(self, redis_store, mock_redis_client):
        mock_redis_client.zcard.side_effect = RedisConnectionError("down")

        with pytest.raises(RedisConnectionError):
            await redis_store.cardinality("board")

        metrics = RedisMetrics.get_operation_metrics("ZCARD")
        assert metrics["failure_count"] == 1
        assert metrics["success_count"] == 0

    async def test_success_recorded(self, redis_store, mock_redis_client):
        mock_redis_client.zscore.return_value = None

        await redis_store.score_of("board", "a")
        await redis_store.score_of("board", "b")

        metrics = RedisMetrics.get_operation_metrics("ZSCORE")
        assert metrics["total_count"] == 2
        assert metrics["success_rate_pct"] == 100.0
