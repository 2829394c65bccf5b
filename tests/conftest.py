"""
Pytest Configuration and Fixtures for the leaderboard engine
=============================================================

Purpose
-------
Centralized fixtures shared by the unit and integration suites.

Responsibilities
----------------
- In-memory ordered-set store for fast, isolated Leaderboard tests
- Testcontainers setup for Redis in integration tests
- Reset of process-wide singletons (RedisService, RedisMetrics) between tests

Architecture Notes
------------------
- Unit tests use the in-memory store or mocked redis clients (fast, isolated)
- Integration tests use testcontainers (real Redis); they are skipped when
  Docker is not available
- Fixtures follow scope hierarchy: session > function
"""

from __future__ import annotations

import os
from typing import AsyncGenerator, Dict, Generator, List, Optional

import pytest
import pytest_asyncio
from redis.asyncio import Redis

from leaderboard_engine.core.config import Config
from leaderboard_engine.core.logging.logger import get_logger
from leaderboard_engine.core.redis.metrics import RedisMetrics
from leaderboard_engine.core.redis.service import RedisService
from leaderboard_engine.core.store.base import OrderedSetStore, ScoredMember
from leaderboard_engine.modules.leaderboard import Leaderboard

logger = get_logger(__name__)

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ.setdefault("ENVIRONMENT", "testing")
    os.environ.setdefault("LOG_LEVEL", "DEBUG")
    Config.load()


# ============================================================================
# IN-MEMORY STORE
# ============================================================================


class InMemoryOrderedSetStore(OrderedSetStore):
    """
    Dict-backed OrderedSetStore with Redis sorted-set ordering.

    Ascending order is (score, member); the descending view used for ranks
    and reverse ranges is its exact reverse, so equal scores come back with
    the lexicographically larger member first, as ZREVRANGE does.
    """

    def __init__(self) -> None:
        self.collections: Dict[str, Dict[str, float]] = {}
        self.closed = False

    def _descending(self, name: str) -> List[ScoredMember]:
        members = self.collections.get(name, {})
        ordered = sorted(members.items(), key=lambda item: (item[1], item[0]))
        return [ScoredMember(member, score) for member, score in reversed(ordered)]

    def _drop_if_empty(self, name: str) -> None:
        if name in self.collections and not self.collections[name]:
            del self.collections[name]

    async def add_or_update(self, name: str, member: str, score: float) -> int:
        members = self.collections.setdefault(name, {})
        added = 0 if member in members else 1
        members[member] = float(score)
        return added

    async def increment(self, name: str, member: str, delta: float) -> float:
        members = self.collections.setdefault(name, {})
        members[member] = members.get(member, 0.0) + float(delta)
        return members[member]

    async def remove_range_by_score(
        self, name: str, min_score: float, max_score: float
    ) -> int:
        members = self.collections.get(name, {})
        doomed = [m for m, s in members.items() if min_score <= s <= max_score]
        for member in doomed:
            del members[member]
        self._drop_if_empty(name)
        return len(doomed)

    async def delete_collection(self, name: str) -> int:
        return 1 if self.collections.pop(name, None) is not None else 0

    async def cardinality(self, name: str) -> int:
        return len(self.collections.get(name, {}))

    async def count_in_score_range(
        self, name: str, min_score: float, max_score: float
    ) -> int:
        members = self.collections.get(name, {})
        return sum(1 for s in members.values() if min_score <= s <= max_score)

    async def score_of(self, name: str, member: str) -> Optional[float]:
        return self.collections.get(name, {}).get(member)

    async def reverse_rank_of(self, name: str, member: str) -> Optional[int]:
        for index, row in enumerate(self._descending(name)):
            if row.member == member:
                return index
        return None

    async def reverse_range_with_scores(
        self, name: str, start: int, end: int
    ) -> List[ScoredMember]:
        if end < start:
            return []
        return self._descending(name)[start:end + 1]

    async def close(self) -> None:
        self.closed = True


# ============================================================================
# UNIT FIXTURES
# ============================================================================


@pytest.fixture
def store() -> InMemoryOrderedSetStore:
    return InMemoryOrderedSetStore()


@pytest.fixture
def leaderboard(store: InMemoryOrderedSetStore) -> Leaderboard:
    """Leaderboard named "name" on a fresh in-memory store."""
    return Leaderboard("name", store)


@pytest.fixture
def rank_members():
    """
    Helper that ranks member_1..member_<total> with score == index.

    Usage:
        await rank_members(leaderboard, 5)
    """

    async def _rank_members(board: Leaderboard, total: int) -> None:
        for i in range(1, total + 1):
            await board.rank_member(f"member_{i}", i)

    return _rank_members


@pytest.fixture(autouse=True)
def reset_redis_singletons() -> Generator[None, None, None]:
    """
    Reset process-wide Redis state around every test.

    Scope: function
    """
    RedisMetrics.reset()
    yield
    RedisService._client = None
    RedisService._batch_ops = None
    RedisService._init_lock = None
    RedisService._is_healthy = False
    RedisMetrics.reset()


@pytest.fixture
def mock_redis_client(mocker):
    """
    Mock redis.asyncio client with a transactional pipeline.

    Scope: function
    Uses: store and batch unit tests

    Queue results for the pipeline via
    ``mock_redis_client.pipeline.return_value.execute.return_value``.
    """
    client = mocker.MagicMock()
    for command in (
        "zadd",
        "zincrby",
        "zremrangebyscore",
        "delete",
        "zcard",
        "zcount",
        "zscore",
        "zrevrank",
        "zrevrange",
        "ping",
        "aclose",
    ):
        setattr(client, command, mocker.AsyncMock())

    pipe = mocker.MagicMock()
    pipe.__aenter__.return_value = pipe
    pipe.__aexit__.return_value = False
    pipe.execute = mocker.AsyncMock(return_value=[])
    client.pipeline.return_value = pipe

    return client


# ============================================================================
# TESTCONTAINERS FIXTURES (Integration Tests)
# ============================================================================


@pytest.fixture(scope="session")
def redis_container():
    """
    Start Redis testcontainer for integration tests.

    Scope: session (container persists across all tests)
    Uses: Integration tests that need real Redis
    """
    try:
        from testcontainers.redis import RedisContainer

        logger.info("Starting Redis testcontainer...")
        container = RedisContainer(image="redis:7-alpine")
        container.start()
    except Exception as exc:
        pytest.skip(f"Redis testcontainer unavailable: {exc}")

    logger.info(
        "Redis testcontainer started: %s:%s",
        container.get_container_host_ip(),
        container.get_exposed_port(6379),
    )

    yield container

    logger.info("Stopping Redis testcontainer...")
    container.stop()


@pytest.fixture(scope="session")
def redis_url(redis_container) -> str:
    host = redis_container.get_container_host_ip()
    port = redis_container.get_exposed_port(6379)
    return f"redis://{host}:{port}/0"


@pytest_asyncio.fixture
async def redis_client(redis_url: str) -> AsyncGenerator[Redis, None]:
    """
    Decoded async client on a flushed database.

    Scope: function (clean slate per test)
    """
    client = Redis.from_url(redis_url, decode_responses=True)
    await client.flushdb()
    yield client
    await client.flushdb()
    await client.aclose()
