"""
Shared async Redis client for leaderboards.

`RedisService` owns a single redis-py asyncio client, and therefore a single
connection pool, per process. Every Leaderboard built through
`RedisService.create_store()` talks to Redis over that pool.

What it does
------------
- Builds the client from Config and checks it with PING before publishing it
- Keeps a cached health flag, refreshed by `health_check()`
- Hands out `RedisOrderedSetStore` adapters bound to the shared client

What it leaves alone
--------------------
- Leaderboard semantics
- Retries: a failing command reaches the caller as the redis exception it is

Settings read: REDIS_URL, REDIS_PASSWORD, REDIS_SOCKET_TIMEOUT,
REDIS_MAX_CONNECTIONS. Responses are decoded to str and timeouts are not
retried.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import Any, Optional

from redis.asyncio.client import Redis as AsyncRedis
from redis.exceptions import RedisError

from leaderboard_engine.core.config import Config
from leaderboard_engine.core.exceptions import (
    ConfigurationError,
    StoreInitializationError,
    StoreNotInitializedError,
)
from leaderboard_engine.core.logging.logger import get_logger
from leaderboard_engine.core.redis.batch import RedisBatchOperations
from leaderboard_engine.core.redis.metrics import RedisMetrics
from leaderboard_engine.core.redis.store import RedisOrderedSetStore

logger = get_logger(__name__)

SUPPORTED_URL_SCHEMES = frozenset({"redis", "rediss", "unix"})


def _url_scheme(url: str) -> str:
    scheme, sep, _ = url.partition("://")
    return scheme if sep else "unknown"


def _elapsed_ms(started: float) -> float:
    return (time.monotonic() - started) * 1000


class RedisService:
    """
    Class-level holder of the shared client; never instantiated.

    >>> await RedisService.initialize()
    >>> board = Leaderboard("highscores", RedisService.create_store())
    >>> await RedisService.shutdown()
    """

    _client: Optional[AsyncRedis] = None
    _batch_ops: Optional[RedisBatchOperations] = None
    _init_lock: Optional[asyncio.Lock] = None
    _is_healthy: bool = False

    # ═══════════════════════════════════════════════════════════════════════
    # LIFECYCLE
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    def _lock(cls) -> asyncio.Lock:
        # Created lazily so it binds to the running loop
        if cls._init_lock is None:
            cls._init_lock = asyncio.Lock()
        return cls._init_lock

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        """
        Create the shared client and PING it. A second call is a no-op.

        `url` overrides Config.REDIS_URL. Raises StoreInitializationError when
        the client cannot be built or does not answer; a half-built client is
        closed first.
        ConfigurationError is raised instead when the URL scheme is not one
        redis-py understands.
        """
        if cls._client is not None:
            logger.debug("RedisService already initialized")
            return

        async with cls._lock():
            if cls._client is not None:
                return

            url = url or Config.REDIS_URL
            scheme = _url_scheme(url)
            if scheme not in SUPPORTED_URL_SCHEMES:
                raise ConfigurationError(
                    "REDIS_URL",
                    f"unsupported scheme {scheme!r}, expected one of {sorted(SUPPORTED_URL_SCHEMES)}",
                )

            started = time.monotonic()
            client: Optional[AsyncRedis] = None

            try:
                client = AsyncRedis.from_url(
                    url,
                    password=Config.REDIS_PASSWORD,
                    socket_timeout=Config.REDIS_SOCKET_TIMEOUT,
                    max_connections=Config.REDIS_MAX_CONNECTIONS,
                    decode_responses=True,
                    retry_on_timeout=False,
                )
                await client.ping()
            except Exception as exc:
                if client is not None:
                    # The PING failure is what gets reported
                    with contextlib.suppress(Exception):
                        await client.aclose()
                cls._is_healthy = False
                logger.critical(
                    "Redis client could not be initialized",
                    extra={
                        "url_scheme": scheme,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )
                raise StoreInitializationError(scheme, exc) from exc

            cls._client = client
            cls._batch_ops = RedisBatchOperations(client)
            cls._is_healthy = True

            logger.info(
                "Redis client ready",
                extra={
                    "url_scheme": scheme,
                    "max_connections": Config.REDIS_MAX_CONNECTIONS,
                    "socket_timeout_seconds": Config.REDIS_SOCKET_TIMEOUT,
                    "startup_ms": round(_elapsed_ms(started), 2),
                },
            )

    @classmethod
    async def shutdown(cls) -> None:
        """Close the shared client. Does nothing before `initialize()`."""
        client, cls._client = cls._client, None
        cls._batch_ops = None
        cls._is_healthy = False

        if client is None:
            logger.debug("RedisService shutdown requested but never initialized")
            return

        await client.aclose()
        logger.info("Redis client closed")

    # ═══════════════════════════════════════════════════════════════════════
    # HEALTH
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    async def health_check(cls) -> bool:
        """PING the server, record the result and refresh the cached flag."""
        if cls._client is None:
            logger.warning("Redis health check skipped: client not initialized")
            cls._is_healthy = False
            return False

        started = time.monotonic()
        try:
            pong = await cls._client.ping()
        except RedisError as exc:
            cls._is_healthy = False
            RedisMetrics.record_health_check(False, _elapsed_ms(started))
            logger.error(
                "Redis health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False

        latency_ms = _elapsed_ms(started)
        cls._is_healthy = bool(pong)
        RedisMetrics.record_health_check(cls._is_healthy, latency_ms)

        if not cls._is_healthy:
            logger.warning("Redis health check failed: falsy PING reply")
        else:
            logger.debug(
                "Redis health check passed", extra={"latency_ms": round(latency_ms, 2)}
            )
        return cls._is_healthy

    @classmethod
    def is_healthy(cls) -> bool:
        """Last known health; no I/O."""
        return cls._is_healthy

    @classmethod
    def get_status(cls) -> dict[str, Any]:
        return {
            "initialized": cls._client is not None,
            "healthy": cls._is_healthy,
            "metrics": RedisMetrics.get_summary(),
        }

    # ═══════════════════════════════════════════════════════════════════════
    # ACCESS
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    def client(cls) -> AsyncRedis:
        """The shared client; StoreNotInitializedError before `initialize()`."""
        if cls._client is None:
            raise StoreNotInitializedError("RedisService")
        return cls._client

    @classmethod
    def get_batch_operations(cls) -> RedisBatchOperations:
        if cls._batch_ops is None:
            raise StoreNotInitializedError("RedisService")
        return cls._batch_ops

    @classmethod
    def create_store(cls) -> RedisOrderedSetStore:
        """
        A store adapter bound to the shared client.

        The adapter does not own the client: closing it (or disconnecting a
        Leaderboard built on it) leaves the client open for every other
        user. RedisService.shutdown() is what closes it.
        """
        return RedisOrderedSetStore(
            cls.client(), cls.get_batch_operations(), owns_client=False
        )
