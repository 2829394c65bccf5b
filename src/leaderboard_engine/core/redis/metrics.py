"""
Redis command metrics.

Purpose
-------
In-memory counters for every command the engine sends to Redis, keyed by
command name (ZADD, ZREVRANGE, MULTI:ZSCORE+ZREVRANK, ...), plus a short
history of health-check pings. A host application reads them through
`RedisMetrics.get_summary()` and forwards them wherever it likes.

Per command
-----------
- calls, successes, failures
- min / max / mean latency over all calls
- p50 / p95 / p99 over the most recent SAMPLE_WINDOW calls

A call at or above Config.REDIS_SLOW_OPERATION_MS is logged as a warning.

Recording is synchronous and guarded by a threading.Lock, so it is safe from
the event loop and from worker threads alike.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Deque, Dict, Optional

from leaderboard_engine.core.config import Config
from leaderboard_engine.core.logging.logger import get_logger

logger = get_logger(__name__)

SAMPLE_WINDOW = 1000
HEALTH_HISTORY = 100


@dataclass
class OperationMetrics:
    """Counters and latency samples for one command."""

    total_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    total_latency_ms: float = 0.0
    min_latency_ms: Optional[float] = None
    max_latency_ms: float = 0.0
    samples: Deque[float] = field(default_factory=lambda: deque(maxlen=SAMPLE_WINDOW))

    def record(self, latency_ms: float, success: bool) -> None:
        self.total_count += 1
        if success:
            self.success_count += 1
        else:
            self.failure_count += 1

        self.total_latency_ms += latency_ms
        if self.min_latency_ms is None or latency_ms < self.min_latency_ms:
            self.min_latency_ms = latency_ms
        self.max_latency_ms = max(self.max_latency_ms, latency_ms)
        self.samples.append(latency_ms)

    @property
    def avg_latency_ms(self) -> float:
        if not self.total_count:
            return 0.0
        return self.total_latency_ms / self.total_count

    @property
    def success_rate(self) -> float:
        """Percentage of calls that succeeded."""
        if not self.total_count:
            return 0.0
        return 100.0 * self.success_count / self.total_count

    def percentile(self, pct: int) -> float:
        """Nearest-rank percentile over the sample window."""
        if not self.samples:
            return 0.0
        ordered = sorted(self.samples)
        index = min(len(ordered) - 1, len(ordered) * pct // 100)
        return ordered[index]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_count": self.total_count,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "success_rate_pct": round(self.success_rate, 2),
            "avg_latency_ms": round(self.avg_latency_ms, 2),
            "min_latency_ms": round(self.min_latency_ms or 0.0, 2),
            "max_latency_ms": round(self.max_latency_ms, 2),
            "p50_latency_ms": round(self.percentile(50), 2),
            "p95_latency_ms": round(self.percentile(95), 2),
            "p99_latency_ms": round(self.percentile(99), 2),
        }


class RedisMetrics:
    """
    Process-wide collector; class methods only.

    Example
    -------
    >>> RedisMetrics.record_operation("ZADD", 1.7)
    >>> RedisMetrics.get_operation_metrics("ZADD")["total_count"]
    1
    """

    _lock = Lock()
    _operations: Dict[str, OperationMetrics] = {}
    _health_checks: Deque[Dict[str, Any]] = deque(maxlen=HEALTH_HISTORY)
    _started_at: float = time.time()

    @classmethod
    def record_operation(
        cls,
        operation: str,
        latency_ms: float,
        success: bool = True,
    ) -> None:
        with cls._lock:
            metrics = cls._operations.get(operation)
            if metrics is None:
                metrics = cls._operations[operation] = OperationMetrics()
            metrics.record(latency_ms, success)

        threshold_ms = Config.REDIS_SLOW_OPERATION_MS
        if latency_ms >= threshold_ms:
            logger.warning(
                "Slow Redis operation detected",
                extra={
                    "redis_command": operation,
                    "latency_ms": round(latency_ms, 2),
                    "threshold_ms": threshold_ms,
                    "success": success,
                },
            )

    @classmethod
    def record_health_check(cls, success: bool, latency_ms: float) -> None:
        with cls._lock:
            cls._health_checks.append(
                {"timestamp": time.time(), "success": success, "latency_ms": latency_ms}
            )

    @classmethod
    def get_operation_metrics(cls, operation: str) -> Optional[Dict[str, Any]]:
        """Snapshot for one command, or None if it was never recorded."""
        with cls._lock:
            metrics = cls._operations.get(operation)
            return None if metrics is None else metrics.to_dict()

    @classmethod
    def get_summary(cls) -> Dict[str, Any]:
        """Snapshot of every command, totals and health-check history."""
        with cls._lock:
            operations = {name: m.to_dict() for name, m in cls._operations.items()}
            checks = list(cls._health_checks)
            started_at = cls._started_at

        check_latency = [check["latency_ms"] for check in checks]
        return {
            "uptime_seconds": round(time.time() - started_at, 2),
            "total_operations": sum(op["total_count"] for op in operations.values()),
            "total_failures": sum(op["failure_count"] for op in operations.values()),
            "operations": operations,
            "health_checks": {
                "total": len(checks),
                "successful": sum(1 for check in checks if check["success"]),
                "avg_latency_ms": (
                    round(sum(check_latency) / len(check_latency), 2)
                    if check_latency
                    else 0.0
                ),
            },
        }

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._operations = {}
            cls._health_checks = deque(maxlen=HEALTH_HISTORY)
            cls._started_at = time.time()

        logger.debug("Redis metrics reset")
