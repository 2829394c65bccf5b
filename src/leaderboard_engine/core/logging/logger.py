"""
Structured logging for the leaderboard engine.

Purpose
-------
Give every module a plain stdlib logger while letting an application opt in
to structured, non-blocking output:

- One JSON object per record in production (or when LOG_JSON is set).
- Readable, optionally colored lines during development.
- Records enriched with the ambient operation context (correlation_id,
  component, operation, leaderboard) held in a ContextVar, so concurrent
  tasks never see each other's context.
- Formatting and I/O happen on a QueueListener thread; the event loop only
  enqueues. The queue is bounded and drops records under overload.

Usage
-----
    setup_logging()                    # once, at application startup
    log = get_logger(__name__)

    async with LogContext(component="api", leaderboard="weekly"):
        log.info("Page served", extra={"page": 3})

    shutdown_logging()                 # flushes the queue

Nothing is configured on import: a library must leave the host application's
logging alone until asked.

Dependencies
------------
- leaderboard_engine.core.config.config.Config (LOG_LEVEL, LOG_JSON, ENVIRONMENT)
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener
from typing import Any, Dict, Optional

from leaderboard_engine.core.config.config import Config

CONTEXT_FIELDS = ("correlation_id", "component", "operation", "leaderboard")
UNSET = "N/A"

_log_context: ContextVar[Dict[str, Any]] = ContextVar("leaderboard_log_context", default={})


# ============================================================================
# Settings & Health
# ============================================================================


@dataclass(frozen=True, slots=True)
class LogSettings:
    """Output settings, resolved from Config when logging is set up."""

    level: int
    json_output: bool
    colors: bool
    queue_size: int = 10_000
    line_format: str = "%(asctime)s | %(levelname)-8s | %(name)-36s | %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    @classmethod
    def from_config(cls) -> "LogSettings":
        level = logging.getLevelName(str(Config.LOG_LEVEL).upper())
        if not isinstance(level, int):
            level = logging.INFO

        json_output = Config.is_production() if Config.LOG_JSON is None else Config.LOG_JSON
        colors = not json_output and sys.stdout.isatty()
        return cls(level=level, json_output=json_output, colors=colors)


@dataclass(slots=True)
class _QueueStats:
    enqueued: int = 0
    dropped: int = 0
    handler_errors: int = 0


@dataclass(frozen=True, slots=True)
class LoggingHealth:
    initialized: bool
    queue_size: int
    queue_max_size: int
    records_enqueued: int
    records_dropped: int
    handler_errors: int


_stats = _QueueStats()
_listener: Optional[QueueListener] = None
_queue_handler: Optional[QueueHandler] = None


# ============================================================================
# Enrichment & Formatting
# ============================================================================


class ContextFilter(logging.Filter):
    """
    Stamp the ambient context onto each record.

    Values passed explicitly through `extra=` are left as they are.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _log_context.get()
        defaults = {
            "correlation_id": context.get("correlation_id", UNSET),
            "component": context.get("component") or record.name.partition(".")[0],
            "operation": context.get("operation", UNSET),
            "leaderboard": context.get("leaderboard", UNSET),
        }
        for field, value in defaults.items():
            if not hasattr(record, field):
                setattr(record, field, value)
        return True


class ColoredFormatter(logging.Formatter):
    """Whole-line ANSI color by level."""

    LEVEL_COLORS: Dict[int, str] = {
        logging.DEBUG: "\033[90m",
        logging.INFO: "\033[94m",
        logging.WARNING: "\033[93m",
        logging.ERROR: "\033[91m",
        logging.CRITICAL: "\033[1;91m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        line = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno)
        return f"{color}{line}{self.RESET}" if color else line


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Context fields are top-level keys (omitted while unset); anything else
    passed via `extra=` is nested under "extra". Values that are not JSON
    serializable are rendered with str().
    """

    RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
        "message",
        "asctime",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None and value != UNSET:
                payload[field] = value

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in self.RESERVED
            and key not in CONTEXT_FIELDS
            and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


# ============================================================================
# Queue plumbing
# ============================================================================


class BoundedQueueHandler(QueueHandler):
    """Enqueue without blocking; count and drop when the queue is full."""

    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _stats.dropped += 1
            sys.stderr.write("leaderboard_engine: log queue full, record dropped\n")
        else:
            _stats.enqueued += 1


class _ConsoleHandler(logging.StreamHandler):
    def handleError(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _stats.handler_errors += 1
        super().handleError(record)


def _console_handler(settings: LogSettings) -> logging.Handler:
    handler = _ConsoleHandler(sys.stdout)
    handler.setLevel(settings.level)

    if settings.json_output:
        formatter: logging.Formatter = JSONFormatter()
    elif settings.colors:
        formatter = ColoredFormatter(settings.line_format, settings.date_format)
    else:
        formatter = logging.Formatter(settings.line_format, settings.date_format)

    handler.setFormatter(formatter)
    return handler


# ============================================================================
# Setup / Teardown
# ============================================================================


def setup_logging(settings: Optional[LogSettings] = None) -> None:
    """
    Attach the queue handler to the root logger and start the listener.

    Idempotent. Settings default to LogSettings.from_config().
    """
    global _listener, _queue_handler, _stats

    if _listener is not None:
        return

    settings = settings or LogSettings.from_config()
    _stats = _QueueStats()

    log_queue: "queue.Queue[logging.LogRecord]" = queue.Queue(settings.queue_size)
    _listener = QueueListener(
        log_queue, _console_handler(settings), respect_handler_level=True
    )
    _listener.start()

    _queue_handler = BoundedQueueHandler(log_queue)
    _queue_handler.setLevel(settings.level)
    # Context lives in the calling task; stamp it before the record changes thread
    _queue_handler.addFilter(ContextFilter())

    root = logging.getLogger()
    root.setLevel(settings.level)
    root.addHandler(_queue_handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)

    get_logger(__name__).info(
        "Logging initialized",
        extra={
            "environment": Config.ENVIRONMENT,
            "log_level": logging.getLevelName(settings.level),
            "json": settings.json_output,
            "queue_size": settings.queue_size,
        },
    )


def shutdown_logging() -> None:
    """Detach the queue handler and drain the queue. Safe to call twice."""
    global _listener, _queue_handler

    if _listener is None:
        return

    get_logger(__name__).info("Logging shutting down")

    if _queue_handler is not None:
        logging.getLogger().removeHandler(_queue_handler)
        _queue_handler.close()

    listener, _listener = _listener, None
    _queue_handler = None
    listener.stop()
    for handler in listener.handlers:
        handler.flush()
        handler.close()


def get_logging_health() -> LoggingHealth:
    log_queue = _queue_handler.queue if _queue_handler is not None else None
    return LoggingHealth(
        initialized=_listener is not None,
        queue_size=log_queue.qsize() if log_queue is not None else 0,
        queue_max_size=log_queue.maxsize if log_queue is not None else 0,
        records_enqueued=_stats.enqueued,
        records_dropped=_stats.dropped,
        handler_errors=_stats.handler_errors,
    )


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


def new_correlation_id() -> str:
    return uuid.uuid4().hex[:8]


class LogContext:
    """
    Scope log context to a block (sync or async).

    Fields are layered over the enclosing context and restored on exit. A
    correlation id is inherited from the enclosing context or generated.

    Example:
        >>> async with LogContext(operation="leaders_in", leaderboard="weekly"):
        ...     await board.leaders(1)
    """

    def __init__(
        self,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        leaderboard: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        self.fields: Dict[str, Any] = {
            key: value
            for key, value in {
                "component": component,
                "operation": operation,
                "leaderboard": leaderboard,
                "correlation_id": correlation_id,
                **extra,
            }.items()
            if value is not None
        }
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> "LogContext":
        context = {**_log_context.get(), **self.fields}
        context.setdefault("correlation_id", new_correlation_id())
        self._token = _log_context.set(context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def set_log_context(**fields: Any) -> None:
    """Merge fields into the current context; None values are ignored."""
    context = dict(_log_context.get())
    context.update({key: value for key, value in fields.items() if value is not None})
    _log_context.set(context)


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get())


def clear_log_context() -> None:
    _log_context.set({})
