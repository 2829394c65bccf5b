"""
Unit tests for the structured logging subsystem.
"""

import json
import logging

import pytest

from leaderboard_engine.core.config import Config
from leaderboard_engine.core.logging import (
    LogContext,
    LogSettings,
    clear_log_context,
    get_log_context,
    get_logging_health,
    set_log_context,
    setup_logging,
    shutdown_logging,
)
from leaderboard_engine.core.logging.logger import ContextFilter, JSONFormatter

pytestmark = pytest.mark.unit


def make_record(msg="hello %s", args=("world",)) -> logging.LogRecord:
    return logging.LogRecord(
        "leaderboard_engine.tests", logging.INFO, __file__, 10, msg, args, None
    )


@pytest.fixture(autouse=True)
def empty_context():
    clear_log_context()
    yield
    clear_log_context()


class TestJSONFormatter:
    """Test the canonical JSON representation."""

    def test_core_fields(self):
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["message"] == "hello world"
        assert data["level"] == "INFO"
        assert data["logger"] == "leaderboard_engine.tests"
        assert "timestamp" in data

    def test_context_and_extra_fields(self):
        record = make_record()
        record.leaderboard = "highscores"
        record.operation = "N/A"
        record.member = "alice"

        data = json.loads(JSONFormatter().format(record))

        assert data["leaderboard"] == "highscores"
        assert "operation" not in data
        assert data["extra"] == {"member": "alice"}

    def test_unserializable_extra(self):
        record = make_record()
        record.payload = object()

        data = json.loads(JSONFormatter().format(record))

        assert data["extra"]["payload"].startswith("<object object")


class TestLogContext:
    """Test context propagation into log records."""

    def test_filter_applies_context(self):
        record = make_record()

        with LogContext(operation="leaders_in", leaderboard="highscores", correlation_id="abc123"):
            ContextFilter().filter(record)

        assert record.operation == "leaders_in"
        assert record.leaderboard == "highscores"
        assert record.correlation_id == "abc123"

    def test_explicit_extra_wins(self):
        record = make_record()
        record.leaderboard = "weekly"

        with LogContext(leaderboard="highscores"):
            ContextFilter().filter(record)

        assert record.leaderboard == "weekly"

    def test_defaults_without_context(self):
        record = make_record()

        ContextFilter().filter(record)

        assert record.correlation_id == "N/A"
        assert record.component == "leaderboard_engine"

    def test_context_restored_on_exit(self):
        set_log_context(component="outer")

        with LogContext(component="inner"):
            assert get_log_context()["component"] == "inner"
            assert len(get_log_context()["correlation_id"]) == 8

        assert get_log_context() == {"component": "outer"}

    def test_nested_context_inherits_correlation_id(self):
        with LogContext(correlation_id="outer01"):
            with LogContext(operation="around_me_in"):
                context = get_log_context()

        assert context["correlation_id"] == "outer01"
        assert context["operation"] == "around_me_in"

    @pytest.mark.asyncio
    async def test_async_context(self):
        async with LogContext(operation="around_me_in"):
            assert get_log_context()["operation"] == "around_me_in"

        assert get_log_context() == {}


class TestSetup:
    """Test global setup and teardown."""

    def test_setup_and_shutdown(self):
        try:
            setup_logging()
            health = get_logging_health()
            assert health.initialized is True
            assert health.queue_max_size == 10_000
        finally:
            shutdown_logging()

        assert get_logging_health().initialized is False

    def test_setup_with_explicit_settings(self):
        settings = LogSettings(level=logging.WARNING, json_output=True, colors=False, queue_size=50)
        try:
            setup_logging(settings)
            assert get_logging_health().queue_max_size == 50
        finally:
            shutdown_logging()

    def test_from_config_falls_back_to_info(self, monkeypatch):
        monkeypatch.setattr(Config, "LOG_LEVEL", "CHATTY")
        monkeypatch.setattr(Config, "LOG_JSON", True)

        settings = LogSettings.from_config()

        assert settings.level == logging.INFO
        assert settings.json_output is True
        assert settings.colors is False

    def test_shutdown_without_setup(self):
        shutdown_logging()
        assert get_logging_health().initialized is False
