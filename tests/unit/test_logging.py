"""Unit tests for logging configuration."""

from __future__ import annotations

import json
import logging
import logging.handlers
from io import StringIO
from pathlib import Path
from typing import Any

import pytest

from reviewbot.config import LoggingConfig
from reviewbot.logging import (
    add_correlation_id,
    bind_item_context,
    clear_item_context,
    get_correlation_id,
    get_logger,
    set_correlation_id,
    setup_logging,
)


@pytest.fixture
def capture_stream() -> StringIO:
    """Create a StringIO stream for capturing log output."""
    return StringIO()


@pytest.fixture
def json_config() -> LoggingConfig:
    """Create a LoggingConfig for JSON output to stdout."""
    return LoggingConfig(level="INFO", format="json", file=None)


def capture(stream: StringIO) -> None:
    """Point the stdout handler installed by setup_logging at stream."""
    logging.getLogger().handlers[0].stream = stream


def last_entry(stream: StringIO) -> dict[str, Any]:
    return json.loads(stream.getvalue().strip().splitlines()[-1])


def test_json_output_format(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that JSON format produces valid JSON output."""
    setup_logging(json_config)
    capture(capture_stream)

    get_logger("test.module").info("review_published", comment_id=7, number=42)

    entry = last_entry(capture_stream)
    assert entry["event"] == "review_published"
    assert entry["comment_id"] == 7
    assert entry["number"] == 42
    assert entry["level"] == "info"
    assert entry["logger"] == "test.module"
    assert "timestamp" in entry


def test_console_output_format(capture_stream: StringIO) -> None:
    """Test that console format produces human-readable output."""
    setup_logging(LoggingConfig(level="DEBUG", format="console"))
    capture(capture_stream)

    get_logger("test.module").debug("item_skipped", reason="has_comments")

    output = capture_stream.getvalue()
    assert "item_skipped" in output
    assert "has_comments" in output
    with pytest.raises(json.JSONDecodeError):
        json.loads(output.strip())


def test_log_level_filtering(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that events below the configured level are dropped."""
    setup_logging(json_config)
    capture(capture_stream)
    logger = get_logger("test.module")

    logger.debug("debug_message")
    assert capture_stream.getvalue() == ""

    logger.warning("warning_message")
    assert "warning_message" in capture_stream.getvalue()


def test_httpx_request_logs_suppressed(json_config: LoggingConfig) -> None:
    """Per-request INFO logs from httpx are raised to WARNING."""
    setup_logging(json_config)
    assert logging.getLogger("httpx").level == logging.WARNING


def test_correlation_id_binding(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that the cycle correlation ID is added to log entries."""
    setup_logging(json_config)
    capture(capture_stream)
    logger = get_logger("test.module")

    set_correlation_id("a1b2c3d4e5f6")
    assert get_correlation_id() == "a1b2c3d4e5f6"
    logger.info("cycle_started")
    assert last_entry(capture_stream)["correlation_id"] == "a1b2c3d4e5f6"

    set_correlation_id(None)
    logger.info("cycle_completed")
    assert "correlation_id" not in last_entry(capture_stream)


def test_correlation_id_processor() -> None:
    """Test the correlation ID processor directly."""
    event_dict: dict[str, Any] = {"event": "test"}

    assert "correlation_id" not in add_correlation_id(None, "", event_dict.copy())

    set_correlation_id("test-id")
    assert add_correlation_id(None, "", event_dict.copy())["correlation_id"] == "test-id"


def test_item_context_binding(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that repository and pull request number are bound to later logs."""
    setup_logging(json_config)
    capture(capture_stream)

    bind_item_context(repository="apache/nuttx", item_number=42)
    get_logger("module1").info("event1")
    entry = last_entry(capture_stream)
    assert entry["repository"] == "apache/nuttx"
    assert entry["item_number"] == 42

    get_logger("module2").info("event2")
    assert last_entry(capture_stream)["item_number"] == 42


def test_clear_item_context_keeps_repository(
    json_config: LoggingConfig, capture_stream: StringIO
) -> None:
    """Clearing the item binding leaves the repository in place."""
    setup_logging(json_config)
    capture(capture_stream)

    bind_item_context(repository="apache/nuttx", item_number=42)
    clear_item_context()
    get_logger("test.module").info("cycle_completed")

    entry = last_entry(capture_stream)
    assert "item_number" not in entry
    assert entry["repository"] == "apache/nuttx"


def test_file_rotation_handler_configuration(tmp_path: Path) -> None:
    """Test that the file rotation handler is configured correctly."""
    log_file = tmp_path / "logs" / "reviewbot.log"
    config = LoggingConfig(
        level="INFO",
        format="json",
        file=log_file,
        rotation_size_mb=10,
        retention_count=3,
    )

    setup_logging(config)

    assert log_file.exists()
    root = logging.getLogger()
    assert len(root.handlers) == 1
    handler = root.handlers[0]
    assert isinstance(handler, logging.handlers.RotatingFileHandler)
    assert handler.maxBytes == 10 * 1024 * 1024
    assert handler.backupCount == 3

    get_logger("test.module").info("file_write", data="test")
    handler.flush()

    entry = json.loads(log_file.read_text().strip())
    assert entry["event"] == "file_write"
    assert entry["data"] == "test"


def test_exception_formatting(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that exceptions are rendered into the log entry."""
    setup_logging(json_config)
    capture(capture_stream)

    try:
        raise ValueError("Test exception")
    except ValueError:
        get_logger("test.module").exception("item_failed")

    entry = last_entry(capture_stream)
    assert entry["event"] == "item_failed"
    assert entry["level"] == "error"
    assert "ValueError: Test exception" in entry["exception"]


def test_setup_is_idempotent(json_config: LoggingConfig) -> None:
    """Calling setup twice does not stack handlers."""
    setup_logging(json_config)
    setup_logging(json_config)
    assert len(logging.getLogger().handlers) == 1
