"""
Tests for structured logging.
"""

import json
import logging
from uuid import uuid4

from shared.config import settings
from shared.logging import JSONFormatter, get_job_id, get_logger, set_job_id


def _format_last(caplog) -> dict:
    assert len(caplog.records) > 0
    return json.loads(JSONFormatter().format(caplog.records[-1]))


def test_get_logger_creates_logger():
    """Test that get_logger creates a logger instance."""
    logger = get_logger("test_module")
    assert isinstance(logger, logging.Logger)
    assert logger.name == "test_module"


def test_get_logger_does_not_duplicate_handlers():
    first = get_logger("test_module_handlers")
    count = len(first.handlers)

    second = get_logger("test_module_handlers")

    assert second is first
    assert len(second.handlers) == count


def test_logger_outputs_json_format(caplog):
    """Test that logger outputs JSON with extra fields flattened."""
    logger = get_logger("test_module")
    logger.setLevel(logging.INFO)

    logger.info("Test message", extra={"key": "value", "attempt": 2})

    log_data = _format_last(caplog)
    assert log_data["level"] == "INFO"
    assert log_data["logger"] == "test_module"
    assert log_data["message"] == "Test message"
    assert log_data["key"] == "value"
    assert log_data["attempt"] == 2
    assert log_data["environment"] == settings.environment
    assert log_data["timestamp"].endswith("Z")


def test_logger_includes_job_id(caplog):
    """Test that logger includes job_id when set in context."""
    logger = get_logger("test_module")
    logger.setLevel(logging.INFO)
    job_id = uuid4()
    set_job_id(job_id)

    try:
        logger.info("Test message")
        assert _format_last(caplog)["job_id"] == str(job_id)
        assert get_job_id() == str(job_id)
    finally:
        set_job_id(None)


def test_logger_excludes_job_id_when_not_set(caplog):
    logger = get_logger("test_module")
    logger.setLevel(logging.INFO)
    set_job_id(None)

    logger.info("Test message")

    assert "job_id" not in _format_last(caplog)


def test_non_primitive_extras_are_stringified(caplog):
    logger = get_logger("test_module")
    logger.setLevel(logging.INFO)

    logger.info("Test message", extra={"columns": ["status", "response"]})

    assert _format_last(caplog)["columns"] == "['status', 'response']"


def test_exception_is_included(caplog):
    logger = get_logger("test_module")

    try:
        raise ValueError("bad value")
    except ValueError as e:
        logger.error("Failed", exc_info=e)

    log_data = _format_last(caplog)
    assert "ValueError: bad value" in log_data["exception"]


def test_log_file_is_opt_in(tmp_path, monkeypatch):
    log_path = tmp_path / "logs" / "jobs.log"
    monkeypatch.setattr(settings, "log_file", str(log_path))

    logger = get_logger("test_module_file")
    try:
        logger.warning("to disk")
        for handler in logger.handlers:
            handler.flush()

        line = log_path.read_text().strip().splitlines()[-1]
        assert json.loads(line)["message"] == "to disk"
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


def test_console_only_without_log_file():
    logger = get_logger("test_module_console")

    assert all(not isinstance(h, logging.FileHandler) for h in logger.handlers)
