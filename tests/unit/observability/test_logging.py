"""
specular-drift — unit tests for observability logging

File: tests/unit/observability/test_logging.py

Purpose
- Validate JSON-lines logging with redaction, run-id tagging, and structlog routing.

What this test file should cover
- JSON line validity and redaction guarantees.
- Per-run log file placement.
- structlog events reaching the stdlib sinks with their key/value fields.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from uuid import uuid4

import pytest

from specular_drift.observability.logging import (
    LoggingConfig,
    default_log_redactor,
    get_logger,
    setup_logging,
    setup_structured_logging,
)


def _logger_name() -> str:
    return f"specular_drift.tests.logging.{uuid4().hex}"


def _read_json_lines(path: Path) -> list[dict[str, object]]:
    lines = path.read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines]


def test_file_sink_writes_json_lines_under_run_directory(tmp_path: Path) -> None:
    handle = setup_structured_logging(
        LoggingConfig(
            run_id="run-1",
            level="INFO",
            base_log_dir=tmp_path,
            log_to_file=True,
            log_to_stderr=False,
            logger_name=_logger_name(),
        )
    )
    try:
        handle.logger.info("audit started", extra={"features": 3, "path": Path("a/b")})
        handle.logger.debug("filtered out")
    finally:
        handle.shutdown()

    assert handle.log_path == tmp_path / "run-1" / "specdrift.jsonl"
    records = _read_json_lines(handle.log_path)
    assert len(records) == 1
    record = records[0]
    assert record["message"] == "audit started"
    assert record["level"] == "INFO"
    assert record["run_id"] == "run-1"
    assert record["fields"] == {"features": 3, "path": "a/b"}
    assert str(record["timestamp"]).endswith("Z")


def test_redaction_applies_to_messages_and_fields(tmp_path: Path) -> None:
    handle = setup_structured_logging(
        LoggingConfig(
            run_id="run-2",
            base_log_dir=tmp_path,
            log_to_file=True,
            log_to_stderr=False,
            logger_name=_logger_name(),
        )
    )
    try:
        handle.logger.warning(
            "calling api with token=abc123 and Bearer xyz.789",
            extra={"api_key": "k-1", "nested": {"password": "p"}, "safe": "ok"},
        )
    finally:
        handle.shutdown()

    assert handle.log_path is not None
    record = _read_json_lines(handle.log_path)[0]
    assert "abc123" not in str(record["message"])
    assert "xyz.789" not in str(record["message"])
    assert record["fields"] == {
        "api_key": "***REDACTED***",
        "nested": {"password": "***REDACTED***"},
        "safe": "ok",
    }


def test_exceptions_are_serialized(tmp_path: Path) -> None:
    handle = setup_structured_logging(
        LoggingConfig(
            run_id="run-3",
            base_log_dir=tmp_path,
            log_to_file=True,
            log_to_stderr=False,
            logger_name=_logger_name(),
        )
    )
    try:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            handle.logger.exception("failed")
    finally:
        handle.shutdown()

    assert handle.log_path is not None
    record = _read_json_lines(handle.log_path)[0]
    assert "RuntimeError: boom" in str(record["exception"])


def test_structlog_events_reach_package_sinks(tmp_path: Path) -> None:
    handle = setup_logging(
        {"log_level": "DEBUG", "log_to_file": True},
        run_id="run-4",
        log_dir=tmp_path,
    )
    try:
        get_logger("specular_drift.tests.routing").info(
            "drift_checked", findings=2, secret_token="s3cr3t"
        )
    finally:
        handle.shutdown()

    assert handle.log_path is not None
    records = _read_json_lines(handle.log_path)
    assert len(records) == 1
    record = records[0]
    assert record["message"] == "drift_checked"
    assert record["logger"] == "specular_drift.tests.routing"
    fields = record["fields"]
    assert isinstance(fields, dict)
    assert fields["findings"] == 2
    assert fields["secret_token"] == "***REDACTED***"


def test_level_filters_structlog_events(tmp_path: Path) -> None:
    handle = setup_logging({"log_level": "WARNING", "log_to_file": True}, run_id="run-5", log_dir=tmp_path)
    try:
        get_logger("specular_drift.tests.filtered").info("quiet_event")
    finally:
        handle.shutdown()

    assert handle.log_path is not None
    assert handle.log_path.read_text(encoding="utf-8") == ""


def test_shutdown_detaches_handlers(tmp_path: Path) -> None:
    name = _logger_name()
    handle = setup_structured_logging(
        LoggingConfig(run_id="run-6", base_log_dir=tmp_path, log_to_stderr=True, logger_name=name)
    )

    handle.shutdown()

    assert logging.getLogger(name).handlers == []
    assert handle.log_path is None


@pytest.mark.parametrize("run_id", ["", "  ", "../escape", "a/b"])
def test_invalid_run_ids_are_rejected(run_id: str) -> None:
    with pytest.raises(ValueError, match="run_id"):
        setup_structured_logging(LoggingConfig(run_id=run_id, log_to_stderr=False))


def test_unknown_level_is_rejected() -> None:
    with pytest.raises(ValueError, match="unsupported logging level"):
        setup_structured_logging(
            LoggingConfig(run_id="r", level="LOUD", log_to_stderr=False, logger_name=_logger_name())
        )


def test_default_redactor_handles_nested_values() -> None:
    redacted = default_log_redactor(
        {"items": ["password: hunter2", 3], "authorization": "x", "plain": None}
    )

    assert redacted == {
        "items": ["password:***REDACTED***", 3],
        "authorization": "***REDACTED***",
        "plain": None,
    }
