"""JSON log lines must stay machine-parseable and carry the context
fields the middleware and services attach."""

from __future__ import annotations

import json
import logging
import sys

from portal.core.logging import (
    RequestContextFilter,
    _ContainerFormatter,
    _JsonFormatter,
    request_id_var,
)


def _record(msg: str = "Exam submitted", *args: object) -> logging.LogRecord:
    return logging.LogRecord(
        name="portal.services.exam_service",
        level=logging.INFO,
        pathname="exam_service.py",
        lineno=10,
        msg=msg,
        args=args,
        exc_info=None,
    )


def test_json_formatter_produces_valid_json() -> None:
    parsed = json.loads(_JsonFormatter().format(_record("score=%d", 75)))
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "portal.services.exam_service"
    assert parsed["message"] == "score=75"
    assert "timestamp" in parsed


def test_json_formatter_promotes_context_fields() -> None:
    record = _record()
    record.request_id = "abc-123"  # type: ignore[attr-defined]
    record.user_id = "u-1"  # type: ignore[attr-defined]
    record.module_id = "workplace-safety"  # type: ignore[attr-defined]
    record.duration_ms = 12.5  # type: ignore[attr-defined]

    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["request_id"] == "abc-123"
    assert parsed["user_id"] == "u-1"
    assert parsed["module_id"] == "workplace-safety"
    assert parsed["duration_ms"] == 12.5


def test_json_formatter_skips_placeholder_request_id() -> None:
    record = _record()
    record.request_id = "-"  # type: ignore[attr-defined]
    parsed = json.loads(_JsonFormatter().format(record))
    assert "request_id" not in parsed


def test_json_formatter_includes_exception_info() -> None:
    try:
        raise ConnectionError("store down")
    except ConnectionError:
        record = _record("Failed to save progress")
        record.exc_info = sys.exc_info()
        output = _JsonFormatter().format(record)

    parsed = json.loads(output)
    assert "ConnectionError: store down" in parsed["exception"]


def test_request_context_filter_reads_contextvar() -> None:
    token = request_id_var.set("req-42")
    try:
        record = _record()
        assert RequestContextFilter().filter(record) is True
        assert record.request_id == "req-42"  # type: ignore[attr-defined]
    finally:
        request_id_var.reset(token)


def test_request_context_filter_keeps_explicit_request_id() -> None:
    record = _record()
    record.request_id = "explicit"  # type: ignore[attr-defined]
    RequestContextFilter().filter(record)
    assert record.request_id == "explicit"  # type: ignore[attr-defined]


def test_container_formatter_is_plain_text() -> None:
    output = _ContainerFormatter().format(_record("server started"))
    assert "INFO" in output
    assert "portal.services.exam_service" in output
    assert "server started" in output
    assert not output.lstrip().startswith("{")
