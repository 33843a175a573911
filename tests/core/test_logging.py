from __future__ import annotations

import logging

import pytest

from portal.core.logging import (
    RequestContextFilter,
    _ContainerFormatter,
    _JsonFormatter,
    setup_logging,
)


def _record(level: int, msg: str = "hello", lineno: int = 1) -> logging.LogRecord:
    return logging.LogRecord(
        name="portal.services.exam_service",
        level=level,
        pathname="exam_service.py",
        lineno=lineno,
        msg=msg,
        args=(),
        exc_info=None,
    )


@pytest.mark.parametrize(
    ("name", "expected"),
    [("debug", logging.DEBUG), ("warning", logging.WARNING), ("bogus", logging.INFO)],
)
def test_setup_logging_sets_root_level(name: str, expected: int) -> None:
    setup_logging(name)
    assert logging.getLogger().level == expected


def test_setup_logging_keeps_libraries_at_warning_or_above() -> None:
    setup_logging("debug")
    assert logging.getLogger("uvicorn").level == logging.WARNING
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    setup_logging("error")
    assert logging.getLogger("uvicorn").level == logging.ERROR


def test_setup_logging_installs_one_handler_with_context_filter() -> None:
    setup_logging("info")
    setup_logging("info")
    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert isinstance(handlers[0].formatter, _ContainerFormatter)
    assert any(isinstance(f, RequestContextFilter) for f in handlers[0].filters)


def test_setup_logging_json_switch() -> None:
    setup_logging("info", json_format=True)
    assert isinstance(logging.getLogger().handlers[0].formatter, _JsonFormatter)
    setup_logging("info")


def test_container_formatter_omits_location_below_warning() -> None:
    output = _ContainerFormatter().format(_record(logging.INFO))
    assert "hello" in output
    assert "[exam_service.py:" not in output


@pytest.mark.parametrize("level", [logging.WARNING, logging.ERROR])
def test_container_formatter_adds_location_from_warning(level: int) -> None:
    output = _ContainerFormatter().format(_record(level, "write failed", 42))
    assert "write failed" in output
    assert "[exam_service.py:42]" in output
