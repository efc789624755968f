from __future__ import annotations

import json
import logging
import sys

from kvindex.utils.logging import JsonFormatter, _json_formatter, configure_logging

EXPECTED_KEY = "Customer:00000000-0000-0000-0000-000000000001"
EXPECTED_STALE = 2


def _record(msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_json_formatter_promotes_extra_fields() -> None:
    record = _record()
    record.key = EXPECTED_KEY
    record.stale = EXPECTED_STALE

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "hello"
    assert payload["key"] == EXPECTED_KEY
    assert payload["stale"] == EXPECTED_STALE
    assert "pathname" not in payload


def test_json_formatter_supports_nested_extra_field() -> None:
    record = _record()
    record.extra = {"index": "Customer:FirstName:Bob"}

    payload = json.loads(_json_formatter(record))

    assert payload["index"] == "Customer:FirstName:Bob"


def test_json_formatter_includes_exception_text() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord(
            "test.logger", logging.ERROR, __file__, 1, "failed", (), exc_info=sys.exc_info()
        )

    payload = json.loads(JsonFormatter().format(record))

    assert "RuntimeError: boom" in payload["exc_info"]


def test_configure_logging_respects_force_flag() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_logging(level="WARNING", json_logs=True)
        installed = list(root.handlers)
        assert root.level == logging.WARNING
        assert isinstance(installed[0].formatter, JsonFormatter)

        configure_logging(level="DEBUG", force=False)
        assert root.handlers == installed
        assert root.level == logging.WARNING
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)
