"""Unit tests for log formatting."""

from __future__ import annotations

import json
import logging

from m7m.logging import JsonFormatter, TextFormatter, configure_logging


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="m7m.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="Step failed: %s",
        args=("boom",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extra() -> None:
    payload = json.loads(JsonFormatter().format(_record(flow="status", steps=2)))

    assert payload["level"] == "WARNING"
    assert payload["logger"] == "m7m.test"
    assert payload["message"] == "Step failed: boom"
    assert payload["extra"] == {"flow": "status", "steps": 2}


def test_text_formatter_puts_flow_first() -> None:
    line = TextFormatter().format(_record(flow="status", steps=2))

    assert line == "WARNING [status] Step failed: boom steps=2"


def test_configure_logging_replaces_handlers() -> None:
    root = logging.getLogger()
    previous_handlers = list(root.handlers)
    previous_level = root.level
    try:
        configure_logging("debug", "text")
        configure_logging("info", "text")

        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, TextFormatter)
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in previous_handlers:
            root.addHandler(handler)
        root.setLevel(previous_level)
