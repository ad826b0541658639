from __future__ import annotations

import json
import logging

from pollagent.observability import JsonFormatter, JsonLogConfig, configure_logging


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="pollagent.command_loop",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="report delivery failed: %s",
        args=("status 500",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_emits_structured_line() -> None:
    formatter = JsonFormatter(JsonLogConfig(mac_address="aa:bb:cc:dd:ee:ff"))
    payload = json.loads(formatter.format(_record(fields={"has_error": True})))

    assert payload["severity"] == "WARNING"
    assert payload["logger"] == "pollagent.command_loop"
    assert payload["message"] == "report delivery failed: status 500"
    assert payload["service"] == "pollagent"
    assert payload["mac_address"] == "aa:bb:cc:dd:ee:ff"
    assert payload["fields"] == {"has_error": True}


def test_configure_logging_replaces_handlers() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_logging(level="DEBUG", log_format="json")
        configure_logging(level="INFO", log_format="text")
        assert len(root.handlers) == 1
        assert root.level == logging.INFO
        assert not isinstance(root.handlers[0].formatter, JsonFormatter)

        configure_logging(level=logging.WARNING, log_format="JSON")
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
