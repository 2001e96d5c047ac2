"""Unit tests for the logging utility."""

from __future__ import annotations

import json
import logging

from campus_auth.core.logger import JSONFormatter, configure_logging


def test_configure_logging_sets_level() -> None:
    """``configure_logging`` should set the root logger level."""

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    try:
        configure_logging("DEBUG")
        assert root.level == logging.DEBUG
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)


def test_json_formatter_includes_structured_extras() -> None:
    """Structured ``extra`` fields are rendered; unknown attributes are not."""

    record = logging.LogRecord("campus_auth.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    record.event = "auth.login"
    record.user_id = 7
    record.password = "never-rendered"

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "hello world"
    assert payload["event"] == "auth.login"
    assert payload["user_id"] == 7
    assert "password" not in payload


def test_request_id_is_echoed(client) -> None:
    """A caller-supplied correlation id comes back on the response."""

    resp = client.get("/api/v1/health", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"
