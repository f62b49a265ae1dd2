from __future__ import annotations

import logging

from drainpoint.request_context import (
    RequestContextFilter,
    get_context,
    reset_app,
    reset_context,
    set_app,
    set_context,
)


def test_context_round_trip() -> None:
    assert get_context() == {}
    tokens = set_context(request_id="abc")
    app_token = set_app("my-app")
    assert get_context() == {"request_id": "abc", "app": "my-app"}
    reset_app(app_token)
    assert get_context() == {"request_id": "abc"}
    reset_context(tokens)
    assert get_context() == {}


def test_filter_adds_context_to_records() -> None:
    record = logging.LogRecord("drainpoint", logging.INFO, __file__, 1, "hello", None, None)
    tokens = set_context(request_id="abc")
    try:
        assert RequestContextFilter().filter(record)
    finally:
        reset_context(tokens)
    assert record.request_id == "abc"
    assert record.app == "-"
