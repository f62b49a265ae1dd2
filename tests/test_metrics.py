from __future__ import annotations

import logging
from unittest import mock

from drainpoint.metrics import LoggingSink, StatsdSink, build_sink, parse_statsd_url


def test_parse_statsd_url() -> None:
    assert parse_statsd_url("statsd://metrics.internal:9125") == ("metrics.internal", 9125)
    assert parse_statsd_url("udp://10.0.0.1") == ("10.0.0.1", 8125)
    assert parse_statsd_url(None) == ("localhost", 8125)
    assert parse_statsd_url("") == ("localhost", 8125)


def test_statsd_sink_forwards_calls() -> None:
    client = mock.Mock()
    sink = StatsdSink(client)

    sink.histogram("heroku.dyno.load.avg.1m", 0.5, ("dyno:web.1",))
    sink.increment("heroku.dyno.error", 1, ["code:H12"])
    sink.gauge("heroku.dyno.web", 3, [])

    client.histogram.assert_called_once_with("heroku.dyno.load.avg.1m", 0.5, tags=["dyno:web.1"])
    client.increment.assert_called_once_with("heroku.dyno.error", 1, tags=["code:H12"])
    client.gauge.assert_called_once_with("heroku.dyno.web", 3, tags=[])


def test_statsd_sink_drops_missing_values() -> None:
    client = mock.Mock()
    sink = StatsdSink(client)

    sink.histogram("heroku.dyno.status", None, [])
    sink.histogram("heroku.dyno.status", float("nan"), [])

    client.histogram.assert_not_called()


def test_logging_sink_logs_then_forwards(caplog) -> None:
    inner = mock.Mock()
    sink = LoggingSink(inner)

    with caplog.at_level(logging.INFO, logger="drainpoint.metrics"):
        sink.increment("heroku.router.error", 1, ["at:error", "app:x"])

    inner.increment.assert_called_once_with("heroku.router.error", 1, ["at:error", "app:x"])
    assert "Intercepted: statsd.increment(heroku.router.error)" in caplog.text


def test_build_sink() -> None:
    with mock.patch("drainpoint.metrics.DogStatsd") as dogstatsd:
        sink = build_sink("statsd://stats:9000")
        assert isinstance(sink, StatsdSink)
        dogstatsd.assert_called_once_with(host="stats", port=9000)

        debug_sink = build_sink(None, debug=True)
        assert isinstance(debug_sink, LoggingSink)
        assert isinstance(debug_sink.inner, StatsdSink)
