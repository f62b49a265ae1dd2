from __future__ import annotations

import logging
import math
from typing import Optional, Protocol, Sequence, Tuple
from urllib.parse import urlsplit

from datadog.dogstatsd import DogStatsd

logger = logging.getLogger(__name__)

DEFAULT_STATSD_HOST = "localhost"
DEFAULT_STATSD_PORT = 8125


class MetricsSink(Protocol):
    def histogram(self, name: str, value: Optional[float], tags: Sequence[str]) -> None: ...

    def increment(self, name: str, value: float, tags: Sequence[str]) -> None: ...

    def gauge(self, name: str, value: float, tags: Sequence[str]) -> None: ...


def parse_statsd_url(url: Optional[str]) -> Tuple[str, int]:
    """
    "statsd://metrics.internal:9125" -> ("metrics.internal", 9125)
    None or "" -> ("localhost", 8125)
    """
    if not url:
        return DEFAULT_STATSD_HOST, DEFAULT_STATSD_PORT
    parts = urlsplit(url)
    return parts.hostname or DEFAULT_STATSD_HOST, parts.port or DEFAULT_STATSD_PORT


def _missing(value: Optional[float]) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


class StatsdSink:
    """DogStatsD over UDP. Fire and forget: nothing is retried."""

    def __init__(self, client: DogStatsd):
        self.client = client

    def histogram(self, name: str, value: Optional[float], tags: Sequence[str]) -> None:
        if _missing(value):
            logger.debug("Skipping %s: no numeric value", name)
            return
        self.client.histogram(name, value, tags=list(tags))

    def increment(self, name: str, value: float, tags: Sequence[str]) -> None:
        self.client.increment(name, value, tags=list(tags))

    def gauge(self, name: str, value: float, tags: Sequence[str]) -> None:
        if _missing(value):
            logger.debug("Skipping %s: no numeric value", name)
            return
        self.client.gauge(name, value, tags=list(tags))


class LoggingSink:
    """Logs every metric call, then forwards it."""

    def __init__(self, inner: MetricsSink, log: logging.Logger = logger):
        self.inner = inner
        self.log = log

    def _intercept(self, kind: str, name: str, value, tags: Sequence[str]) -> None:
        self.log.info("Intercepted: statsd.%s(%s): value=%s tags=%s", kind, name, value, ",".join(tags))

    def histogram(self, name: str, value: Optional[float], tags: Sequence[str]) -> None:
        self._intercept("histogram", name, value, tags)
        self.inner.histogram(name, value, tags)

    def increment(self, name: str, value: float, tags: Sequence[str]) -> None:
        self._intercept("increment", name, value, tags)
        self.inner.increment(name, value, tags)

    def gauge(self, name: str, value: float, tags: Sequence[str]) -> None:
        self._intercept("gauge", name, value, tags)
        self.inner.gauge(name, value, tags)


def build_sink(statsd_url: Optional[str] = None, *, debug: bool = False) -> MetricsSink:
    host, port = parse_statsd_url(statsd_url)
    logger.info("Sending metrics to statsd at %s:%s", host, port)
    sink: MetricsSink = StatsdSink(DogStatsd(host=host, port=port))
    if debug:
        sink = LoggingSink(sink)
    return sink

