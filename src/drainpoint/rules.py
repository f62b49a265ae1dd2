from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from drainpoint.metrics import MetricsSink
from drainpoint.tags import extract_number, leading_int, tags_to_dict, tags_to_list, union

logger = logging.getLogger(__name__)

Line = Mapping[str, Any]

SAMPLE_PREFIX = "sample#"

DYNO_KEYS = ("heroku", "source", "dyno")
ROUTER_KEYS = ("heroku", "router", "path", "method", "dyno", "status", "connect", "service", "at")
ROUTER_TAG_KEYS = ("dyno", "status", "host", "code", "desc", "at")
POSTGRES_KEYS = ("source", "heroku-postgres")

_ERROR_CODE_RE = re.compile(r"^[HRL]\d+$")
_DYNO_NAME_RE = re.compile(r"^[a-zA-Z_]+\.\d+$")


@dataclass(frozen=True)
class Rule:
    """One Heroku log format: a predicate over the line and the metrics it yields."""
    name: str
    matches: Callable[[Line], bool]
    extract: Callable[[Line, str, Sequence[str], MetricsSink], None]


# ----------------------------
# Helpers
# ----------------------------
def _has_keys(line: Line, keys: Sequence[str]) -> bool:
    return all(k in line for k in keys)


def _is_flag(line: Line, *keys: str) -> bool:
    # bare logfmt words decode to True; "true" strings do not count
    return all(line.get(k) is True for k in keys)


def _samples(line: Line) -> List[Tuple[str, Any]]:
    return [(k[len(SAMPLE_PREFIX):], v) for k, v in line.items() if k.startswith(SAMPLE_PREFIX)]


def _dynotype(dyno: Any) -> str:
    if not isinstance(dyno, str):
        return ""
    return dyno.split(".", 1)[0]


# ----------------------------
# Dyno metrics (log-runtime-metrics)
# ----------------------------
def _is_dyno_metrics(line: Line) -> bool:
    return _has_keys(line, DYNO_KEYS)


def _dyno_metrics(line: Line, prefix: str, default_tags: Sequence[str], sink: MetricsSink) -> None:
    merged = tags_to_dict(default_tags)
    merged.update({"dyno": line["source"], "dynotype": _dynotype(line["source"])})
    tags = tags_to_list(merged)
    for key, value in _samples(line):
        key = key.replace("_", ".")
        sink.histogram(f"{prefix}heroku.dyno.{key}", extract_number(value), tags)


# ----------------------------
# Dyno errors (H12, R14, L10, ...)
# ----------------------------
def _is_dyno_error(line: Line) -> bool:
    return _is_flag(line, "host", "heroku", "Error")


def _dyno_error(line: Line, prefix: str, default_tags: Sequence[str], sink: MetricsSink) -> None:
    found: Dict[str, str] = {}
    for key, value in line.items():
        if value is not True:
            continue
        if _ERROR_CODE_RE.match(key):
            found["code"] = key
        elif _DYNO_NAME_RE.match(key):
            found["dyno"] = key
            found["dynotype"] = _dynotype(key)

    if "code" not in found or "dyno" not in found:
        logger.debug("Dropping dyno error without code and dyno: %s", sorted(found))
        return

    merged = tags_to_dict(default_tags)
    merged.update(found)
    sink.increment(f"{prefix}heroku.dyno.error", 1, tags_to_list(merged))


# ----------------------------
# Router
# ----------------------------
def _is_router(line: Line) -> bool:
    return _has_keys(line, ROUTER_KEYS)


def _router(line: Line, prefix: str, default_tags: Sequence[str], sink: MetricsSink) -> None:
    picked = {k: line[k] for k in ROUTER_TAG_KEYS if k in line}
    tags = union(tags_to_list(picked), default_tags)
    sink.histogram(f"{prefix}heroku.router.request.connect", extract_number(line["connect"]), tags)
    sink.histogram(f"{prefix}heroku.router.request.service", extract_number(line["service"]), tags)
    if line["at"] == "error":
        sink.increment(f"{prefix}heroku.router.error", 1, tags)


# ----------------------------
# Heroku Postgres
# ----------------------------
def _is_postgres_metrics(line: Line) -> bool:
    return _has_keys(line, POSTGRES_KEYS)


def _postgres_metrics(line: Line, prefix: str, default_tags: Sequence[str], sink: MetricsSink) -> None:
    tags = union(tags_to_list({"source": line["source"]}), default_tags)
    for key, value in _samples(line):
        # TODO: db-size and table-count samples would read better as gauges
        sink.histogram(f"{prefix}heroku.postgres.{key}", extract_number(value), tags)


# ----------------------------
# Scale events ("Scale to web=2, worker=1 by ...")
# ----------------------------
def _is_scale_event(line: Line) -> bool:
    return _is_flag(line, "api", "Scale")


def _scale_count(value: Any) -> Optional[int]:
    if value is True:
        return None
    count = leading_int(value)
    # A dyno count of 0 is not reported: scaling a process type down to zero
    # produces no gauge for it.
    if count is None or count == 0:
        return None
    return count


def _scale_event(line: Line, prefix: str, default_tags: Sequence[str], sink: MetricsSink) -> None:
    for key, value in line.items():
        count = _scale_count(value)
        if count is not None:
            sink.gauge(f"{prefix}heroku.dyno.{key}", count, list(default_tags))


# Evaluated top to bottom, first match wins. Order matters: router and
# postgres lines can carry keys that the later rules also look at.
RULES: Tuple[Rule, ...] = (
    Rule("dyno metrics", _is_dyno_metrics, _dyno_metrics),
    Rule("dyno error", _is_dyno_error, _dyno_error),
    Rule("router metrics", _is_router, _router),
    Rule("postgres metrics", _is_postgres_metrics, _postgres_metrics),
    Rule("scaling metrics", _is_scale_event, _scale_event),
)


def match_rule(line: Line) -> Optional[Rule]:
    for rule in RULES:
        if rule.matches(line):
            return rule
    return None


def process_line(line: Line, prefix: str, default_tags: Sequence[str], sink: MetricsSink) -> Optional[str]:
    """
    Classify one decoded logfmt line and emit its metrics to `sink`.
    Returns the name of the rule that handled the line, or None when no
    rule matched (the line is dropped).
    """
    rule = match_rule(line)
    if rule is None:
        logger.debug("No match for line")
        return None
    logger.debug("Processing %s", rule.name)
    rule.extract(line, prefix, default_tags, sink)
    return rule.name
