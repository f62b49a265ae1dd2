from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

_QUERY_RE = re.compile(r"\?.*")
_ID_SEGMENT_RE = re.compile(r"/[\w-]*\d+[\w-]*")
_NUMBER_RE = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def strip_ids_and_params(path: str) -> str:
    """
    Strip the query string and any id-like segments from a request path
    so that per-path tags stay bounded:
      "/users/42/edit?x=1" -> "/users/:id/edit"
      "/orders/a1b2-c3"    -> "/orders/:id"
    """
    path = _QUERY_RE.sub("", path, count=1)
    return _ID_SEGMENT_RE.sub("/:id", path)


def _render(value: Any) -> str:
    if value is True:
        return "true"
    if value is False:
        return "false"
    return str(value)


def tags_to_list(tags: Mapping[str, Any]) -> List[str]:
    out: List[str] = []
    for key, value in tags.items():
        if value is None:
            out.append(key)
            continue
        if key == "path" and isinstance(value, str):
            value = strip_ids_and_params(value)
        out.append(f"{key}:{_render(value)}")
    return out


def tags_to_dict(tags: Iterable[str]) -> Dict[str, Optional[str]]:
    """
    Inverse of tags_to_list. Only the text between the first and second
    colon survives as the value, so "url:http://x" becomes {"url": "http"}.
    """
    out: Dict[str, Optional[str]] = {}
    for tag in tags:
        parts = tag.split(":")
        out[parts[0]] = parts[1] if len(parts) > 1 else None
    return out


def union(*tag_lists: Iterable[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for tags in tag_lists:
        for tag in tags:
            if tag not in seen:
                seen.add(tag)
                out.append(tag)
    return out


def extract_number(value: Any) -> Optional[float]:
    """First number embedded in a string field ("23.5ms" -> 23.5); None otherwise."""
    if not isinstance(value, str):
        return None
    m = _NUMBER_RE.search(value)
    if not m:
        return None
    return float(m.group(0))


def leading_int(value: Any) -> Optional[int]:
    # parseInt-style: "3" -> 3, " 2," -> 2, "web" -> None
    if not isinstance(value, str):
        return None
    m = _LEADING_INT_RE.match(value)
    if not m:
        return None
    return int(m.group(1))
