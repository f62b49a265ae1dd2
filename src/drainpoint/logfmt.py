"""
Logfmt decoding for Heroku drain bodies.

A logplex frame such as

    83 <40>1 2024-05-02T10:00:00+00:00 host heroku router - at=info path="/a b"

decodes to a flat dict. Bare words (the syslog header, "Error", "R14", ...)
become True keys, which is what the rule engine keys its dyno-error and
scale-event formats on.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Union

Value = Union[str, bool, None]


def _coerce(raw: str, quoted: bool) -> Value:
    if quoted:
        return raw
    if raw == "true":
        return True
    if raw == "false":
        return False
    if raw == "":
        return None
    return raw


def parse_line(text: str) -> Dict[str, Value]:
    out: Dict[str, Value] = {}
    text = text.rstrip("\r\n")

    key: List[str] = []
    value: List[str] = []
    in_key = False
    in_value = False
    in_quote = False
    had_quote = False

    def flush() -> None:
        if in_key and key:
            out["".join(key)] = True
        elif in_value:
            out["".join(key)] = _coerce("".join(value), had_quote)

    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == " " and not in_quote:
            flush()
            key, value = [], []
            in_key = in_value = in_quote = had_quote = False
        elif ch == "=" and in_key and not in_quote:
            in_key = False
            in_value = True
        elif ch == "\\" and in_value and i + 1 < n:
            i += 1
            value.append(text[i])
        elif ch == '"' and in_value:
            had_quote = True
            in_quote = not in_quote
        elif in_value:
            value.append(ch)
        elif in_key:
            key.append(ch)
        else:
            in_key = True
            key.append(ch)
        i += 1
    flush()
    return out


class LineSplitter:
    """
    Incremental newline splitter for a streamed request body.
    feed() returns the complete lines seen so far; flush() returns whatever
    is left once the stream ends.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding
        self._buf = b""

    def _decode(self, raw: bytes) -> Optional[str]:
        line = raw.decode(self.encoding, errors="replace").rstrip("\r")
        return line if line.strip() else None

    def feed(self, chunk: bytes) -> List[str]:
        self._buf += chunk
        *complete, self._buf = self._buf.split(b"\n")
        return [line for line in map(self._decode, complete) if line is not None]

    def flush(self) -> List[str]:
        rest, self._buf = self._buf, b""
        line = self._decode(rest)
        return [line] if line is not None else []
