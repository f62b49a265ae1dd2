from __future__ import annotations

import contextvars
import logging
import uuid
from typing import Dict

REQUEST_ID = contextvars.ContextVar("request_id", default=None)
APP = contextvars.ContextVar("app", default=None)


def new_request_id() -> str:
    return uuid.uuid4().hex


def set_context(*, request_id: str) -> Dict[str, contextvars.Token]:
    return {"request_id": REQUEST_ID.set(request_id)}


def reset_context(tokens: Dict[str, contextvars.Token]) -> None:
    REQUEST_ID.reset(tokens["request_id"])


def set_app(app: str) -> contextvars.Token:
    # bound by the drain endpoint once the caller is authenticated
    return APP.set(app)


def reset_app(token: contextvars.Token) -> None:
    APP.reset(token)


def get_context() -> Dict[str, str]:
    out: Dict[str, str] = {}
    request_id = REQUEST_ID.get()
    app = APP.get()

    if request_id:
        out["request_id"] = request_id
    if app:
        out["app"] = app
    return out


class RequestContextFilter(logging.Filter):
    """Adds request_id and app attributes to every record ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = get_context()
        record.request_id = ctx.get("request_id", "-")
        record.app = ctx.get("app", "-")
        return True
