from __future__ import annotations

import logging
import secrets
from typing import Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from drainpoint import config
from drainpoint.access_log_middleware import DrainAccessLogMiddleware
from drainpoint.config import AllowedApp, load_allowed_apps
from drainpoint.logfmt import LineSplitter, parse_line
from drainpoint.metrics import MetricsSink, build_sink
from drainpoint.request_context import reset_app, set_app
from drainpoint.rules import process_line

logger = logging.getLogger(__name__)

_basic = HTTPBasic(auto_error=False)


class Unauthorized(Exception):
    """Unknown app or wrong password; answered with a plain-text 401."""


def _check_password(app: AllowedApp, password: str) -> bool:
    return secrets.compare_digest(app.password.encode("utf-8"), password.encode("utf-8"))


def create_app(
    allowed_apps: Optional[Dict[str, AllowedApp]] = None,
    sink: Optional[MetricsSink] = None,
) -> FastAPI:
    """
    Build the drain. Configuration is read here, once; a missing
    ALLOWED_APPS or <APP>_PASSWORD raises ConfigError and the process
    should not start.
    """
    if allowed_apps is None:
        allowed_apps = load_allowed_apps()
    if sink is None:
        sink = build_sink(config.STATSD_URL, debug=config.DEBUG)

    logger.debug("Allowed apps: %s", ",".join(allowed_apps))

    app = FastAPI(title="drainpoint")
    app.add_middleware(DrainAccessLogMiddleware)

    @app.exception_handler(Unauthorized)
    async def unauthorized(request: Request, exc: Unauthorized):
        return PlainTextResponse("Unauthorized", status_code=401, headers={"WWW-Authenticate": "Basic"})

    def authenticate(credentials: Optional[HTTPBasicCredentials] = Depends(_basic)) -> AllowedApp:
        name = credentials.username if credentials else None
        allowed = allowed_apps.get(name) if name is not None else None
        if allowed is None or not _check_password(allowed, credentials.password):
            logger.debug("Unauthorized access by %s", name)
            raise Unauthorized(name)
        return allowed

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.post("/", response_class=PlainTextResponse)
    async def drain(request: Request, allowed: AllowedApp = Depends(authenticate)):
        token = set_app(allowed.name)
        request.state.app = allowed.name
        request.state.lines = 0
        request.state.matched = 0

        def handle(text: str) -> None:
            request.state.lines += 1
            try:
                rule = process_line(parse_line(text), allowed.prefix, allowed.tags, sink)
            except Exception:
                logger.exception("Failed to process line: %r", text)
                return
            if rule is not None:
                request.state.matched += 1

        splitter = LineSplitter()
        try:
            async for chunk in request.stream():
                for text in splitter.feed(chunk):
                    handle(text)
            for text in splitter.flush():
                handle(text)
        finally:
            reset_app(token)
        return "OK"

    return app
