from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from drainpoint.request_context import new_request_id, reset_context, set_context

logger = logging.getLogger("drainpoint.access")


class DrainAccessLogMiddleware(BaseHTTPMiddleware):
    """
    Logs one line per drain request:
      POST / 200 12.3ms app=my-app lines=42 matched=40
    The endpoint reports app/lines/matched through request.state.
    """

    async def dispatch(self, request: Request, call_next):
        start = time.time()
        request_id = request.headers.get("x-request-id") or new_request_id()
        tokens = set_context(request_id=request_id)
        status = 500
        try:
            resp = await call_next(request)
            status = resp.status_code
            resp.headers["x-drainpoint-request-id"] = request_id
            return resp
        finally:
            dur_ms = (time.time() - start) * 1000.0
            logger.info(
                "%s %s %s %.1fms app=%s lines=%s matched=%s",
                request.method,
                request.url.path,
                int(status),
                dur_ms,
                getattr(request.state, "app", "-"),
                getattr(request.state, "lines", 0),
                getattr(request.state, "matched", 0),
            )
            reset_context(tokens)
