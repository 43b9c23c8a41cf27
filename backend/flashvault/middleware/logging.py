"""
FlashVault Backend — Access Log Middleware
============================================

What:  One log line per request on the `flashvault.access` logger:
       method, path, status, duration, request id and authenticated user.
How:   Times the downstream call; picks the level from the status class
       (5xx ERROR, 4xx WARNING, else INFO). /health is not logged.

Never logged: request bodies (collection notes are personal), the
Authorization header, and the session cookie.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from flashvault.middleware.request_id import request_id_var

logger = logging.getLogger("flashvault.access")

_UNLOGGED_PATHS = frozenset({"/health"})


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in _UNLOGGED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        rid = request_id_var.get("")
        # Set by the access gate; absent for rejected or public requests
        user_id = getattr(request.state, "user_id", None) or "-"
        status = response.status_code

        logger.log(
            _level_for(status),
            "%s %s %d %.1fms [%s] user=%s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            user_id,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "user_id": user_id,
            },
        )
        return response
