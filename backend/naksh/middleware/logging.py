"""
Naksh Backend — Request Logging Middleware
============================================

What:  One access-log line per request: method, path, status, duration,
       request id, client ip and (when authenticated) the user id.
How:   Times the downstream call and picks the level from the status class
       (5xx ERROR, 4xx WARNING, else INFO). Structured fields go in `extra`.
Who:   Applied to every request; sits inside RequestIDMiddleware so the
       request id is already set.

Errors themselves are logged by middleware/errors.py (with stack traces);
this logger only records that the request ended badly.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from naksh.middleware.request_id import request_id_var
from naksh.utils import client_ip

logger = logging.getLogger("naksh.access")

# Polled every few seconds by the load balancer
SILENT_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in SILENT_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            level = logging.ERROR
        elif status >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        peer = client_ip(request)
        rid = request_id_var.get("")
        user_id = getattr(request.state, "user_id", None) or "anonymous"

        logger.log(
            level,
            "%s %s %d %.1fms [%s] user=%s from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            user_id,
            peer,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": peer,
                "user_id": user_id,
            },
        )
        return response
