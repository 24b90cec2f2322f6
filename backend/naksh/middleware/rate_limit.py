"""
Naksh Backend — Rate Limiting Middleware
==========================================

What:  Per-client sliding-window request limit.
How:   Keeps the request timestamps of each client ip for the last
       `window` seconds; a request arriving when the list is full is
       answered with a RATE_LIMITED failure envelope and `Retry-After`.
Who:   Outermost application middleware (rejects before any other work).

Limits come from settings (`rate_limit_requests` per `rate_limit_window`
seconds) unless passed explicitly, which the tests do.

State is per process. Several workers each enforce their own window.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from naksh.config import settings
from naksh.exceptions import rate_limited
from naksh.responses import error_response
from naksh.utils import client_ip

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    # Forget idle clients every N admitted requests
    CLEANUP_EVERY = 1000

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
    ):
        super().__init__(app)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._admitted = 0

    @staticmethod
    def client_key(request: Request) -> str:
        return client_ip(request)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        key = self.client_key(request)
        now = time.time()
        window_start = now - self.window_seconds
        timestamps = self._requests[key]

        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

        if len(timestamps) >= self.max_requests:
            retry_after = int(timestamps[0] + self.window_seconds - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds window",
                key,
                len(timestamps),
                self.window_seconds,
            )
            error = rate_limited(
                f"Too many requests. Please wait {retry_after} seconds before retrying.",
                retry_after=retry_after,
            )
            return error_response(
                error.message,
                error.status_code,
                error.code,
                error.details,
                headers={"Retry-After": str(retry_after)},
            )

        timestamps.append(now)
        self._admitted += 1
        if self._admitted % self.CLEANUP_EVERY == 0:
            self._forget_idle_clients(window_start)

        return await call_next(request)

    def _forget_idle_clients(self, window_start: float) -> None:
        idle = [
            key for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for key in idle:
            del self._requests[key]
        if idle:
            logger.debug("Dropped %d idle rate-limit entries", len(idle))
