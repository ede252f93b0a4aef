"""
MacroRelay Backend — Credential Endpoint Rate Limiting
========================================================

What:  Per-IP sliding window limiter for the password endpoints
       (POST /auth/login, POST /auth/signup).
How:   Keeps the timestamps of recent attempts per client IP in memory;
       once AUTH_RATE_LIMIT_REQUESTS attempts fall inside the last
       AUTH_RATE_LIMIT_WINDOW seconds, further attempts get 429 with a
       Retry-After header until the oldest one ages out.

Scope:
    Single-process only. With several workers each keeps its own window,
    so the effective limit is multiplied by the worker count.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict, FrozenSet

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from app.exceptions import RateLimitExceededError
from app.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

LIMITED_PATHS: FrozenSet[str] = frozenset({"/auth/login", "/auth/signup"})

# Sweep idle clients every this many recorded attempts
_SWEEP_EVERY = 500


class AuthRateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, max_requests: int, window_seconds: int):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._attempts: Dict[str, Deque[float]] = defaultdict(deque)
        self._recorded = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method != "POST" or request.url.path not in LIMITED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.monotonic()
        window_start = now - self.window_seconds

        attempts = self._attempts[client_ip]
        while attempts and attempts[0] <= window_start:
            attempts.popleft()

        if len(attempts) >= self.max_requests:
            retry_after = int(attempts[0] + self.window_seconds - now) + 1
            logger.warning(
                "Auth rate limit exceeded for %s: %d attempts in %ds",
                client_ip,
                len(attempts),
                self.window_seconds,
            )
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(exc.retry_after)},
            )

        attempts.append(now)
        self._recorded += 1
        if self._recorded % _SWEEP_EVERY == 0:
            self._sweep(window_start)

        return await call_next(request)

    def _sweep(self, window_start: float) -> None:
        idle = [ip for ip, stamps in self._attempts.items() if not stamps or stamps[-1] <= window_start]
        for ip in idle:
            del self._attempts[ip]
        if idle:
            logger.debug("Dropped rate limit state for %d idle clients", len(idle))
