"""Rate limiting middleware for the API.

Applies a fixed-window limit per client IP to every ``/api/v1`` route except
health checks. Counters live in process memory, so each worker limits
independently.
"""

import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
EXEMPT_PREFIXES = ("/api/v1/health",)


@dataclass
class RateLimitEntry:
    """Tracking entry for rate limit state."""

    count: int = 0
    window_start: float = field(default_factory=time.time)


def get_client_ip(request: Request) -> str:
    """Extract client IP address, honouring X-Forwarded-For behind a proxy."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"


class InMemoryRateLimitStorage:
    """Fixed-window counters keyed by client."""

    def __init__(self, cleanup_interval: int = 300) -> None:
        self._storage: dict[str, RateLimitEntry] = defaultdict(RateLimitEntry)
        self._last_cleanup = time.time()
        self._cleanup_interval = cleanup_interval

    def _cleanup_expired(self, window_seconds: int) -> None:
        now = time.time()
        if now - self._last_cleanup < self._cleanup_interval:
            return

        expired = [
            key
            for key, entry in self._storage.items()
            if now - entry.window_start > window_seconds
        ]
        for key in expired:
            del self._storage[key]

        self._last_cleanup = now

    def check_and_increment(
        self, key: str, limit: int, window_seconds: int
    ) -> tuple[bool, int, int]:
        """Count a request against ``key``.

        Returns:
            Tuple of (is_allowed, remaining_requests, reset_seconds)
        """
        self._cleanup_expired(window_seconds)

        now = time.time()
        entry = self._storage[key]

        if now - entry.window_start > window_seconds:
            entry.count = 1
            entry.window_start = now
            return True, limit - 1, window_seconds

        reset = int(window_seconds - (now - entry.window_start))
        if entry.count < limit:
            entry.count += 1
            return True, limit - entry.count, reset

        return False, 0, reset


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Return 429 Too Many Requests once a client exceeds its window."""

    def __init__(
        self,
        app,
        requests: int = 100,
        window_seconds: int = 900,
        storage: InMemoryRateLimitStorage | None = None,
        enabled: bool = True,
    ) -> None:
        super().__init__(app)
        self.requests = requests
        self.window_seconds = window_seconds
        self.storage = storage or InMemoryRateLimitStorage()
        self.enabled = enabled

    def _is_limited_path(self, path: str) -> bool:
        return path.startswith(API_PREFIX) and not path.startswith(EXEMPT_PREFIXES)

    async def dispatch(self, request: Request, call_next) -> Response:
        if not self.enabled or not self._is_limited_path(request.url.path):
            return await call_next(request)

        client_ip = get_client_ip(request)
        is_allowed, remaining, reset = self.storage.check_and_increment(
            client_ip, self.requests, self.window_seconds
        )

        if not is_allowed:
            logger.warning(
                f"Rate limit exceeded: {request.method} {request.url.path} from {client_ip}"
            )
            return JSONResponse(
                status_code=429,
                content={
                    "detail": "Too many requests, please try again later.",
                    "retry_after": reset,
                },
                headers={
                    "Retry-After": str(reset),
                    "X-RateLimit-Limit": str(self.requests),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(reset),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(reset)
        return response
