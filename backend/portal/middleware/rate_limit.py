"""Rate limiting middleware.

Protects the API from abuse with per-user and per-IP limits, using a
sliding window held in process memory on ``app.state.rate_limits``.
"""

import logging
import time
from collections import deque
from typing import Callable, Optional

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from portal.auth.jwt import decode_token
from portal.config import settings
from portal.middleware.exceptions import create_error_response

logger = logging.getLogger(__name__)


class SlidingWindowLimiter:
    """Request timestamps per key, trimmed to the window on every hit."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}

    def hit(self, key: str, limit: int, window: int) -> tuple[bool, int, float]:
        """Record one request for ``key``.

        Returns:
            (allowed, remaining, seconds until the window frees a slot)
        """
        now = self._clock()
        hits = self._hits.setdefault(key, deque())
        while hits and hits[0] <= now - window:
            hits.popleft()

        if len(hits) >= limit:
            return False, 0, hits[0] + window - now

        hits.append(now)
        return True, limit - len(hits), hits[0] + window - now

    def reset(self) -> None:
        self._hits.clear()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limiting middleware.

    Features:
    - Per-user rate limits (authenticated requests)
    - Per-IP rate limits (unauthenticated requests)
    - Sliding window algorithm
    - Tighter limits on the auth endpoints
    """

    def __init__(
        self,
        app,
        default_limit: int = 100,  # requests
        authenticated_limit: int = 500,  # requests
        default_window: int = 60,  # seconds
        exempt_paths: Optional[list[str]] = None,
    ):
        super().__init__(app)
        self.default_limit = default_limit
        self.authenticated_limit = authenticated_limit
        self.default_window = default_window
        self.exempt_paths = exempt_paths or ["/health", "/docs", "/openapi.json"]

        # Custom limits for specific endpoint patterns
        self.custom_limits = {
            "/api/auth/login": (5, 60),  # 5 requests per minute
            "/api/auth/register": (3, 300),  # 3 requests per 5 minutes
        }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        limiter: SlidingWindowLimiter | None = getattr(request.app.state, "rate_limits", None)
        if limiter is None or not settings.rate_limit_enabled:
            return await call_next(request)

        if any(request.url.path.startswith(path) for path in self.exempt_paths):
            return await call_next(request)

        client_key = self._get_rate_limit_key(request)
        pattern, limit, window = self._get_limit_for_path(request.url.path, client_key)
        key = f"{pattern}:{client_key}"
        allowed, remaining, reset_in = limiter.hit(key, limit, window)
        reset_at = str(int(time.time() + reset_in))

        if not allowed:
            retry_after = max(1, int(reset_in))
            logger.warning(
                f"Rate limit exceeded for {key}",
                extra={"path": request.url.path, "method": request.method},
            )
            response = create_error_response(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                message=f"Rate limit exceeded. Try again in {retry_after} seconds.",
                error_code="RATE_LIMITED",
            )
            response.headers["X-RateLimit-Limit"] = str(limit)
            response.headers["X-RateLimit-Remaining"] = "0"
            response.headers["X-RateLimit-Reset"] = reset_at
            response.headers["Retry-After"] = str(retry_after)
            return response

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = reset_at
        return response

    def _get_limit_for_path(self, path: str, client_key: str) -> tuple[str, int, int]:
        """Window bucket, limit and window length for ``path``."""
        for pattern, (limit, window) in self.custom_limits.items():
            if path.startswith(pattern):
                return pattern, limit, window
        if client_key.startswith("user:"):
            return "*", self.authenticated_limit, self.default_window
        return "*", self.default_limit, self.default_window

    def _get_rate_limit_key(self, request: Request) -> str:
        """User ID from a valid bearer token, otherwise the client IP."""
        auth_header = request.headers.get("authorization", "")
        if auth_header.startswith("Bearer "):
            user_id = decode_token(auth_header[7:]).get("sub")
            if user_id:
                return f"user:{user_id}"

        # Behind a load balancer the first forwarded address is the client
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            ip = forwarded.split(",")[0].strip()
        else:
            ip = request.client.host if request.client else "unknown"
        return f"ip:{ip}"
