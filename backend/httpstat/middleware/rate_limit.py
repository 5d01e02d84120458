"""
Rate Limit Middleware Module

Limits how many measurements one client may trigger. Every measurement makes
an outbound request, so an unthrottled service can be used to flood targets.
"""

import logging
import time
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from httpstat.config import get_settings

logger = logging.getLogger(__name__)

# Stale clients are pruned every this many checked requests
CLEANUP_EVERY = 1000

# Paths never rate limited (exact match)
EXCLUDED_PATHS = frozenset({
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
    "/favicon.ico",
})

UNIT_SECONDS = {
    "second": 1,
    "seconds": 1,
    "minute": 60,
    "minutes": 60,
    "hour": 3600,
    "hours": 3600,
    "day": 86400,
    "days": 86400,
}


def parse_rate_limit(limit: str) -> tuple[int, int]:
    """
    Parse rate limit string to requests count and window seconds.

    Args:
        limit: Rate limit string like "60/minute", "20/hour", etc.

    Returns:
        Tuple of (requests_count, window_seconds)

    Raises:
        ValueError: If rate limit format is invalid
    """
    parts = limit.lower().split("/")
    if len(parts) != 2:
        raise ValueError(f"Invalid rate limit format: {limit}")

    try:
        count = int(parts[0])
    except ValueError as exc:
        raise ValueError(f"Invalid request count in rate limit: {limit}") from exc

    unit = parts[1].strip()
    if unit not in UNIT_SECONDS:
        raise ValueError(f"Unknown time unit in rate limit: {limit}")

    return count, UNIT_SECONDS[unit]


class InMemoryRateLimiter:
    """
    In-memory rate limiter using sliding window algorithm.

    State is per process; each worker limits independently.
    """

    def __init__(self) -> None:
        # {key: [timestamp, ...]}, oldest first
        self._requests: dict[str, list[float]] = {}

    def is_allowed(self, key: str, max_requests: int, window_seconds: int) -> tuple[bool, int, int]:
        """
        Check if request is allowed under rate limit.

        Args:
            key: Client identifier
            max_requests: Maximum requests allowed in window
            window_seconds: Time window in seconds

        Returns:
            Tuple of (is_allowed, remaining_requests, retry_after_seconds)
        """
        current_time = time.monotonic()
        window_start = current_time - window_seconds

        recent = [ts for ts in self._requests.get(key, []) if ts > window_start]
        self._requests[key] = recent

        if len(recent) >= max_requests:
            retry_after = int(recent[0] + window_seconds - current_time) + 1
            return False, 0, max(1, retry_after)

        recent.append(current_time)
        return True, max_requests - len(recent), 0

    def cleanup_expired(self, max_age_seconds: int = 3600) -> None:
        """Remove clients with no request in the last max_age_seconds."""
        cutoff = time.monotonic() - max_age_seconds
        self._requests = {
            k: v for k, v in self._requests.items()
            if v and v[-1] > cutoff
        }


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate Limit Middleware

    Enforces RATE_LIMIT_MEASURE per client IP on every path except the
    excluded ones (health check and API docs).
    """

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)
        settings = get_settings()
        self.enabled = settings.RATE_LIMIT_ENABLED
        self.limit = settings.RATE_LIMIT_MEASURE
        self._max_requests, self._window_seconds = parse_rate_limit(self.limit)
        self._limiter = InMemoryRateLimiter()
        self._checked = 0

        logger.info(
            "Rate limit middleware initialized: enabled=%s, measure=%s",
            self.enabled,
            self.limit,
        )

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP address from request."""
        # Check X-Forwarded-For header (for reverse proxy setups)
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # Take the first IP (original client)
            return forwarded.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()

        if request.client:
            return request.client.host

        return "unknown"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request through rate limiter."""
        if not self.enabled or request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        # Preflight requests never trigger a measurement
        if request.method == "OPTIONS":
            return await call_next(request)

        self._checked += 1
        if self._checked % CLEANUP_EVERY == 0:
            self._limiter.cleanup_expired(max_age_seconds=self._window_seconds)

        key = f"ip:{self._get_client_ip(request)}"
        is_allowed, remaining, retry_after = self._limiter.is_allowed(
            key, self._max_requests, self._window_seconds
        )

        if not is_allowed:
            logger.warning(
                "Rate limit exceeded: key=%s, path=%s, limit=%d/%ds",
                key,
                request.url.path,
                self._max_requests,
                self._window_seconds,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": {
                        "message": "Rate limit exceeded. Please try again later.",
                        "type": "rate_limit_error",
                        "code": "rate_limit_exceeded",
                    }
                },
                headers={
                    "X-RateLimit-Limit": str(self._max_requests),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(retry_after),
                    "Retry-After": str(retry_after),
                },
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(self._max_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(self._window_seconds)

        return response
