"""Fixed-window rate limiting for the content API.

The limiter is an explicit component created at startup and stored on the
application state; the middleware only looks it up per request.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.status import HTTP_429_TOO_MANY_REQUESTS
from starlette.types import ASGIApp

from contentgen.core.config import settings
from contentgen.core.logging import get_logger
from contentgen.core.metrics import RATE_LIMITED_TOTAL

logger = get_logger().bind(module="middleware.rate_limit")

WINDOW_SECONDS = 60
READ_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int


class RateLimiter(ABC):
    """Counts hits per key in fixed windows."""

    def __init__(self, window: int = WINDOW_SECONDS) -> None:
        self.window = window

    @abstractmethod
    async def hit(self, key: str, limit: int) -> RateLimitResult:
        """Record one hit for ``key`` and report whether it is allowed."""

    async def close(self) -> None:
        """Release backend resources."""


class InMemoryRateLimiter(RateLimiter):
    """Process-local limiter, suitable for a single worker and for tests."""

    def __init__(
        self,
        window: int = WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(window)
        self._clock = clock
        self._windows: dict[str, tuple[float, int]] = {}
        self._lock = asyncio.Lock()

    async def hit(self, key: str, limit: int) -> RateLimitResult:
        async with self._lock:
            now = self._clock()
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window:
                started, count = now, 0
            count += 1
            self._windows[key] = (started, count)
            self._prune(now)

        reset_after = max(0, int(started + self.window - now))
        return RateLimitResult(
            allowed=count <= limit,
            limit=limit,
            remaining=max(0, limit - count),
            reset_after=reset_after,
        )

    def _prune(self, now: float) -> None:
        expired = [
            key
            for key, (started, _) in self._windows.items()
            if now - started >= self.window
        ]
        for key in expired:
            del self._windows[key]


class RedisRateLimiter(RateLimiter):
    """Limiter shared between workers through Redis ``INCR`` and ``EXPIRE``."""

    def __init__(
        self,
        redis: Any,
        window: int = WINDOW_SECONDS,
        prefix: str = "contentgen:ratelimit",
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(window)
        self.redis = redis
        self.prefix = prefix
        self._clock = clock

    async def hit(self, key: str, limit: int) -> RateLimitResult:
        now = self._clock()
        bucket = int(now // self.window)
        redis_key = f"{self.prefix}:{key}:{bucket}"

        count = int(await self.redis.incr(redis_key))
        if count == 1:
            await self.redis.expire(redis_key, self.window)

        reset_after = max(0, int((bucket + 1) * self.window - now))
        return RateLimitResult(
            allowed=count <= limit,
            limit=limit,
            remaining=max(0, limit - count),
            reset_after=reset_after,
        )

    async def close(self) -> None:
        await self.redis.close()


def client_key(request: Request) -> str:
    """Identify the caller by ``X-User-ID`` or, failing that, client host."""
    user_id = request.headers.get("X-User-ID")
    if user_id:
        return f"user:{user_id}"
    host = request.client.host if request.client else "unknown"
    return f"ip:{host}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies read and write limits to requests under ``path_prefix``."""

    def __init__(
        self,
        app: ASGIApp,
        path_prefix: str = "/api/v1/content",
        read_limit: int | None = None,
        write_limit: int | None = None,
    ) -> None:
        super().__init__(app)
        self.path_prefix = path_prefix
        self.read_limit = read_limit or settings.RATE_LIMIT_READ_PER_MINUTE
        self.write_limit = write_limit or settings.RATE_LIMIT_WRITE_PER_MINUTE

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        limiter: RateLimiter | None = getattr(request.app.state, "rate_limiter", None)
        if limiter is None or not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        scope = "read" if request.method in READ_METHODS else "write"
        limit = self.read_limit if scope == "read" else self.write_limit
        key = client_key(request)
        result = await limiter.hit(f"{scope}:{key}", limit)

        if not result.allowed:
            RATE_LIMITED_TOTAL.labels(scope=scope).inc()
            correlation_id = getattr(request.state, "correlation_id", None)
            logger.warning("rate_limited", scope=scope, client=key, limit=limit)
            return JSONResponse(
                status_code=HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "error": "RateLimitExceeded",
                    "message": "Too many requests. Please try again later.",
                    "status_code": HTTP_429_TOO_MANY_REQUESTS,
                    "correlation_id": correlation_id if correlation_id else "unknown",
                },
                headers={
                    "Retry-After": str(result.reset_after),
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        return response
