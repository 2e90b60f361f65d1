"""Request metrics middleware for Prometheus monitoring."""

import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.routing import Match

from contentgen.core.logging import get_logger
from contentgen.core.metrics import (
    REQUEST_SECONDS,
    REQUESTS_TOTAL,
    RESPONSES_TOTAL,
)

logger = get_logger().bind(module="middleware.metrics")


def route_path(request: Request) -> str:
    """Return the route template so ids do not become label values."""
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return str(getattr(route, "path", request.url.path))
    return str(request.url.path).rstrip("/") or "/"


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware to collect request/response metrics.

    Requests are counted by method and route template, responses by status
    code, and latency is observed per route. SSE progress streams are timed
    until their headers are sent, not until the stream ends.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        path = route_path(request)
        REQUESTS_TOTAL.labels(method=request.method, path=path).inc()

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=path,
                error=str(e),
            )
            raise
        duration = time.perf_counter() - started

        REQUEST_SECONDS.labels(path=path).observe(duration)
        RESPONSES_TOTAL.labels(status_code=str(response.status_code)).inc()
        logger.info(
            "request_processed",
            method=request.method,
            path=path,
            status_code=response.status_code,
            duration=round(duration, 4),
        )
        return response
