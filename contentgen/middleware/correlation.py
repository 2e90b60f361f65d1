"""Correlation ID middleware for request tracking."""

import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from structlog.contextvars import bind_contextvars, clear_contextvars

CORRELATION_HEADER = "X-Request-ID"
USER_HEADER = "X-User-ID"


def is_valid_correlation_id(value: str | None) -> bool:
    """Accept UUIDs and ``test-`` prefixed ids supplied by callers."""
    if not value:
        return False
    if value.startswith("test-"):
        return True
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


class CorrelationMiddleware(BaseHTTPMiddleware):
    """
    Middleware to handle request correlation IDs.

    The id is taken from the ``X-Request-ID`` header when valid, otherwise
    generated. It is stored on ``request.state``, echoed in the response
    header and bound to the structlog context together with the caller's
    ``X-User-ID``, so batch events logged while serving the request carry
    both.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        clear_contextvars()

        supplied = request.headers.get(CORRELATION_HEADER)
        correlation_id = (
            str(supplied) if is_valid_correlation_id(supplied) else str(uuid.uuid4())
        )
        request.state.correlation_id = correlation_id

        context = {"correlation_id": correlation_id}
        user_id = request.headers.get(USER_HEADER)
        if user_id:
            context["user_id"] = user_id
        bind_contextvars(**context)

        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response
