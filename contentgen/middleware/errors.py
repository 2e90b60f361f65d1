"""Error handling middleware."""

from typing import Any

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.status import (
    HTTP_404_NOT_FOUND,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
)
from starlette.types import ASGIApp

from contentgen.content.errors import ContentError
from contentgen.core.logging import get_logger

logger = get_logger().bind(module="middleware.errors")

# Map exception types to status codes (None means use exception's status_code)
ErrorMapping = dict[type[Exception], int | None]

DEFAULT_ERROR_MAPPING: ErrorMapping = {
    ContentError: None,
    StarletteHTTPException: None,
    RequestValidationError: HTTP_422_UNPROCESSABLE_ENTITY,
    KeyError: HTTP_404_NOT_FOUND,
    ValueError: HTTP_422_UNPROCESSABLE_ENTITY,
}


def resolve_status(exc: Exception, mapping: ErrorMapping | None = None) -> int:
    """Find the status code for an exception, most specific class first."""
    mapping = DEFAULT_ERROR_MAPPING if mapping is None else mapping
    for cls in type(exc).__mro__:
        if cls in mapping:
            mapped = mapping[cls]
            if mapped is not None:
                return mapped
            break
    status_code = getattr(exc, "status_code", HTTP_500_INTERNAL_SERVER_ERROR)
    if isinstance(status_code, int):
        return status_code
    return HTTP_500_INTERNAL_SERVER_ERROR


def error_detail(exc: Exception) -> Any:
    if isinstance(exc, ContentError):
        return exc.message
    if isinstance(exc, StarletteHTTPException):
        return exc.detail
    if isinstance(exc, RequestValidationError):
        return [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
    if isinstance(exc, KeyError):
        return f"'{exc.args[0]}'" if exc.args else str(exc)
    return str(exc.args[0] if exc.args else str(exc))


def error_response(request: Request, exc: Exception) -> JSONResponse:
    """Log an exception and render it as the JSON error body."""
    error_type = exc.__class__.__name__
    status_code = resolve_status(exc)
    detail = error_detail(exc)
    correlation_id = getattr(request.state, "correlation_id", None)

    server_error = status_code >= HTTP_500_INTERNAL_SERVER_ERROR
    log = logger.error if server_error else logger.warning
    log(
        "request_error",
        error_type=error_type,
        error_message=str(detail),
        status_code=status_code,
        path=request.url.path,
        method=request.method,
        correlation_id=correlation_id,
    )

    response = JSONResponse(
        status_code=status_code,
        content={
            "error": error_type,
            "message": detail,
            "status_code": status_code,
            "correlation_id": correlation_id if correlation_id else "unknown",
        },
        media_type="application/json",
    )
    if correlation_id:
        response.headers["X-Request-ID"] = correlation_id
    return response


async def handle_exception(request: Request, exc: Exception) -> JSONResponse:
    return error_response(request, exc)


def register_error_handlers(app: FastAPI) -> None:
    """Route framework-raised errors through the same JSON body."""
    app.add_exception_handler(StarletteHTTPException, handle_exception)
    app.add_exception_handler(HTTPException, handle_exception)
    app.add_exception_handler(RequestValidationError, handle_exception)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware to turn exceptions raised by endpoints into JSON responses.

    :class:`ContentError` subclasses keep their own status code, ``KeyError``
    becomes 404, ``ValueError`` 422 and anything else 500.
    """

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """
        Process the request/response cycle and handle errors.

        Args:
        ----
            request: The incoming request
            call_next: The next handler in the middleware chain

        Returns:
        -------
            The response from downstream handlers or error response
        """
        try:
            return await call_next(request)
        except Exception as exc:
            return error_response(request, exc)
