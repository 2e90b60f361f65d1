"""Main FastAPI application module."""

import os

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette import status

from contentgen.api.v1.router import router as v1_router
from contentgen.core.config import settings
from contentgen.core.events import lifespan
from contentgen.core.logging import configure_logging
from contentgen.middleware.correlation import CorrelationMiddleware
from contentgen.middleware.errors import (
    ErrorHandlingMiddleware,
    register_error_handlers,
)
from contentgen.middleware.metrics import MetricsMiddleware
from contentgen.middleware.rate_limit import RateLimitMiddleware
from contentgen.middleware.security import SecurityHeadersMiddleware

configure_logging(
    testing=os.getenv("TESTING") == "true",
    level=settings.LOG_LEVEL,
    json_logs=settings.JSON_LOGS,
)


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Batch content generation with pluggable LLM providers",
        version=settings.version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        default_response_class=JSONResponse,
        lifespan=lifespan,
    )

    # Middleware, outermost first:
    # 1. CORS (outermost)
    # 2. Security headers
    # 3. Correlation (adds request ID)
    # 4. Metrics (tracks all requests)
    # 5. Rate limiting
    # 6. Error handling (innermost - handles all errors)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(
        RateLimitMiddleware, path_prefix=f"{settings.api_prefix}/content"
    )
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*", "Content-Type", "X-Request-ID", "X-User-ID"],
        expose_headers=["X-Request-ID"],
        max_age=600,
    )
    register_error_handlers(app)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Expose Prometheus metrics."""
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/", include_in_schema=False)
    async def root_redirect() -> Response:
        """Redirect root path to docs."""
        return RedirectResponse(
            url="/docs", status_code=status.HTTP_307_TEMPORARY_REDIRECT
        )

    # Include routers - mount v1 routes under prefix
    app.include_router(v1_router, prefix=settings.api_prefix)
    return app


app = create_app()
