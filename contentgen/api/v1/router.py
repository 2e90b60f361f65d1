"""API v1 router module."""

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from contentgen.api.v1.content import router as content_router
from contentgen.core import db
from contentgen.core.config import settings
from contentgen.core.events import health_check as component_health

router = APIRouter(default_response_class=JSONResponse)


@router.get("/")
async def get_api_metadata() -> dict[str, str]:
    """API metadata."""
    return {
        "name": settings.app_name,
        "version": settings.version,
        "api_status": "healthy",
    }


# Health check endpoints


@router.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """
    Health check endpoint.

    Returns
    -------
        Dict containing health status information
    """
    health = await component_health(request.app)
    return {
        **health,
        "version": settings.version,
        "correlation_id": getattr(request.state, "correlation_id", None),
    }


@router.get("/health/db")
async def db_health_check(request: Request) -> dict[str, str]:
    """
    Database health check endpoint.

    Returns
    -------
        Dict containing database health status information
    """
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    if settings.STORAGE_BACKEND == "memory":
        return {
            "status": "healthy",
            "database": "memory",
            "correlation_id": correlation_id,
        }

    try:
        await db.check_database()
    except (SQLAlchemyError, OSError) as e:
        return {
            "status": "unhealthy",
            "error": str(e),
            "correlation_id": correlation_id,
        }
    return {
        "status": "healthy",
        "database": db.to_async_url(settings.DATABASE_URL).split("://", 1)[0],
        "correlation_id": correlation_id,
    }


router.include_router(content_router)
