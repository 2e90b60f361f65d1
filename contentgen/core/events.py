"""Application startup and shutdown events."""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from redis.asyncio.client import Redis as AsyncRedis
from redis.exceptions import ConnectionError, TimeoutError

from contentgen.content.pipeline import ContentPipeline
from contentgen.content.repository import ContentRepository, InMemoryContentRepository
from contentgen.core import db
from contentgen.core.config import settings
from contentgen.core.logging import get_logger
from contentgen.database.repositories import SqlAlchemyContentRepository
from contentgen.middleware.rate_limit import (
    InMemoryRateLimiter,
    RateLimiter,
    RedisRateLimiter,
)

logger = get_logger().bind(module="events")

SHUTDOWN_DRAIN_SECONDS = 30.0


class RedisInitError(Exception):
    """Raised when the Redis connection cannot be established."""


async def create_redis_pool(
    redis_url: str | None = None,
    pool_size: int | None = None,
    max_retries: int = 3,
    retry_delay: float = 1.0,
) -> AsyncRedis:
    """Create Redis connection pool with retry logic.

    Returns:
        Redis client

    Raises:
        RedisInitError: If connection cannot be established after retries
    """
    redis_url = redis_url or settings.REDIS_URL
    pool_size = pool_size or settings.REDIS_POOL_SIZE

    for attempt in range(max_retries):
        try:
            pool = AsyncRedis.from_url(
                redis_url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=pool_size,
                health_check_interval=15,
            )
            # Verify connection is working
            await pool.ping()
            logger.info("redis_pool_initialized", pool_size=pool_size)
            return pool
        except (ConnectionError, TimeoutError) as e:
            if attempt == max_retries - 1:
                raise RedisInitError(f"Failed to initialize Redis pool: {e}") from e
            logger.warning(
                "redis_connection_retry",
                attempt=attempt + 1,
                max_retries=max_retries,
                error=str(e),
                retry_delay=retry_delay,
            )
            await asyncio.sleep(retry_delay)

    raise RedisInitError("Failed to initialize Redis pool: max retries exceeded")


async def create_repository() -> ContentRepository:
    """Build the repository selected by ``STORAGE_BACKEND``."""
    if settings.STORAGE_BACKEND == "memory":
        return InMemoryContentRepository()

    await db.create_tables()
    return SqlAlchemyContentRepository(db.get_session_factory())


async def create_rate_limiter() -> RateLimiter | None:
    """Build the limiter selected by ``RATE_LIMIT_BACKEND``."""
    if settings.RATE_LIMIT_BACKEND == "disabled":
        return None
    if settings.RATE_LIMIT_BACKEND == "redis":
        return RedisRateLimiter(await create_redis_pool())
    return InMemoryRateLimiter()


async def health_check(app: Any) -> dict[str, Any]:
    """Check health of the pipeline components.

    Returns:
        Dict containing health status of all components
    """
    pipeline: ContentPipeline | None = getattr(app.state, "pipeline", None)
    limiter: RateLimiter | None = getattr(app.state, "rate_limiter", None)

    health_status: dict[str, Any] = {
        "status": "healthy",
        "components": {"pipeline": pipeline is not None},
        "details": {
            "storage_backend": settings.STORAGE_BACKEND,
            "rate_limit_backend": settings.RATE_LIMIT_BACKEND,
        },
    }

    if pipeline is not None:
        health_status["details"]["active_batches"] = len(pipeline.registry.running)

    if isinstance(limiter, RedisRateLimiter):
        try:
            await limiter.redis.ping()
            health_status["components"]["redis"] = True
        except (ConnectionError, TimeoutError) as e:
            health_status["components"]["redis"] = False
            health_status["error"] = str(e)
            logger.error("health_check_redis_failed", error=str(e))

    if not all(health_status["components"].values()):
        health_status["status"] = "degraded"

    return health_status


def create_start_app_handler(app: Any) -> Callable[[], Awaitable[None]]:
    """Create startup event handler.

    Args:
        app: FastAPI application instance

    Returns:
        Startup handler function
    """

    async def start_app() -> None:
        repository = await create_repository()
        app.state.pipeline = ContentPipeline.create(repository)
        app.state.rate_limiter = await create_rate_limiter()

        logger.info(
            "application_started",
            storage_backend=settings.STORAGE_BACKEND,
            rate_limit_backend=settings.RATE_LIMIT_BACKEND,
            llm_provider=settings.LLM_PROVIDER,
            batch_concurrency=settings.BATCH_CONCURRENCY,
        )

    return start_app


def create_stop_app_handler(app: Any) -> Callable[[], Awaitable[None]]:
    """Create shutdown event handler with graceful shutdown logic.

    Running batches get ``SHUTDOWN_DRAIN_SECONDS`` to finish before they are
    cancelled, leaving their unfinished items in their current status.

    Args:
        app: FastAPI application instance

    Returns:
        Shutdown handler function
    """

    async def stop_app() -> None:
        pipeline: ContentPipeline | None = getattr(app.state, "pipeline", None)
        if pipeline is not None:
            await pipeline.shutdown(timeout=SHUTDOWN_DRAIN_SECONDS)

        limiter: RateLimiter | None = getattr(app.state, "rate_limiter", None)
        if limiter is not None:
            await limiter.close()

        if settings.STORAGE_BACKEND == "database":
            await db.dispose_engine()

        logger.info("application_stopped")

    return stop_app


@asynccontextmanager
async def lifespan(app: Any) -> AsyncIterator[None]:
    """Run the startup and shutdown handlers around the application's life."""
    await create_start_app_handler(app)()
    try:
        yield
    finally:
        await create_stop_app_handler(app)()
