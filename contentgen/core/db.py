"""Database connection and session management."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from contentgen.core.config import settings
from contentgen.core.logging import get_logger
from contentgen.database.models import Base

logger = get_logger().bind(module="db")

# Lazy database initialization - don't create engine at import time
engine: AsyncEngine | None = None
async_session_factory: async_sessionmaker[AsyncSession] | None = None


def to_async_url(database_url: str) -> str:
    """Convert a database URL to its async driver form.

    Args:
        database_url: URL as configured

    Returns:
        URL using asyncpg for postgres and aiosqlite for sqlite
    """
    if database_url.startswith("postgresql+psycopg2://"):
        return database_url.replace(
            "postgresql+psycopg2://", "postgresql+asyncpg://", 1
        )
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


def create_session_factory(
    database_url: str, pool_size: int | None = None
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Create an engine and a session factory for a database URL."""
    url = to_async_url(database_url)
    engine_kwargs: dict[str, int] = {}
    if pool_size is not None and not url.startswith("sqlite"):
        engine_kwargs = {"pool_size": pool_size, "max_overflow": 0}

    new_engine = create_async_engine(url, echo=False, **engine_kwargs)
    factory = async_sessionmaker(
        new_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return new_engine, factory


def _initialize_database() -> None:
    """Initialize database engine and session factory."""
    global engine, async_session_factory

    if engine is not None:
        return  # Already initialized

    engine, async_session_factory = create_session_factory(
        settings.DATABASE_URL, pool_size=settings.MAX_CONNECTIONS
    )


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the shared session factory, creating the engine on first use.

    Raises:
        RuntimeError: If the database could not be initialized
    """
    _initialize_database()
    if async_session_factory is None:
        raise RuntimeError("Database not initialized - cannot create session")
    return async_session_factory


async def check_database() -> bool:
    """Run a trivial query against the configured database."""
    async with get_session_factory()() as session:
        await session.execute(text("SELECT 1"))
    return True


async def dispose_engine() -> None:
    """Close all pooled connections."""
    global engine, async_session_factory

    if engine is not None:
        await engine.dispose()
        logger.info("database_engine_disposed")
    engine = None
    async_session_factory = None


async def create_tables(target: AsyncEngine | None = None) -> None:
    """Create the content tables if they do not exist."""
    if target is None:
        _initialize_database()
        target = engine
    if target is None:
        raise RuntimeError("Database not initialized - cannot create tables")
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
