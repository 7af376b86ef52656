"""Database session management.

This module provides the async database engine and session factory
using SQLAlchemy 2.0 async patterns. The workflow store receives the
session factory rather than a request-scoped session: each store
operation runs in its own transaction so a workflow edit commits while
the manager still holds that workflow's lock.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from crawlflow.core.config import settings
from crawlflow.core.logging import get_logger
from crawlflow.models.base import Base

logger = get_logger(__name__)

engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    echo=settings.DATABASE_ECHO,
)

# Create async session factory
async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency for FastAPI.

    Yields an async session and ensures proper cleanup after request.
    Commits on success, rolls back on exception.

    Yields:
        AsyncSession: The database session for the request.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create the workflow tables if they do not exist yet.

    Args:
        bind: Engine to create the tables on. Defaults to the module engine.
    """
    target = bind or engine

    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info(
        "Database schema ready",
        extra={"context": {"action": "init_db", "dialect": target.dialect.name}},
    )


async def close_db() -> None:
    """Dispose of the engine's connection pool."""
    await engine.dispose()


__all__ = [
    "async_session",
    "close_db",
    "engine",
    "get_db",
    "init_db",
]
