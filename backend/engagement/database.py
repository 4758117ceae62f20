"""
Database connection and session management.

This module provides SQLAlchemy async engine configuration, connection pooling,
and the session factory used by request handlers and the campaign runner.
"""

import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from engagement.config import settings

logger = logging.getLogger(__name__)

# SQLAlchemy declarative base for ORM models
Base = declarative_base()


def create_engine(url: str | None = None) -> AsyncEngine:
    """
    Create and configure async SQLAlchemy engine.

    Pool settings only apply to server databases; SQLite URLs get the
    driver's default pool.

    Args:
        url: Database URL (defaults to settings.database_url)

    Returns:
        AsyncEngine: Configured async database engine
    """
    url = url or settings.database_url
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.db_echo)

    return create_async_engine(
        url,
        echo=settings.db_echo,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
    )


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build a session factory bound to ``engine``."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Prevent lazy-loading issues after commit
        autoflush=False,
    )


# Global engine instance
# Defer creation in test environments where the driver may not be installed
try:
    engine: AsyncEngine | None = create_engine()
except Exception as e:
    # In test environments, the engine will be created by test fixtures
    logger.warning(f"Failed to create database engine at module load time: {e}")
    engine = None

async_session_maker = create_session_maker(engine) if engine else None


async def init_db() -> None:
    """
    Initialize database schema.

    Creates all tables defined in SQLAlchemy models. For production, use
    migrations instead.
    """
    if engine is None:
        raise RuntimeError("Database engine is not configured")

    import engagement.orm.models  # noqa: F401  (register tables on Base)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema initialized")
