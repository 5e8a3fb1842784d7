"""
Async SQLAlchemy engine and session factory.
Built from Settings so tests can point the service at sqlite+aiosqlite.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from imageresize.config import Settings

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    pass


def create_engine(settings: Settings) -> AsyncEngine:
    kwargs = {"echo": settings.DB_ECHO}
    # sqlite uses a static/singleton pool that rejects sizing arguments
    if not settings.DATABASE_URL.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
        )
    return create_async_engine(settings.DATABASE_URL, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create missing tables."""
    # Registers the models on Base.metadata
    from imageresize.models import tables  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database_initialised")


async def close_db(engine: AsyncEngine) -> None:
    await engine.dispose()
