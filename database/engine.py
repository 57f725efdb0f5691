import logging
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from core.config import settings

logger = logging.getLogger(__name__)


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """
    Create an async engine.

    Server databases get a sized pool. SQLite (tests, local runs) opens a
    connection per session so engines can be shared across event loops.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("poolclass", NullPool)
    else:
        kwargs.setdefault("pool_size", settings.database_pool_size)
        kwargs.setdefault("max_overflow", settings.database_max_overflow)
        kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(url, echo=settings.database_echo, **kwargs)


db_engine = build_engine(settings.database_url)


# Create async session maker to be used throughout the application
AsyncSessionLocal = async_sessionmaker(
    db_engine, class_=AsyncSession, expire_on_commit=False
)


# Base class for declarative models
class Base(DeclarativeBase):
    pass


# Dependency to get DB session
async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


async def init_db():
    """Create tables for every registered model."""
    # Import models so they register on Base.metadata
    import database.models  # noqa: F401

    logger.info("Initializing database schema")
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Close database engine and connections."""
    await db_engine.dispose()
