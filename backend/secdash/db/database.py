# backend/secdash/db/database.py
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from typing import AsyncGenerator

from secdash.core.config import settings


def _engine_kwargs() -> dict:
    kwargs = {"echo": settings.DEBUG}
    # SQLite uses a single-connection pool; pool sizing only applies to server databases
    if not settings.async_database_url.startswith("sqlite"):
        kwargs["pool_size"] = settings.DB_POOL_SIZE
        kwargs["max_overflow"] = settings.DB_MAX_OVERFLOW
    return kwargs


# Create async engine
engine = create_async_engine(settings.async_database_url, **_engine_kwargs())

# Create async session factory
async_session_local = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Database session dependency"""
    async with async_session_local() as session:
        try:
            yield session
        finally:
            await session.close()


def get_session_factory() -> async_sessionmaker:
    """Session factory dependency, used where work fans out over several sessions"""
    return async_session_local


async def init_db():
    """Initialize database (create tables)"""
    from secdash.db.base import Base
    # Import all models to ensure they're registered
    import secdash.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Close database connections"""
    await engine.dispose()
