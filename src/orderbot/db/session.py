"""
Async SQLAlchemy engine and session factory for the query cache store.

Only imported when CACHE_BACKEND=postgres.

Usage:
    async with async_session_factory() as session:
        await session.execute(text("SELECT cache_cleanup()"))
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from orderbot.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,  # log SQL statements when DEBUG=true
    pool_size=5,
    max_overflow=10,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
