from typing import AsyncGenerator, Tuple

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from taskvault.db.base import Base
# Register tables on Base.metadata
from taskvault.models import task, user  # noqa: F401


def create_session_factory(database_url: str) -> Tuple[AsyncEngine, async_sessionmaker]:
    """
    Create the async database engine and its session factory.

    In-memory SQLite databases are pinned to a single shared connection so
    every session sees the same tables.

    Args:
        database_url: SQLAlchemy async database URL.

    Returns:
        tuple: (AsyncEngine, async_sessionmaker)
    """
    engine_kwargs = {}
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url:
            engine_kwargs["poolclass"] = StaticPool

    engine = create_async_engine(database_url, echo=False, **engine_kwargs)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return engine, session_factory


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get async database session.

    Yields an async database session and ensures it's closed after use.

    Yields:
        AsyncSession: Database session for the request lifespan.
    """
    async with request.app.state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(engine: AsyncEngine):
    """
    Initialize database and create all tables.

    Creates all tables defined in the models if they don't exist.
    Should be called during application startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
