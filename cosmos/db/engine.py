"""Async SQLAlchemy engine and session management."""

from collections.abc import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from cosmos.core.settings import DatabaseSettings


def build_engine(db: DatabaseSettings) -> AsyncEngine:
    """Create the engine; pool sizing only applies to PostgreSQL."""
    options: dict[str, int] = {}
    if db.async_url.startswith("postgresql"):
        options = {"pool_size": db.pool_size, "max_overflow": db.max_overflow}
    return create_async_engine(db.async_url, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build the session factory owned by the application."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields an async database session."""
    factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
