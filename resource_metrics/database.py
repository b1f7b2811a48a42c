"""Async SQLAlchemy engine and session utilities."""

from collections.abc import AsyncIterator, Callable

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from resource_metrics.config import Settings


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine described by the settings."""

    return create_async_engine(
        settings.database_url,
        echo=settings.database_echo_sql,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


def session_dependency(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[], AsyncIterator[AsyncSession]]:
    """Build a FastAPI dependency yielding one session per request."""

    async def get_db_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    return get_db_session


async def run_health_query(session: AsyncSession) -> None:
    """Run a tiny query to verify database connectivity."""

    await session.execute(text("SELECT 1"))
