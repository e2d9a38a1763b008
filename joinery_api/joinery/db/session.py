"""
Engine and session factory.

Both are created on first use so importing the application does not need a
reachable database.
"""
from __future__ import annotations

from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import get_settings

_engine: Optional[AsyncEngine] = None
_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


# PUBLIC_INTERFACE
def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory used by the app and the tests.

    Objects stay usable after commit (routes serialize them afterwards) and
    nothing is flushed implicitly; services flush where they need to.
    """
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


# PUBLIC_INTERFACE
def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(settings.async_database_url, **settings.engine_options())
    return _engine


# PUBLIC_INTERFACE
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    global _session_maker
    if _session_maker is None:
        _session_maker = build_session_maker(get_engine())
    return _session_maker


# PUBLIC_INTERFACE
async def get_async_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one AsyncSession per request, closed afterwards."""
    async with get_session_maker()() as session:
        yield session
