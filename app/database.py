"""Async engine and session handling for the recording store."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncContextManager, AsyncIterator, Callable, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from app.config.settings import settings

# Import models so they are attached to Base.metadata before table creation
from app.models import Base

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AsyncContextManager[AsyncSession]]


def create_engine(url: Optional[str] = None) -> AsyncEngine:
    """Create an async engine with pooling suited to the target database."""

    url = url or settings.database.url
    engine_options: dict[str, Any] = {"echo": settings.debug}

    if url.startswith("sqlite"):
        # One shared connection keeps an in-memory database alive across sessions.
        engine_options["poolclass"] = StaticPool
        engine_options["connect_args"] = {"check_same_thread": False}
    elif settings.database.serverless or settings.debug:
        # Serverless Postgres pauses between requests; pooled connections go stale.
        engine_options["poolclass"] = NullPool
    else:
        engine_options["pool_pre_ping"] = True

    return create_async_engine(url, **engine_options)


def make_session_scope(factory: async_sessionmaker[AsyncSession]) -> SessionScope:
    """Wrap a session factory in the context manager the stores expect."""

    @asynccontextmanager
    async def scope() -> AsyncIterator[AsyncSession]:
        async with factory() as session:
            yield session

    return scope


engine: AsyncEngine = create_engine()

SessionFactory = async_sessionmaker(
    engine,
    expire_on_commit=False,
    class_=AsyncSession,
)

session_scope = make_session_scope(SessionFactory)


async def init_models(bind: Optional[AsyncEngine] = None) -> None:
    """Create the recordings table if it does not exist."""

    target = bind or engine
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Ensured tables: %s", ", ".join(sorted(Base.metadata.tables)))


async def dispose_engine() -> None:
    """Dispose of the engine and release pooled connections."""

    await engine.dispose()
