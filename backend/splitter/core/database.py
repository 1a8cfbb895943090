"""Database configuration and session management.

This module constructs an asynchronous SQLAlchemy engine and session
factory for the application from ``DATABASE_URL``. Plain ``sqlite``
URLs are upgraded to the ``aiosqlite`` driver so the same setting works
for scripts and for the async application. Tables are created on
startup by :func:`init_db`; transaction records are append-only so
there is no migration tooling.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from splitter.core.config import settings

logger = logging.getLogger(__name__)


def normalize_database_url(url: str) -> str:
    """Return ``url`` with a driver usable by the asyncio engine."""
    url_obj = make_url(url)
    if url_obj.drivername == "sqlite":
        url_obj = url_obj.set(drivername="sqlite+aiosqlite")
    return url_obj.render_as_string(hide_password=False)


def create_engine_for(url: str, **kwargs: Any) -> AsyncEngine:
    """Create an async engine for ``url`` with the application defaults."""
    engine_kwargs: Dict[str, Any] = dict(echo=False, pool_pre_ping=True)
    engine_kwargs.update(kwargs)
    return create_async_engine(normalize_database_url(url), **engine_kwargs)


def make_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


db_url = normalize_database_url(settings.DATABASE_URL)
logger.debug("Creating async engine for %s", make_url(db_url).render_as_string(hide_password=True))
engine = create_engine_for(db_url)

# Create session factory
AsyncSessionLocal = make_sessionmaker(engine)

# Declarative base
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that yields a database session.

    This function is intended for FastAPI dependency injection.  Each
    session is scoped to the request and closed after use.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create all tables defined on the declarative ``Base``.

    Typically called during application startup; tests pass their own
    engine.
    """
    target = bind or engine
    async with target.begin() as conn:
        # Import all models to ensure metadata is populated
        from splitter.models import tables  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)
