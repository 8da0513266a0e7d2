"""Async engine and session handling.

One engine per process, created lazily from ``settings.database``.
Request handlers get a session through ``get_db``; background code such
as the health check uses ``get_db_context``. Both commit on success and
roll back on error.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from call_router.config import get_settings
from call_router.db import models  # noqa: F401  (registers tables on Base.metadata)
from call_router.db.base import Base

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _engine_options(url: str) -> dict[str, Any]:
    """Pool options for the database behind ``url``."""
    if "sqlite" not in url:
        return {
            "pool_size": 5,
            "max_overflow": 10,
            "pool_timeout": 30,
            "pool_recycle": 1800,
            "pool_pre_ping": True,
        }

    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in url:
        # A single shared connection, or every session gets its own empty database
        options["poolclass"] = StaticPool
    else:
        Path(url.split("///", 1)[-1]).parent.mkdir(parents=True, exist_ok=True)
    return options


def _make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """Get or create the application engine."""
    global _engine

    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database.url,
            echo=settings.database.echo,
            **_engine_options(settings.database.url),
        )

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory

    if _session_factory is None:
        _session_factory = _make_session_factory(get_engine())

    return _session_factory


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Session committed on success and rolled back on error."""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    async with session_scope(get_session_factory()) as session:
        yield session


def get_db_context():
    """Session context manager for code outside a request.

    Usage:
        async with get_db_context() as db:
            result = await db.execute(select(AgentConfigModel))
    """
    return session_scope(get_session_factory())


async def init_db() -> None:
    """Create all tables. Safe to call multiple times."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine on shutdown."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


# Testing utilities
async def create_test_engine(url: str = "sqlite+aiosqlite:///:memory:") -> AsyncEngine:
    """Engine on a fresh database with all tables created."""
    engine = create_async_engine(url, echo=False, **_engine_options(url))

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return engine


def get_test_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return _make_session_factory(engine)
