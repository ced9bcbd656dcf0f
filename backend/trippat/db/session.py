"""Async engine and session factories keyed by database URL."""

from __future__ import annotations

from collections.abc import AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from trippat.core.config import get_settings

_engines: dict[str, AsyncEngine] = {}
_sessionmakers: dict[str, async_sessionmaker[AsyncSession]] = {}


def _database_url(override: str | None = None) -> str:
    return override or get_settings().database_url


def _build_engine(url: str) -> AsyncEngine:
    backend = make_url(url).get_backend_name()
    if backend == "sqlite":
        return create_async_engine(url, future=True)
    return create_async_engine(url, future=True, pool_pre_ping=True)


def get_engine(database_url: str | None = None) -> AsyncEngine:
    """Return the cached engine for ``database_url`` (or the configured URL)."""
    url = _database_url(database_url)
    engine = _engines.get(url)
    if engine is None:
        engine = _build_engine(url)
        _engines[url] = engine
    return engine


def get_sessionmaker(
    database_url: str | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Return the cached sessionmaker bound to ``get_engine(database_url)``."""
    url = _database_url(database_url)
    factory = _sessionmakers.get(url)
    if factory is None:
        factory = async_sessionmaker(
            get_engine(url), expire_on_commit=False, class_=AsyncSession
        )
        _sessionmakers[url] = factory
    return factory


async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield a session from the configured database."""
    async with get_sessionmaker()() as session:
        yield session


async def dispose_engine(database_url: str | None = None) -> None:
    """Drop cached factories for the URL and dispose its engine."""
    url = _database_url(database_url)
    _sessionmakers.pop(url, None)
    engine = _engines.pop(url, None)
    if engine is not None:
        await engine.dispose()
