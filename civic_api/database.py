from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

# Register table metadata before create_all runs.
from . import models  # noqa: F401

logger = logging.getLogger("civic_api.database")


def normalize_database_url(url: str) -> str:
    """Force async drivers for the URLs operators usually paste in."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql+psycopg2://"):
        return url.replace("postgresql+psycopg2://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://") and not url.startswith("sqlite+aiosqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def _engine_kwargs(url: str) -> dict:
    kwargs = {"echo": False, "future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or "mode=memory" in url or url == "sqlite+aiosqlite://":
            # In-memory DBs must share one connection or each session sees an empty database.
            kwargs["poolclass"] = StaticPool
        else:
            kwargs["poolclass"] = NullPool
    return kwargs


class Database:
    """Owns the async engine and session factory for one application instance.

    Nothing is opened at construction time: call `connect()` during startup
    and `close()` during shutdown.
    """

    def __init__(self, url: str) -> None:
        self.url = normalize_database_url(url)
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    async def connect(self) -> None:
        if self._engine is not None:
            return
        self._engine = create_async_engine(self.url, **_engine_kwargs(self.url))
        self._session_factory = sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False
        )
        await self.init_schema()
        logger.info("Database connected (dialect=%s)", self._engine.dialect.name)

    async def init_schema(self) -> None:
        # Postgres schema is owned by Alembic (`alembic upgrade head`); SQLite
        # dev/test databases get their tables created directly.
        if "postgres" in self.engine.dialect.name:
            return
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database connection pool closed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        if self._session_factory is None:
            raise RuntimeError("Database is not connected")
        async with self._session_factory() as session:
            yield session


__all__ = ["Database", "normalize_database_url"]
