# backend/otohub/db/database.py
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from otohub.core.config import Settings
from otohub.db.base import Base


class Database:
    """
    Explicitly constructed data-access handle.

    Owns the async engine and session factory. One instance is built per
    process (API app or worker task) and handed to every service.
    """

    def __init__(self, url: str, echo: bool = False, pool_size: Optional[int] = None, max_overflow: Optional[int] = None):
        engine_kwargs = {"echo": echo}
        if url.startswith("sqlite"):
            engine_kwargs["poolclass"] = NullPool
        else:
            engine_kwargs["pool_size"] = pool_size or 20
            engine_kwargs["max_overflow"] = max_overflow or 10
            engine_kwargs["pool_pre_ping"] = True

        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.async_database_url,
            echo=settings.DEBUG,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            yield session

    async def create_all(self):
        """Initialize database (create tables)"""
        # Import all models to ensure they're registered
        from otohub.db import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self):
        from otohub.db import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self):
        """Close database connections"""
        await self.engine.dispose()
