"""Database engine for the server-side session store."""
from __future__ import annotations

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from forgery_guard.core.config import Settings, get_settings

from .base import Base


class Database:
    """Async engine and sessionmaker backing ``DatabaseSession``."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.engine = create_async_engine(self.settings.database_url, echo=self.settings.debug)
        self._sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False, class_=AsyncSession)

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    @property
    def sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        return self._sessionmaker


@lru_cache(maxsize=1)
def get_database() -> Database:
    return Database()
