"""Session store access for the forgery protection layer.

Three stores are supported, mirroring the usual deployment options:

* ``CookieSession`` wraps Starlette's signed cookie session. The client holds
  the data, so the CSRF identifier is only ever exposed through a keyed digest.
* ``RedisSession`` and ``DatabaseSession`` keep the data server-side behind a
  random session id cookie. They expose the identifier unchanged.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import MutableMapping
from functools import lru_cache
from typing import Any

from redis.asyncio import Redis
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from forgery_guard.core.config import Settings, get_settings
from forgery_guard.core.security import SecurityManager, security_manager
from forgery_guard.models import SessionValue

logger = logging.getLogger(__name__)

CSRF_ID_KEY = "csrf_id"
SESSION_ID_KEY = "session_id"


@lru_cache(maxsize=1)
def get_redis_client() -> Redis:
    settings = get_settings()
    return Redis.from_url(settings.redis_url, decode_responses=True)


class SessionState(ABC):
    """Per-request handle on the caller's session store."""

    def __init__(self, session_id: str | None) -> None:
        self._session_id = session_id
        # Tokens derived during this request, keyed by configuration.
        self.token_cache: dict[Any, str] = {}

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @abstractmethod
    async def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    async def setdefault(self, key: str, value: str) -> str:
        """Store ``value`` unless ``key`` already holds one and return whichever value is stored."""

    def generate_digest(self, value: str) -> str:
        return value


class CookieSession(SessionState):
    def __init__(self, data: MutableMapping[str, Any], manager: SecurityManager = security_manager) -> None:
        super().__init__(None)
        self._data = data
        self._manager = manager

    @property
    def session_id(self) -> str:
        """Cookie sessions have no id of their own; one is stored the first time it is read."""

        if SESSION_ID_KEY not in self._data:
            self._data[SESSION_ID_KEY] = self._manager.generate_session_id()
        return str(self._data[SESSION_ID_KEY])

    async def get(self, key: str) -> str | None:
        value = self._data.get(key)
        return None if value is None else str(value)

    async def setdefault(self, key: str, value: str) -> str:
        return str(self._data.setdefault(key, value))

    def generate_digest(self, value: str) -> str:
        return self._manager.sign_value(value)


class RedisSession(SessionState):
    def __init__(self, session_id: str, redis: Redis, settings: Settings | None = None) -> None:
        super().__init__(session_id)
        self.settings = settings or get_settings()
        self._redis = redis
        self._cache_key = self.settings.build_session_cache_key(session_id)

    async def get(self, key: str) -> str | None:
        return await self._redis.hget(self._cache_key, key)

    async def setdefault(self, key: str, value: str) -> str:
        if await self._redis.hsetnx(self._cache_key, key, value):
            await self._redis.expire(self._cache_key, self.settings.session_ttl_seconds)
            return value
        stored = await self._redis.hget(self._cache_key, key)
        return stored if stored is not None else value


class DatabaseSession(SessionState):
    def __init__(self, session_id: str, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        super().__init__(session_id)
        self._sessionmaker = sessionmaker

    async def get(self, key: str) -> str | None:
        async with self._sessionmaker() as db:
            row = await db.get(SessionValue, (self.session_id, key))
            return row.value if row else None

    async def setdefault(self, key: str, value: str) -> str:
        async with self._sessionmaker() as db:
            existing = await db.get(SessionValue, (self.session_id, key))
            if existing:
                return existing.value
            db.add(SessionValue(session_id=self.session_id, key=key, value=value))
            try:
                await db.commit()
            except IntegrityError:
                # Another request created the row first; theirs wins.
                await db.rollback()
                existing = await db.get(SessionValue, (self.session_id, key), populate_existing=True)
                if existing is None:
                    raise
                return existing.value
            return value


async def get_or_create_csrf_id(session: SessionState, manager: SecurityManager = security_manager) -> str:
    csrf_id = await session.get(CSRF_ID_KEY)
    if csrf_id:
        return csrf_id
    candidate = manager.generate_unique_id()
    csrf_id = await session.setdefault(CSRF_ID_KEY, candidate)
    if csrf_id == candidate:
        logger.debug("Created csrf_id in %s", type(session).__name__)
    return csrf_id
