"""Tests for session store access and lazy csrf_id creation."""
from __future__ import annotations

import asyncio

from forgery_guard.core.config import Settings
from forgery_guard.core.security import SecurityManager
from forgery_guard.db.session import Database
from forgery_guard.services.session import (
    CSRF_ID_KEY,
    SESSION_ID_KEY,
    CookieSession,
    DatabaseSession,
    RedisSession,
    get_or_create_csrf_id,
)


def test_cookie_session_creates_csrf_id_once(manager: SecurityManager) -> None:
    data: dict[str, str] = {}
    session = CookieSession(data, manager)

    first = asyncio.run(get_or_create_csrf_id(session, manager))
    second = asyncio.run(get_or_create_csrf_id(session, manager))

    assert first == second
    assert data[CSRF_ID_KEY] == first
    assert SESSION_ID_KEY not in data


def test_cookie_session_id_is_created_on_first_read(manager: SecurityManager) -> None:
    data: dict[str, str] = {}
    session = CookieSession(data, manager)

    session_id = session.session_id

    assert data[SESSION_ID_KEY] == session_id
    assert CookieSession(data, manager).session_id == session_id
    assert CookieSession({SESSION_ID_KEY: "abc123"}, manager).session_id == "abc123"


def test_cookie_session_keeps_existing_csrf_id(manager: SecurityManager) -> None:
    session = CookieSession({CSRF_ID_KEY: "existing"}, manager)
    assert asyncio.run(get_or_create_csrf_id(session, manager)) == "existing"


def test_cookie_session_digest_is_signed(manager: SecurityManager) -> None:
    session = CookieSession({}, manager)
    assert session.generate_digest("value") == manager.sign_value("value")


def test_redis_session_concurrent_creation_converges(settings: Settings, fake_redis) -> None:
    async def scenario() -> list[str]:
        sessions = [RedisSession("abc123", fake_redis, settings) for _ in range(5)]
        return await asyncio.gather(*(get_or_create_csrf_id(session) for session in sessions))

    results = asyncio.run(scenario())

    assert len(set(results)) == 1
    stored = asyncio.run(fake_redis.hget("session-test:abc123", CSRF_ID_KEY))
    assert stored == results[0]
    assert fake_redis.expiry["session-test:abc123"] == settings.session_ttl_seconds


def test_redis_session_has_no_digest(settings: Settings, fake_redis) -> None:
    session = RedisSession("abc123", fake_redis, settings)
    assert session.generate_digest("raw-id") == "raw-id"


def test_database_session_first_write_wins(settings: Settings) -> None:
    async def scenario() -> tuple[str, str, str | None, str | None]:
        database = Database(settings)
        await database.create_all()
        try:
            first = DatabaseSession("abc123", database.sessionmaker)
            second = DatabaseSession("abc123", database.sessionmaker)
            other = DatabaseSession("zzz999", database.sessionmaker)
            a = await first.setdefault(CSRF_ID_KEY, "one")
            b = await second.setdefault(CSRF_ID_KEY, "two")
            await other.setdefault("flash", "hello")
            return a, b, await second.get(CSRF_ID_KEY), await other.get(CSRF_ID_KEY)
        finally:
            await database.dispose()

    a, b, stored, unrelated = asyncio.run(scenario())

    assert a == b == stored == "one"
    assert unrelated is None


def test_database_session_accessor_is_idempotent(settings: Settings) -> None:
    async def scenario() -> tuple[str, str]:
        database = Database(settings)
        await database.create_all()
        try:
            session = DatabaseSession("abc123", database.sessionmaker)
            return await get_or_create_csrf_id(session), await get_or_create_csrf_id(session)
        finally:
            await database.dispose()

    first, second = asyncio.run(scenario())
    assert first == second
