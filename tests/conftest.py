"""Test fixtures for the forgery protection layer."""
from __future__ import annotations

import asyncio
from collections.abc import Callable, Generator
from typing import Any

import pytest
from fastapi import APIRouter, Depends
from fastapi.testclient import TestClient

from forgery_guard.api.dependencies import form_authenticity_token, protect_from_forgery
from forgery_guard.core.config import Settings, get_settings
from forgery_guard.core.security import SecurityManager
from forgery_guard.db.session import get_database
from forgery_guard.main import create_app
from forgery_guard.services.csrf import ForgeryGuard
from forgery_guard.services.session import CookieSession, get_redis_client

SESSION_SECRET_KEY = "S" * 32

BASE_ENV = {
    "APP_NAME": "Forgery Guard Test",
    "DEBUG": "True",
    "LOG_LEVEL": "DEBUG",
    "SESSION_BACKEND": "cookie",
    "SESSION_COOKIE_NAME": "sid",
    "SESSION_SECRET_KEY": SESSION_SECRET_KEY,
    "SESSION_TTL_SECONDS": "3600",
    "SESSION_COOKIE_SECURE": "False",
    "REDIS_URL": "redis://localhost:6379/0",
    "SESSION_REDIS_PREFIX": "session-test",
    "CSRF_DIGEST": "SHA1",
}


class InMemoryRedis:
    """Minimal async Redis replacement for tests."""

    def __init__(self) -> None:
        self._hashes: dict[str, dict[str, str]] = {}
        self.expiry: dict[str, int] = {}

    async def hget(self, key: str, field: str) -> str | None:
        return self._hashes.get(key, {}).get(field)

    async def hsetnx(self, key: str, field: str, value: str) -> bool:
        bucket = self._hashes.setdefault(key, {})
        if field in bucket:
            return False
        bucket[field] = value
        return True

    async def expire(self, key: str, seconds: int) -> bool:
        self.expiry[key] = seconds
        return key in self._hashes

    async def aclose(self) -> None:
        self._hashes.clear()


def build_notes_router(guard: ForgeryGuard) -> APIRouter:
    """A small protected handler group used by the end-to-end tests."""

    router = APIRouter(prefix="/notes", dependencies=[Depends(protect_from_forgery(guard))])

    @router.get("/new")
    async def new(authenticity_token: str = Depends(form_authenticity_token(guard))) -> dict[str, str]:
        return {"authenticity_token": authenticity_token}

    @router.get("")
    async def list_notes() -> dict[str, list[str]]:
        return {"notes": []}

    @router.post("/index")
    async def index() -> dict[str, bool]:
        return {"ok": True}

    @router.post("")
    async def create() -> dict[str, bool]:
        return {"ok": True}

    @router.delete("/{note_id}")
    async def destroy(note_id: int) -> dict[str, int]:
        return {"deleted": note_id}

    return router


def _clear_caches() -> None:
    get_settings.cache_clear()
    get_database.cache_clear()
    get_redis_client.cache_clear()


@pytest.fixture
def configure_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Generator[Callable[..., Settings], None, None]:
    def apply(**overrides: Any) -> Settings:
        monkeypatch.delenv("CSRF_SECRET", raising=False)
        env = {**BASE_ENV, "DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'sessions.db'}", **overrides}
        for key, value in env.items():
            monkeypatch.setenv(key, str(value))
        _clear_caches()
        return get_settings()

    yield apply
    _clear_caches()


@pytest.fixture
def settings(configure_env: Callable[..., Settings]) -> Settings:
    return configure_env()


@pytest.fixture
def manager(settings: Settings) -> SecurityManager:
    return SecurityManager(settings)


@pytest.fixture
def cookie_session(manager: SecurityManager) -> CookieSession:
    return CookieSession({"session_id": "abc123"}, manager)


@pytest.fixture
def fake_redis(monkeypatch: pytest.MonkeyPatch) -> InMemoryRedis:
    redis = InMemoryRedis()
    monkeypatch.setattr("forgery_guard.services.session.get_redis_client", lambda: redis)
    return redis


@pytest.fixture
def make_client(
    configure_env: Callable[..., Settings], fake_redis: InMemoryRedis
) -> Generator[Callable[..., TestClient], None, None]:
    clients: list[TestClient] = []

    def factory(backend: str = "cookie", guard_options: dict[str, Any] | None = None, **env: Any) -> TestClient:
        settings = configure_env(SESSION_BACKEND=backend, **env)
        if backend == "database":
            database = get_database()

            async def prepare() -> None:
                await database.create_all()
                await database.dispose()

            asyncio.run(prepare())
        app = create_app(settings)
        guard = ForgeryGuard.protect_from_forgery(**(guard_options or {}))
        app.include_router(build_notes_router(guard))
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.__exit__(None, None, None)
