"""Application configuration management."""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration derived from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    app_name: str = Field("Forgery Guard", alias="APP_NAME")
    debug: bool = Field(False, alias="DEBUG")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    session_backend: Literal["cookie", "redis", "database"] = Field("cookie", alias="SESSION_BACKEND")
    session_cookie_name: str = Field("sid", alias="SESSION_COOKIE_NAME")
    session_secret_key: str = Field(..., alias="SESSION_SECRET_KEY")
    session_ttl_seconds: int = Field(1209600, alias="SESSION_TTL_SECONDS")
    session_cookie_secure: bool = Field(True, alias="SESSION_COOKIE_SECURE")
    redis_url: str = Field("redis://localhost:6379/0", alias="REDIS_URL")
    session_redis_prefix: str = Field("session", alias="SESSION_REDIS_PREFIX")
    database_url: str = Field("sqlite+aiosqlite:///./sessions.db", alias="DATABASE_URL")
    csrf_secret: str | None = Field(None, alias="CSRF_SECRET")
    csrf_digest: str = Field("SHA1", alias="CSRF_DIGEST")
    csrf_token_param: str = Field("authenticity_token", alias="CSRF_TOKEN_PARAM")
    csrf_header_name: str = Field("X-CSRF-Token", alias="CSRF_HEADER_NAME")

    @field_validator("session_secret_key")
    @classmethod
    def validate_session_secret(cls, value: str) -> str:
        if len(value) < 32:
            raise ValueError("SESSION_SECRET_KEY must be at least 32 characters")
        return value

    @field_validator("csrf_secret")
    @classmethod
    def blank_secret_is_unset(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value

    @property
    def session_signing_key(self) -> bytes:
        return self.session_secret_key.encode("utf-8")

    def build_session_cache_key(self, session_id: str) -> str:
        return f"{self.session_redis_prefix}:{session_id}"

    def forgery_protection_options(self) -> dict[str, Any]:
        """Keyword options for ``ForgeryGuard.configure`` taken from the environment."""

        return {
            "secret": self.csrf_secret,
            "digest": self.csrf_digest,
            "token_param": self.csrf_token_param,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()
