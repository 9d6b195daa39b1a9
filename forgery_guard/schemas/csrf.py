"""Forgery protection schemas."""
from __future__ import annotations

from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from forgery_guard.core.exceptions import InvalidAuthenticityToken

DEFAULT_TOKEN_PARAM = "authenticity_token"
DEFAULT_DIGEST = "SHA1"


class StaticSecret:
    """Secret resolver returning the same key for every session."""

    __slots__ = ("value",)

    def __init__(self, value: str) -> None:
        self.value = value

    def __call__(self, session_id: str) -> str:
        return self.value

    def __eq__(self, other: object) -> bool:
        return isinstance(other, StaticSecret) and other.value == self.value

    def __hash__(self) -> int:
        return hash((StaticSecret, self.value))

    def __repr__(self) -> str:
        return "StaticSecret('***')"


def _action_set(value: Any) -> frozenset[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return frozenset({value})
    if isinstance(value, Iterable):
        return frozenset(str(item) for item in value)
    raise ValueError("action lists must be a string or an iterable of strings")


class ForgeryProtectionConfig(BaseModel):
    """Settings of one protected handler group.

    ``secret`` accepts a literal string or a ``session_id -> str`` function and
    is always stored as a function. ``None`` selects cookie mode, where the
    session store's own digest protects a random per-session identifier.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    enabled: bool = False
    secret: Callable[[str], str] | None = None
    digest: str = DEFAULT_DIGEST
    only: frozenset[str] | None = None
    except_actions: frozenset[str] | None = Field(None, alias="except")
    token_param: str = DEFAULT_TOKEN_PARAM

    @field_validator("secret", mode="before")
    @classmethod
    def wrap_static_secret(cls, value: Any) -> Any:
        if isinstance(value, str):
            return StaticSecret(value) if value else None
        return value

    @field_validator("only", "except_actions", mode="before")
    @classmethod
    def coerce_actions(cls, value: Any) -> frozenset[str] | None:
        return _action_set(value)


class RequestFormat(str, Enum):
    HTML = "html"
    JS = "js"
    OTHER = "other"


class RequestView(BaseModel):
    """What the guard needs to know about an inbound request."""

    model_config = ConfigDict(frozen=True)

    method: str
    format: RequestFormat = RequestFormat.HTML
    submitted_token: str | None = None
    action_id: str = ""

    @field_validator("method")
    @classmethod
    def upper_method(cls, value: str) -> str:
        return value.upper()


class VerificationResult(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    allowed: bool
    error: InvalidAuthenticityToken | None = None

    @classmethod
    def allow(cls) -> VerificationResult:
        return cls(allowed=True)

    @classmethod
    def deny(cls, error: InvalidAuthenticityToken) -> VerificationResult:
        return cls(allowed=False, error=error)

    def __bool__(self) -> bool:
        return self.allowed


class CSRFTokenResponse(BaseModel):
    authenticity_token: str
    param: str = DEFAULT_TOKEN_PARAM


class ErrorResponse(BaseModel):
    error: bool = True
    code: str
    message: str
