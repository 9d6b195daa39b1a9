"""Exceptions raised by the forgery protection layer."""
from __future__ import annotations


class ForgeryProtectionError(Exception):
    """Base class for errors raised by this package."""


class InvalidAuthenticityToken(ForgeryProtectionError):
    """The submitted authenticity token is missing or does not match the session.

    The application maps this onto a 422 response; see ``forgery_guard.main``.
    """

    code = "invalid_authenticity_token"

    def __init__(self, reason: str = "mismatch", action: str | None = None) -> None:
        self.reason = reason
        self.action = action
        super().__init__(f"Invalid authenticity token ({reason})")


class ConfigurationError(ForgeryProtectionError, ValueError):
    """Forgery protection was configured with an option it cannot honour."""
