"""Cryptographic helpers for the forgery protection layer."""
from __future__ import annotations

import hashlib
import hmac
import secrets

from .config import Settings, get_settings


class UnsupportedDigestError(ValueError):
    """Raised when a digest name is not known to the local OpenSSL build."""


def normalize_digest_name(name: str) -> str:
    """Map names such as ``SHA1`` or ``SHA-256`` onto a hashlib algorithm name."""

    lowered = name.strip().lower()
    for candidate in (lowered.replace("-", ""), lowered.replace("-", "_"), lowered):
        # SHAKE digests need an explicit output length and cannot key an HMAC.
        if candidate in hashlib.algorithms_available and not candidate.startswith("shake"):
            return candidate
    raise UnsupportedDigestError(f"Unsupported digest algorithm: {name!r}")


class SecurityManager:
    """Centralized security helper operations."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def sign_value(self, value: str) -> str:
        """Keyed digest of ``value`` under the session signing key."""

        return hmac.new(self.settings.session_signing_key, value.encode("utf-8"), hashlib.sha256).hexdigest()

    @staticmethod
    def hmac_hexdigest(digest: str, key: str, message: str) -> str:
        return hmac.new(key.encode("utf-8"), message.encode("utf-8"), normalize_digest_name(digest)).hexdigest()

    @staticmethod
    def constant_time_compare(val1: str, val2: str) -> bool:
        return hmac.compare_digest(val1.encode("utf-8"), val2.encode("utf-8"))

    @staticmethod
    def generate_unique_id() -> str:
        return secrets.token_hex(16)

    @staticmethod
    def generate_session_id() -> str:
        return secrets.token_hex(32)


security_manager = SecurityManager()
