"""Request forgery protection for a group of handlers."""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from pydantic import ValidationError

from forgery_guard.core.exceptions import ConfigurationError, InvalidAuthenticityToken
from forgery_guard.core.security import SecurityManager, UnsupportedDigestError, normalize_digest_name, security_manager
from forgery_guard.schemas.csrf import (
    DEFAULT_DIGEST,
    DEFAULT_TOKEN_PARAM,
    ForgeryProtectionConfig,
    RequestView,
    VerificationResult,
)
from forgery_guard.services.classifier import is_exempt
from forgery_guard.services.session import SessionState
from forgery_guard.services.tokens import derive_token

logger = logging.getLogger(__name__)


class ForgeryGuard:
    """Issues and checks authenticity tokens for one protected handler group.

    A guard that was never configured is disabled: every request is exempt,
    although ``current_token`` still works for rendering forms.
    """

    def __init__(self, config: ForgeryProtectionConfig | None = None, manager: SecurityManager = security_manager) -> None:
        self.config = config or ForgeryProtectionConfig()
        self._manager = manager

    @classmethod
    def protect_from_forgery(cls, **options: object) -> ForgeryGuard:
        guard = cls()
        guard.configure(**options)  # type: ignore[arg-type]
        return guard

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def token_param(self) -> str:
        return self.config.token_param

    def configure(
        self,
        *,
        secret: str | Callable[[str], str] | None = None,
        digest: str | None = None,
        only: str | Iterable[str] | None = None,
        except_: str | Iterable[str] | None = None,
        token_param: str | None = None,
    ) -> ForgeryProtectionConfig:
        if self.config.enabled:
            raise ConfigurationError("forgery protection is already configured for this guard")
        digest = digest or DEFAULT_DIGEST
        try:
            normalize_digest_name(digest)
        except UnsupportedDigestError as exc:
            raise ConfigurationError(str(exc)) from exc
        try:
            config = ForgeryProtectionConfig(
                enabled=True,
                secret=secret,
                digest=digest,
                only=only,
                except_actions=except_,
                token_param=token_param or DEFAULT_TOKEN_PARAM,
            )
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc
        self.config = config
        logger.info(
            "Forgery protection enabled (%s mode, digest=%s)",
            "secret" if config.secret is not None else "session store",
            config.digest,
        )
        return config

    def applies_to(self, action_id: str) -> bool:
        """Whether ``action_id`` passes the ``only``/``except`` filter."""

        if self.config.only is not None and action_id not in self.config.only:
            return False
        if self.config.except_actions is not None and action_id in self.config.except_actions:
            return False
        return True

    async def current_token(self, session: SessionState) -> str:
        return await derive_token(session, self.config, self._manager)

    async def verify(self, request: RequestView, session: SessionState) -> VerificationResult:
        if is_exempt(request, self.config):
            return VerificationResult.allow()
        expected = await self.current_token(session)
        submitted = request.submitted_token
        if submitted and self._manager.constant_time_compare(expected, submitted):
            return VerificationResult.allow()
        error = InvalidAuthenticityToken("missing" if not submitted else "mismatch", action=request.action_id)
        logger.warning(
            "Rejected %s request to %s: %s authenticity token",
            request.method,
            request.action_id or "<unknown>",
            error.reason,
        )
        return VerificationResult.deny(error)

    async def verify_or_raise(self, request: RequestView, session: SessionState) -> None:
        result = await self.verify(request, session)
        if not result.allowed:
            raise result.error or InvalidAuthenticityToken(action=request.action_id)
