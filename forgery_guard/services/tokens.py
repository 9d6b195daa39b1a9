"""Authenticity token derivation."""
from __future__ import annotations

from collections.abc import Callable

from forgery_guard.core.security import SecurityManager, security_manager
from forgery_guard.schemas.csrf import ForgeryProtectionConfig
from forgery_guard.services.session import SessionState, get_or_create_csrf_id


def token_from_session_id(
    session: SessionState,
    secret: Callable[[str], str],
    digest: str,
    manager: SecurityManager = security_manager,
) -> str:
    """HMAC of the session id keyed by the application secret."""

    session_id = session.session_id or ""
    return manager.hmac_hexdigest(digest, str(secret(session_id)), session_id)


async def token_from_store(session: SessionState, manager: SecurityManager = security_manager) -> str:
    """No application secret: rely on the session store's own digest of a random id."""

    csrf_id = await get_or_create_csrf_id(session, manager)
    return session.generate_digest(csrf_id)


async def derive_token(
    session: SessionState, config: ForgeryProtectionConfig, manager: SecurityManager = security_manager
) -> str:
    cached = session.token_cache.get(config)
    if cached is not None:
        return cached
    if config.secret is not None:
        token = token_from_session_id(session, config.secret, config.digest, manager)
    else:
        token = await token_from_store(session, manager)
    session.token_cache[config] = token
    return token
