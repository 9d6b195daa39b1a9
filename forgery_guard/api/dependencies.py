"""API dependencies."""
from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import Depends, Request, Response

from forgery_guard.core.config import get_settings
from forgery_guard.core.security import security_manager
from forgery_guard.db.session import get_database
from forgery_guard.services import session as session_store
from forgery_guard.services.classifier import is_exempt
from forgery_guard.services.csrf import ForgeryGuard
from forgery_guard.services.session import CookieSession, DatabaseSession, RedisSession, SessionState
from forgery_guard.utils.request import build_request_view, get_action_id


def _session_id_cookie(request: Request, response: Response) -> str:
    settings = get_settings()
    session_id = request.cookies.get(settings.session_cookie_name)
    if session_id:
        return session_id
    session_id = security_manager.generate_session_id()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return session_id


async def get_session_state(request: Request, response: Response) -> SessionState:
    state = getattr(request.state, "csrf_session", None)
    if state is not None:
        return state

    settings = get_settings()
    if settings.session_backend == "cookie":
        state = CookieSession(request.session)
    elif settings.session_backend == "redis":
        state = RedisSession(_session_id_cookie(request, response), session_store.get_redis_client(), settings)
    else:
        state = DatabaseSession(_session_id_cookie(request, response), get_database().sessionmaker)
    request.state.csrf_session = state
    return state


def protect_from_forgery(guard: ForgeryGuard) -> Callable[..., Awaitable[None]]:
    """Dependency running ``guard`` before every handler of a router.

    The session is only resolved for requests that are actually verified, so
    exempt requests and actions outside the ``only``/``except`` lists never
    touch it.
    """

    async def verify_authenticity_token(request: Request, response: Response) -> None:
        if not guard.enabled or not guard.applies_to(get_action_id(request)):
            return
        settings = get_settings()
        view = await build_request_view(request, guard.token_param, settings.csrf_header_name)
        if is_exempt(view, guard.config):
            return
        session = await get_session_state(request, response)
        await guard.verify_or_raise(view, session)

    return verify_authenticity_token


def form_authenticity_token(guard: ForgeryGuard) -> Callable[..., Awaitable[str]]:
    async def dependency(session: SessionState = Depends(get_session_state)) -> str:
        return await guard.current_token(session)

    return dependency
