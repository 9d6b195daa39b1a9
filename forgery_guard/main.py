"""FastAPI application factory.

Run with ``uvicorn forgery_guard.main:create_app --factory``.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from forgery_guard.api.routes import csrf
from forgery_guard.core.config import Settings, get_settings
from forgery_guard.core.exceptions import InvalidAuthenticityToken
from forgery_guard.core.log import configure_logging
from forgery_guard.db.session import get_database
from forgery_guard.schemas.csrf import ErrorResponse
from forgery_guard.services import session as session_store
from forgery_guard.services.csrf import ForgeryGuard

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)
    app = FastAPI(title=settings.app_name, debug=settings.debug)

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret_key,
        max_age=settings.session_ttl_seconds,
        same_site="lax",
        https_only=settings.session_cookie_secure,
    )

    guard = ForgeryGuard.protect_from_forgery(**settings.forgery_protection_options())
    app.state.forgery_guard = guard
    app.include_router(csrf.build_router(guard))

    app.add_exception_handler(InvalidAuthenticityToken, invalid_authenticity_token_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        if settings.session_backend == "redis":
            await session_store.get_redis_client().aclose()
        elif settings.session_backend == "database":
            await get_database().dispose()

    logger.info("%s started with %s session store", settings.app_name, settings.session_backend)
    return app


async def invalid_authenticity_token_handler(request: Request, exc: InvalidAuthenticityToken) -> JSONResponse:
    body = ErrorResponse(code=exc.code, message=str(exc))
    return JSONResponse(status_code=422, content=body.model_dump())


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else "error"
    body = ErrorResponse(code=detail, message=detail)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())
