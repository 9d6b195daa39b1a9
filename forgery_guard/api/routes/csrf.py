"""Authenticity token routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from forgery_guard.api.dependencies import form_authenticity_token
from forgery_guard.schemas.csrf import CSRFTokenResponse
from forgery_guard.services.csrf import ForgeryGuard


def build_router(guard: ForgeryGuard) -> APIRouter:
    router = APIRouter(prefix="/csrf", tags=["csrf"])

    @router.get("/token", response_model=CSRFTokenResponse)
    async def token(authenticity_token: str = Depends(form_authenticity_token(guard))) -> CSRFTokenResponse:
        return CSRFTokenResponse(authenticity_token=authenticity_token, param=guard.token_param)

    return router
