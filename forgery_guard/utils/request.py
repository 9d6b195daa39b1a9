"""Request utility helpers."""
from __future__ import annotations

from pathlib import PurePosixPath

from fastapi import Request

from forgery_guard.schemas.csrf import RequestFormat, RequestView

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")
HTML_MEDIA_TYPES = frozenset({"text/html", "application/xhtml+xml", "*/*"})
JS_MEDIA_TYPES = frozenset({"text/javascript", "application/javascript", "application/x-javascript"})
EXTENSION_FORMATS = {
    ".html": RequestFormat.HTML,
    ".htm": RequestFormat.HTML,
    ".js": RequestFormat.JS,
    ".json": RequestFormat.OTHER,
    ".xml": RequestFormat.OTHER,
    ".atom": RequestFormat.OTHER,
    ".rss": RequestFormat.OTHER,
    ".csv": RequestFormat.OTHER,
    ".txt": RequestFormat.OTHER,
    ".yaml": RequestFormat.OTHER,
}


def request_format(request: Request) -> RequestFormat:
    """Format from a known path extension, otherwise from the first ``Accept`` entry."""

    suffix = PurePosixPath(request.url.path).suffix.lower()
    if suffix in EXTENSION_FORMATS:
        return EXTENSION_FORMATS[suffix]
    accept = request.headers.get("accept", "").strip()
    if not accept:
        return RequestFormat.HTML
    media_type = accept.split(",")[0].split(";")[0].strip().lower()
    if media_type in HTML_MEDIA_TYPES:
        return RequestFormat.HTML
    if media_type in JS_MEDIA_TYPES:
        return RequestFormat.JS
    return RequestFormat.OTHER


def get_action_id(request: Request) -> str:
    route = request.scope.get("route")
    name = getattr(route, "name", None)
    if name:
        return name
    endpoint = request.scope.get("endpoint")
    return getattr(endpoint, "__name__", "") if endpoint else ""


async def get_submitted_token(request: Request, token_param: str, header_name: str) -> str | None:
    """Token from the form body, then the query string, then ``header_name``."""

    names = (token_param, f"_{token_param}")
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        for name in names:
            value = form.get(name)
            if isinstance(value, str) and value:
                return value
    for name in names:
        value = request.query_params.get(name)
        if value:
            return value
    return request.headers.get(header_name) or None


async def build_request_view(request: Request, token_param: str, header_name: str) -> RequestView:
    return RequestView(
        method=request.method,
        format=request_format(request),
        submitted_token=await get_submitted_token(request, token_param, header_name),
        action_id=get_action_id(request),
    )
