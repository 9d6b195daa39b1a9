"""Decides which requests are subject to authenticity token checks."""
from __future__ import annotations

from forgery_guard.schemas.csrf import ForgeryProtectionConfig, RequestFormat, RequestView

VERIFIABLE_FORMATS = frozenset({RequestFormat.HTML, RequestFormat.JS})
# HEAD is answered as a GET.
GET_METHODS = frozenset({"GET", "HEAD"})


def verifiable_request_format(request: RequestView) -> bool:
    return request.format in VERIFIABLE_FORMATS


def is_exempt(request: RequestView, config: ForgeryProtectionConfig) -> bool:
    """Return True when ``request`` is not checked at all.

    GET requests must be safe and idempotent, and only HTML and JavaScript
    requests are checked; other formats are expected to authenticate some
    other way.
    """

    return not config.enabled or request.method in GET_METHODS or not verifiable_request_format(request)
