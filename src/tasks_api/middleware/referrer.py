"""Referer allow-list check."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from urllib.parse import urlsplit

from fastapi import status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from tasks_api.core.errors import ApiError, error_response

logger = logging.getLogger(__name__)

EXEMPT_PATHS = frozenset({"/docs", "/redoc", "/openapi.json", "/health"})


class AccessDeniedError(ApiError):
    code = "ACCESS_DENIED"
    message = "Access denied"
    status_code = status.HTTP_403_FORBIDDEN


def _host_of(url: str) -> str:
    try:
        return urlsplit(url).netloc
    except ValueError:
        return ""


class ReferrerCheckMiddleware(BaseHTTPMiddleware):
    """Only serves requests whose Referer host belongs to an allowed origin."""

    def __init__(self, app: ASGIApp, allowed_origins: Iterable[str], *, enabled: bool = True) -> None:
        super().__init__(app)
        self.allowed_hosts = {host for host in map(_host_of, allowed_origins) if host}
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self.enabled or request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        referrer = request.headers.get("referer") or request.headers.get("referrer")
        if not referrer:
            logger.warning(
                "No referrer provided: %s %s (origin=%s)",
                request.method,
                request.url.path,
                request.headers.get("origin"),
            )
            return error_response(AccessDeniedError())

        host = _host_of(referrer)
        if not host or host not in self.allowed_hosts:
            logger.warning(
                "Invalid referrer %s for %s %s", referrer, request.method, request.url.path
            )
            return error_response(AccessDeniedError())

        return await call_next(request)
