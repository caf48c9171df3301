"""CSRF gate for state-changing requests.

POST, PUT, PATCH and DELETE requests must carry a token obtained from
``GET /csrf`` in the ``X-CSRF-Token`` header. The token is validated and
consumed before the request reaches its handler; safe methods pass through.
"""

from __future__ import annotations

import asyncio
import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from tasks_api.core.client import resolve_client_address
from tasks_api.core.errors import error_response
from tasks_api.core.logging import token_fingerprint
from tasks_api.services.csrf import CSRF_TOKEN_HEADER, CsrfError, TokenValidator

logger = logging.getLogger(__name__)

PROTECTED_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class CSRFMiddleware(BaseHTTPMiddleware):
    """Validates and consumes a one-time token on every mutating request."""

    def __init__(
        self,
        app: ASGIApp,
        validator: TokenValidator,
        *,
        trust_forwarded_for: bool = True,
    ) -> None:
        super().__init__(app)
        self.validator = validator
        self.trust_forwarded_for = trust_forwarded_for

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method not in PROTECTED_METHODS:
            return await call_next(request)

        token = request.headers.get(CSRF_TOKEN_HEADER)
        address = resolve_client_address(request, trust_forwarded_for=self.trust_forwarded_for)

        try:
            await asyncio.to_thread(self.validator.validate, token, address)
        except CsrfError as exc:
            logger.warning(
                "CSRF check failed (%s): %s %s from %s, token %s",
                exc.code,
                request.method,
                request.url.path,
                address,
                token_fingerprint(token),
            )
            return error_response(exc)

        logger.debug(
            "CSRF token %s consumed for %s %s from %s",
            token_fingerprint(token),
            request.method,
            request.url.path,
            address,
        )
        return await call_next(request)
