"""Per-address request throttling."""

from __future__ import annotations

import logging

from fastapi import status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from tasks_api.core.client import resolve_client_address
from tasks_api.core.errors import ApiError, error_response
from tasks_api.services.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


class RateLimitExceededError(ApiError):
    code = "RATE_LIMITED"
    message = "Too many requests"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects requests beyond the per-window allowance and reports quota headers."""

    def __init__(
        self,
        app: ASGIApp,
        limiter: RateLimiter,
        *,
        trust_forwarded_for: bool = True,
    ) -> None:
        super().__init__(app)
        self.limiter = limiter
        self.trust_forwarded_for = trust_forwarded_for

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        address = resolve_client_address(request, trust_forwarded_for=self.trust_forwarded_for)
        decision = self.limiter.hit(address)

        if not decision.allowed:
            logger.warning("Rate limit exceeded for %s", address)
            exc = RateLimitExceededError(details={"reset_at": int(decision.reset_at * 1000)})
            return error_response(exc, headers=decision.headers())

        response = await call_next(request)
        response.headers.update(decision.headers())
        return response
