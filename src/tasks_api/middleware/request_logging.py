"""Access logging with a per-request id."""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = uuid.uuid4().hex
        start = time.perf_counter()
        logger.info(
            "[%s] %s %s (user-agent=%s, origin=%s)",
            request_id,
            request.method,
            request.url.path,
            request.headers.get("user-agent"),
            request.headers.get("origin"),
        )

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error("[%s] Request failed after %.1fms", request_id, duration_ms)
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "[%s] Completed %s in %.1fms", request_id, response.status_code, duration_ms
        )
        return response
