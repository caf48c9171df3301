"""ASGI middleware forming the request pipeline."""

from .csrf import CSRFMiddleware
from .rate_limit import RateLimitMiddleware
from .referrer import ReferrerCheckMiddleware
from .request_logging import RequestLoggingMiddleware
from .security_headers import SecurityHeadersMiddleware

__all__ = [
    "CSRFMiddleware",
    "RateLimitMiddleware",
    "ReferrerCheckMiddleware",
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
]
