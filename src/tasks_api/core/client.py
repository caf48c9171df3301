"""Client address resolution for per-address policies."""

from __future__ import annotations

from starlette.requests import Request

UNKNOWN_ADDRESS = "unknown"


def resolve_client_address(request: Request, *, trust_forwarded_for: bool = True) -> str:
    """Return the address used to bind CSRF tokens and rate limit a client.

    The first hop of `X-Forwarded-For` wins when the service sits behind a
    trusted proxy; otherwise the socket peer is used.
    """
    if trust_forwarded_for:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            first_hop = forwarded_for.split(",")[0].strip()
            if first_hop:
                return first_hop

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_ADDRESS
