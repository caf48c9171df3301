"""Issuance and one-time validation of CSRF tokens.

A token is the SHA-256 hex digest of ``f"{issued_at}{secret}{address}"``.
The derivation is deterministic so that any token can be re-derived and
audited from its stored row and the server secret; uniqueness comes from the
millisecond timestamp, and the secret makes tokens unforgeable.

Validation consumes the token: the row is deleted before the protected
request is forwarded, so a token can never be replayed even when the
downstream handler fails.
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass
from typing import Final

from fastapi import status

from tasks_api.core.errors import ApiError
from tasks_api.core.logging import token_fingerprint
from tasks_api.core.settings import Settings
from tasks_api.db.time import Clock, now_ms
from tasks_api.services.csrf_store import DuplicateTokenError, TokenStore, TokenStoreError

logger = logging.getLogger(__name__)

CSRF_TOKEN_HEADER: Final[str] = "X-CSRF-Token"
TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(r"[a-f0-9]{64}")


@dataclass(frozen=True)
class CsrfConfig:
    """Immutable configuration for the token lifecycle."""

    secret: str
    token_ttl_ms: int
    max_tokens_per_address: int
    sweep_interval_seconds: float
    bind_client_address: bool


def load_csrf_config(settings: Settings) -> CsrfConfig:
    """Build configuration object from application settings."""

    return CsrfConfig(
        secret=settings.csrf_secret,
        token_ttl_ms=settings.csrf_token_ttl_seconds * 1000,
        max_tokens_per_address=settings.csrf_max_tokens_per_address,
        sweep_interval_seconds=float(settings.csrf_sweep_interval_seconds),
        bind_client_address=settings.csrf_bind_client_address,
    )


class CsrfError(ApiError):
    """Base class for CSRF failures; rejects the request with 403."""

    code = "CSRF_INVALID"
    message = "Invalid CSRF token"
    status_code = status.HTTP_403_FORBIDDEN


class MissingTokenError(CsrfError):
    code = "CSRF_TOKEN_REQUIRED"
    message = "CSRF token is required"


class InvalidTokenFormatError(CsrfError):
    code = "CSRF_INVALID_FORMAT"
    message = "Invalid token format"


class TokenNotFoundError(CsrfError):
    code = "CSRF_TOKEN_NOT_FOUND"
    message = "Token not found or already used"


class TokenAddressMismatchError(CsrfError):
    code = "CSRF_ADDRESS_MISMATCH"
    message = "Token not valid for this IP"


class TokenExpiredError(CsrfError):
    code = "CSRF_TOKEN_EXPIRED"
    message = "Token has expired"


class TokenAlreadyConsumedError(CsrfError):
    code = "CSRF_TOKEN_CONSUMED"
    message = "Token has already been used"


class TokenConsumptionError(CsrfError):
    code = "CSRF_CONSUMPTION_FAILED"
    message = "Failed to invalidate token"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class QuotaExceededError(CsrfError):
    code = "CSRF_QUOTA_EXCEEDED"
    message = "Too many active tokens for this IP"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class TokenStorageError(CsrfError):
    code = "CSRF_STORAGE_FAILURE"
    message = "Failed to generate token"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class TokenGenerationError(TokenStorageError):
    code = "CSRF_GENERATION_FAILED"


def derive_token(issued_at: int, secret: str, address: str) -> str:
    """Return the 64-character lowercase hex token for the given inputs."""
    return hashlib.sha256(f"{issued_at}{secret}{address}".encode()).hexdigest()


def is_well_formed(token: str) -> bool:
    return TOKEN_PATTERN.fullmatch(token) is not None


class TokenIssuer:
    """Mints tokens for a client address, enforcing the outstanding-token quota."""

    def __init__(self, store: TokenStore, config: CsrfConfig, clock: Clock = now_ms) -> None:
        self.store = store
        self.config = config
        self._clock = clock

    def outstanding(self, address: str) -> int:
        """Number of live tokens currently held by `address`."""
        live_since = self._clock() - self.config.token_ttl_ms
        return self.store.count_by_address(address, issued_after=live_since)

    def issue(self, address: str) -> str:
        """Create, persist and return a new token for `address`.

        Raises:
            QuotaExceededError: The address already holds the maximum number of live tokens.
            TokenStorageError: The token could not be persisted.
        """
        limit = self.config.max_tokens_per_address
        issued_at = self._clock()
        live_since = issued_at - self.config.token_ttl_ms
        # A collision needs an earlier token for the same address and millisecond,
        # so one attempt per outstanding token plus one always suffices.
        for _ in range(limit + 1):
            token = derive_token(issued_at, self.config.secret, address)
            try:
                stored = self.store.insert_within_quota(
                    token, address, issued_at, live_since=live_since, limit=limit
                )
            except DuplicateTokenError:
                issued_at += 1
                continue
            except TokenStoreError as exc:
                logger.error("Failed to store token for %s: %s", address, exc)
                raise TokenStorageError() from exc
            if not stored:
                logger.warning("Token quota of %d reached for %s", limit, address)
                raise QuotaExceededError(details={"limit": limit})
            logger.debug("Issued token %s for %s", token_fingerprint(token), address)
            return token

        logger.error("Could not derive a unique token for %s", address)
        raise TokenGenerationError()


class TokenValidator:
    """Checks a presented token and consumes it on success."""

    def __init__(self, store: TokenStore, config: CsrfConfig, clock: Clock = now_ms) -> None:
        self.store = store
        self.config = config
        self._clock = clock

    def validate(self, token: str | None, address: str) -> None:
        """Accept and consume `token` for `address`, or raise a `CsrfError`.

        Checks run in order and stop at the first failure: presence, format,
        existence, address binding, freshness, then consumption.
        """
        if not token:
            raise MissingTokenError()
        if not is_well_formed(token):
            raise InvalidTokenFormatError()

        try:
            record = self.store.get(token)
        except TokenStoreError as exc:
            logger.error("Failed to look up token %s: %s", token_fingerprint(token), exc)
            raise CsrfError() from exc
        if record is None:
            raise TokenNotFoundError()

        if self.config.bind_client_address and record.issuer_address != address:
            raise TokenAddressMismatchError()

        if self._clock() - record.issued_at > self.config.token_ttl_ms:
            try:
                self.store.delete_by_token(token)
            except TokenStoreError as exc:
                logger.error(
                    "Failed to delete expired token %s: %s", token_fingerprint(token), exc
                )
            raise TokenExpiredError()

        try:
            consumed = self.store.delete_by_token(token)
        except TokenStoreError as exc:
            logger.error("Failed to consume token %s: %s", token_fingerprint(token), exc)
            raise TokenConsumptionError() from exc
        if not consumed:
            # A concurrent request deleted the row between our read and delete.
            raise TokenAlreadyConsumedError()
