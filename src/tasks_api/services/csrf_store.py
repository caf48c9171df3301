"""SQLAlchemy-backed storage for issued CSRF tokens.

Every operation opens its own short transaction, so each call is atomic on
its own and no lock is held across calls. Database errors never leave this
module raw: they are re-raised as `TokenStoreError`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import BigInteger, String, Text, delete, func, insert, literal, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from tasks_api.core.logging import token_fingerprint
from tasks_api.models import CsrfToken

logger = logging.getLogger(__name__)


class TokenStoreError(RuntimeError):
    """Raised when the token table cannot be read or written."""


class DuplicateTokenError(TokenStoreError):
    """Raised when inserting a token that is already stored."""


@dataclass(frozen=True)
class TokenRecord:
    """Immutable snapshot of a stored token row."""

    token: str
    issuer_address: str
    issued_at: int


class TokenStore:
    """Keyed token storage with secondary lookups by address and issue time."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def insert(self, token: str, issuer_address: str, issued_at: int) -> None:
        try:
            with self._session_factory.begin() as session:
                session.add(
                    CsrfToken(token=token, issuer_address=issuer_address, issued_at=issued_at)
                )
        except IntegrityError as exc:
            raise DuplicateTokenError("token already stored") from exc
        except SQLAlchemyError as exc:
            raise TokenStoreError(f"failed to insert token: {exc}") from exc

    def insert_within_quota(
        self,
        token: str,
        issuer_address: str,
        issued_at: int,
        *,
        live_since: int,
        limit: int,
    ) -> bool:
        """Insert a token only while the address holds fewer than `limit` live tokens.

        The count and the insert are one ``INSERT ... SELECT ... WHERE`` statement,
        so concurrent issuers for one address cannot both pass the quota check.
        Returns False when the quota is already reached.
        """
        live = (
            select(func.count())
            .select_from(CsrfToken)
            .where(
                CsrfToken.issuer_address == issuer_address,
                CsrfToken.issued_at >= live_since,
            )
            .correlate(None)
            .scalar_subquery()
        )
        candidate = select(
            literal(token, String),
            literal(issuer_address, Text),
            literal(issued_at, BigInteger),
        ).where(live < limit)
        statement = insert(CsrfToken).from_select(
            ["token", "issuer_address", "issued_at"], candidate
        )
        try:
            with self._session_factory.begin() as session:
                result = session.execute(statement)
                return result.rowcount > 0
        except IntegrityError as exc:
            raise DuplicateTokenError("token already stored") from exc
        except SQLAlchemyError as exc:
            raise TokenStoreError(f"failed to insert token: {exc}") from exc

    def get(self, token: str) -> TokenRecord | None:
        try:
            with self._session_factory() as session:
                row = session.get(CsrfToken, token)
                if row is None:
                    return None
                return TokenRecord(
                    token=row.token,
                    issuer_address=row.issuer_address,
                    issued_at=int(row.issued_at),
                )
        except SQLAlchemyError as exc:
            raise TokenStoreError(f"failed to read token: {exc}") from exc

    def delete_by_token(self, token: str) -> bool:
        """Delete one token; True only for the caller whose DELETE removed the row."""
        try:
            with self._session_factory.begin() as session:
                result = session.execute(delete(CsrfToken).where(CsrfToken.token == token))
                removed = result.rowcount > 0
        except SQLAlchemyError as exc:
            raise TokenStoreError(f"failed to delete token: {exc}") from exc
        logger.debug(
            "Token deletion attempt for %s: removed=%s", token_fingerprint(token), removed
        )
        return removed

    def count_by_address(self, issuer_address: str, issued_after: int | None = None) -> int:
        """Count tokens held by an address, optionally only those issued at or after a time."""
        query = select(func.count()).select_from(CsrfToken).where(
            CsrfToken.issuer_address == issuer_address
        )
        if issued_after is not None:
            query = query.where(CsrfToken.issued_at >= issued_after)
        try:
            with self._session_factory() as session:
                return int(session.execute(query).scalar_one())
        except SQLAlchemyError as exc:
            raise TokenStoreError(f"failed to count tokens: {exc}") from exc

    def delete_older_than(self, cutoff: int) -> int:
        """Remove every token issued strictly before `cutoff` and return how many went."""
        try:
            with self._session_factory.begin() as session:
                result = session.execute(delete(CsrfToken).where(CsrfToken.issued_at < cutoff))
                return int(result.rowcount or 0)
        except SQLAlchemyError as exc:
            raise TokenStoreError(f"failed to delete expired tokens: {exc}") from exc
