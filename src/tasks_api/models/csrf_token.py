# src/tasks_api/models/csrf_token.py
"""Persistent record of an issued CSRF token."""

from sqlalchemy import BigInteger, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tasks_api.db.session import Base

TOKEN_HEX_LENGTH = 64


class CsrfToken(Base):
    """One outstanding token; rows are inserted and deleted, never updated."""

    __tablename__ = "csrf_tokens"

    token: Mapped[str] = mapped_column(String(TOKEN_HEX_LENGTH), primary_key=True)
    issuer_address: Mapped[str] = mapped_column(Text, nullable=False)
    # Milliseconds since the Unix epoch.
    issued_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        Index("idx_csrf_tokens_issuer_address", "issuer_address"),
        Index("idx_csrf_tokens_issued_at", "issued_at"),
    )
