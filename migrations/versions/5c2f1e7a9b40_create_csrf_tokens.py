"""create csrf tokens

Revision ID: 5c2f1e7a9b40
Revises:
Create Date: 2026-10-18 09:12:44.512301

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c2f1e7a9b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the token table with its address and timestamp indexes."""
    op.create_table(
        "csrf_tokens",
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("issuer_address", sa.Text(), nullable=False),
        sa.Column("issued_at", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("token"),
    )
    op.create_index("idx_csrf_tokens_issuer_address", "csrf_tokens", ["issuer_address"])
    op.create_index("idx_csrf_tokens_issued_at", "csrf_tokens", ["issued_at"])


def downgrade() -> None:
    """Drop the token table."""
    op.drop_index("idx_csrf_tokens_issued_at", table_name="csrf_tokens")
    op.drop_index("idx_csrf_tokens_issuer_address", table_name="csrf_tokens")
    op.drop_table("csrf_tokens")
