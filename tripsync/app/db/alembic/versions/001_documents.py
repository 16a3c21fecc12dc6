"""Documents table

Revision ID: 001
Revises:
Create Date: 2026-10-19

Single table holding every tenant document (trips, journeys, bookings,
packingLists) as JSON, with an integer version for optimistic concurrency.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create documents table."""
    op.create_table(
        "documents",
        sa.Column("tenant_id", sa.Text(), nullable=False),
        sa.Column("collection", sa.Text(), nullable=False),
        sa.Column("doc_id", sa.Text(), nullable=False),
        sa.Column(
            "data",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("tenant_id", "collection", "doc_id"),
    )
    op.create_index(
        "idx_documents_tenant_collection", "documents", ["tenant_id", "collection"]
    )


def downgrade() -> None:
    """Drop documents table."""
    op.drop_index("idx_documents_tenant_collection", table_name="documents")
    op.drop_table("documents")
