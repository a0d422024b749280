"""Add view_versions counters for cache-safe directory listings."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20260115_000002"
down_revision = "20260101_000001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("view_versions"):
        op.create_table(
            "view_versions",
            sa.Column("name", sa.String(length=64), primary_key=True),
            sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        )


def downgrade() -> None:
    op.drop_table("view_versions")
