"""Initial schema: customers, orders and the admin audit trail."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20260101_000001"
down_revision = None
branch_labels = None
depends_on = None


def _existing_indexes(inspector, table: str) -> set:
    if not inspector.has_table(table):
        return set()
    return {index["name"] for index in inspector.get_indexes(table)}


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("users"):
        op.create_table(
            "users",
            sa.Column("user_id", sa.String(length=64), primary_key=True),
            sa.Column("username", sa.String(length=120), nullable=True),
            sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        )
    user_indexes = _existing_indexes(inspector, "users")
    if "ix_users_username" not in user_indexes:
        op.create_index("ix_users_username", "users", ["username"])
    if "ix_users_created_at" not in user_indexes:
        op.create_index("ix_users_created_at", "users", ["created_at"])

    if not inspector.has_table("orders"):
        op.create_table(
            "orders",
            sa.Column("order_id", sa.String(length=64), primary_key=True),
            sa.Column(
                "user_id",
                sa.String(length=64),
                sa.ForeignKey("users.user_id", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
            sa.Column("amount", sa.Float(), nullable=False, server_default="0"),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
        )
    if "ix_orders_user_id" not in _existing_indexes(inspector, "orders"):
        op.create_index("ix_orders_user_id", "orders", ["user_id"])

    if not inspector.has_table("audit_logs"):
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "timestamp",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
            sa.Column("actor_id", sa.String(length=64), nullable=True),
            sa.Column("event_type", sa.String(length=64), nullable=False),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("context", sa.JSON(), nullable=True),
            sa.Column("level", sa.String(length=20), nullable=False, server_default="info"),
        )
    audit_indexes = _existing_indexes(inspector, "audit_logs")
    for column in ("timestamp", "actor_id", "event_type", "level"):
        name = f"ix_audit_logs_{column}"
        if name not in audit_indexes:
            op.create_index(name, "audit_logs", [column])


def downgrade() -> None:
    for column in ("level", "event_type", "actor_id", "timestamp"):
        op.drop_index(f"ix_audit_logs_{column}", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_orders_user_id", table_name="orders")
    op.drop_table("orders")
    op.drop_index("ix_users_created_at", table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
