from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Mapped, mapped_column, relationship

from extensions import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(db.Model):
    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(db.String(64), primary_key=True)
    username: Mapped[Optional[str]] = mapped_column(db.String(120), nullable=True, index=True)
    points: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0, server_default="0")
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        db.DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[Optional[datetime]] = mapped_column(
        db.DateTime(timezone=True), nullable=True, index=True
    )

    orders: Mapped[List["Order"]] = relationship(
        back_populates="user",
        passive_deletes=True,
    )

    def __repr__(self) -> str:  # pragma: no cover - convenience
        return f"<User {self.user_id} ({self.points} pts)>"


class Order(db.Model):
    __tablename__ = "orders"

    order_id: Mapped[str] = mapped_column(db.String(64), primary_key=True)
    user_id: Mapped[Optional[str]] = mapped_column(
        db.String(64),
        db.ForeignKey("users.user_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    status: Mapped[str] = mapped_column(db.String(32), nullable=False, default="pending")
    amount: Mapped[float] = mapped_column(db.Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow
    )

    user: Mapped[Optional[User]] = relationship(back_populates="orders")

    def __repr__(self) -> str:  # pragma: no cover - convenience
        return f"<Order {self.order_id} {self.status}>"


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        index=True,
    )
    actor_id: Mapped[Optional[str]] = mapped_column(db.String(64), nullable=True, index=True)
    event_type: Mapped[str] = mapped_column(db.String(64), nullable=False, index=True)
    message: Mapped[str] = mapped_column(db.Text, nullable=False)
    context: Mapped[Optional[Dict[str, object]]] = mapped_column(db.JSON, nullable=True)
    level: Mapped[str] = mapped_column(db.String(20), nullable=False, default="info", index=True)


class ViewVersion(db.Model):
    """Monotonic counter per cached read model; bumped by every write to it."""

    __tablename__ = "view_versions"

    name: Mapped[str] = mapped_column(db.String(64), primary_key=True)
    version: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0, server_default="0")
