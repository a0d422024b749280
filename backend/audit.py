"""Audit trail for admin mutations.

Every event goes to the ``shopdesk.audit`` structlog logger and is stored as
an ``AuditLog`` row. Storage failures are logged and never fail the mutation
that produced the event.
"""

from datetime import datetime
from typing import Any, Dict, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import AuditLog

audit_logger = structlog.get_logger("shopdesk.audit")

_MISSING_TABLE_MARKERS = ("does not exist", "no such table", "undefined table")


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def is_table_missing(exc: SQLAlchemyError) -> bool:
    message = str(getattr(exc, "orig", None) or exc).lower()
    return AuditLog.__tablename__ in message and any(
        marker in message for marker in _MISSING_TABLE_MARKERS
    )


def log_event(
    event_type: str,
    message: str,
    *,
    actor_id: Optional[str] = None,
    level: str = "info",
    context: Optional[Dict[str, Any]] = None,
) -> Optional[AuditLog]:
    """Log ``event_type`` and store it; returns the stored row or None."""
    level = (level or "info").strip().lower() or "info"
    payload = _jsonable(context or {})

    emit = getattr(audit_logger, level, audit_logger.info)
    emit(event_type, actor_id=actor_id, message=message, context=payload)

    entry = AuditLog(
        actor_id=actor_id,
        event_type=event_type,
        message=message,
        context=payload,
        level=level,
    )
    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        if is_table_missing(exc):
            audit_logger.warning(
                "audit_log.table_missing",
                event_type=event_type,
                hint="run `shopdesk-manage upgrade`",
            )
        else:
            audit_logger.error("audit_log.persist_failed", event_type=event_type, error=str(exc))
        return None
    return entry
