"""
Admin service.

Admin-only customer directory operations: the paginated, searchable user
listing and the loyalty points overwrite. Every entry point runs the access
guard before touching storage and keeps Flask types out of this layer.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Optional

import structlog

from audit import log_event
from infra.cache_manager import ADMIN_USERS_CACHE_PREFIX, USER_LIST_CHANGED
from repositories import users_repo
from security import CallerIdentity, NotFoundError, check_admin

logger = structlog.get_logger("shopdesk.admin")

DEFAULT_PAGE_SIZE = 20


def _isoformat(value: Any) -> Optional[str]:
    """Render a stored timestamp as ISO-8601 in UTC; naive values are UTC."""
    if value is None or value == "":
        return None
    if not isinstance(value, datetime):
        # SQLite hands DATETIME columns back as text through raw queries.
        value = datetime.fromisoformat(str(value))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def serialize_user_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "user_id": row["user_id"],
        "username": row.get("username") or None,
        "points": int(row.get("points") or 0),
        "last_login_at": _isoformat(row.get("last_login_at")),
        "created_at": _isoformat(row.get("created_at")),
        "order_count": int(row.get("order_count") or 0),
    }


def list_users(
    identity: Optional[CallerIdentity],
    *,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    q: str = "",
    admin_usernames: Iterable[str] = (),
    cache_get: Optional[Callable] = None,
    cache_set: Optional[Callable] = None,
    cache_ttl: int = 0,
) -> Dict[str, Any]:
    """Return one page of the customer directory.

    ``page`` must already be normalised to a positive integer. A page past
    the end yields no items while ``total`` still counts every match.

    Cached pages are keyed by the directory version read before the page
    is built, so a page computed before a concurrent save is never served
    after it.
    """
    check_admin(identity, admin_usernames=admin_usernames)

    use_cache = bool(cache_get or (cache_set and cache_ttl > 0))
    version = users_repo.directory_version() if use_cache else 0
    cache_key_parts = (version, page, page_size, q)
    if cache_get:
        cached = cache_get(ADMIN_USERS_CACHE_PREFIX, cache_key_parts)
        if cached is not None:
            return cached

    total = users_repo.count_users(q)
    offset = (page - 1) * page_size
    rows = users_repo.list_users(page_size, offset, q) if offset < total else []
    result = {
        "items": [serialize_user_row(row) for row in rows],
        "total": total,
        "page": page,
        "page_size": page_size,
    }

    if cache_set and cache_ttl > 0:
        cache_set(ADMIN_USERS_CACHE_PREFIX, cache_key_parts, result, cache_ttl)
    return result


def save_user_points(
    identity: Optional[CallerIdentity],
    user_id: str,
    points: int,
    *,
    admin_usernames: Iterable[str] = (),
    notify_change_cb: Optional[Callable[[str], None]] = None,
) -> Dict[str, Any]:
    """Overwrite ``user_id``'s points with ``points``.

    The write is a full replace, so retrying with the same arguments is
    harmless. Concurrent admins editing one user resolve last-writer-wins.
    """
    check_admin(identity, admin_usernames=admin_usernames)

    previous = users_repo.update_user_points(user_id, points)
    if previous is None:
        raise NotFoundError(f"User {user_id} not found", details={"user_id": user_id})

    if notify_change_cb:
        notify_change_cb(USER_LIST_CHANGED)

    log_event(
        "admin.user_points_updated",
        "User points updated",
        actor_id=identity.user_id if identity else None,
        context={
            "user_id": user_id,
            "previous_points": previous,
            "points": points,
            "admin": identity.username if identity else None,
        },
    )
    return {"message": "Points updated", "user_id": user_id, "points": points}
