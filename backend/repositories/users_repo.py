"""Repository handling customer records shown in the admin user directory."""

from typing import Any, List, Optional, Tuple

from db_utils import connection as sa_connection
from db_utils import transactional_connection
from extensions import db

LIKE_ESCAPE = "\\"
DIRECTORY_VIEW = "user_directory"

_USER_COLUMNS = """
    u.user_id,
    u.username,
    u.points,
    u.last_login_at,
    u.created_at,
    (
        SELECT COUNT(*)
        FROM orders o
        WHERE o.user_id = u.user_id
    ) AS order_count
"""

# Newest accounts first, undated accounts last; user_id breaks ties so that
# paging over unchanged data is deterministic.
_STABLE_ORDER = """
    ORDER BY
        CASE WHEN u.created_at IS NULL THEN 1 ELSE 0 END,
        u.created_at DESC,
        u.user_id ASC
"""


def _escape_like(term: str) -> str:
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def _search_clause(q: str) -> Tuple[str, List[Any]]:
    """Return a WHERE clause matching ``q`` against username or user id."""
    if not q:
        return "", []
    pattern = f"%{_escape_like(q.lower())}%"
    clause = f"""
        WHERE LOWER(COALESCE(u.username, '')) LIKE ? ESCAPE '{LIKE_ESCAPE}'
           OR LOWER(u.user_id) LIKE ? ESCAPE '{LIKE_ESCAPE}'
    """
    return clause, [pattern, pattern]


def count_users(q: str = "") -> int:
    """Count users matching ``q`` (all users when ``q`` is empty)."""
    where, params = _search_clause(q)
    conn = sa_connection(db.engine)
    try:
        total = conn.execute(
            f"SELECT COUNT(*) FROM users u {where}",
            params,
        ).scalar()
    finally:
        conn.close()
    return int(total or 0)


def list_users(limit: int, offset: int, q: str = "") -> List[dict]:
    """List one slice of users matching ``q`` in stable order."""
    where, params = _search_clause(q)
    conn = sa_connection(db.engine)
    try:
        rows = conn.execute(
            f"""
            SELECT {_USER_COLUMNS}
            FROM users u
            {where}
            {_STABLE_ORDER}
            LIMIT ? OFFSET ?
            """,
            params + [limit, offset],
        ).fetchall()
    finally:
        conn.close()
    return [dict(row) for row in rows]


def directory_version() -> int:
    """Return the current version of the user directory (0 before any write)."""
    conn = sa_connection(db.engine)
    try:
        version = conn.execute(
            "SELECT version FROM view_versions WHERE name = ?",
            (DIRECTORY_VIEW,),
        ).scalar()
    finally:
        conn.close()
    return int(version or 0)


def _bump_version(conn, name: str) -> None:
    conn.execute(
        """
        INSERT INTO view_versions (name, version) VALUES (?, 1)
        ON CONFLICT (name) DO UPDATE SET version = view_versions.version + 1
        """,
        (name,),
    )


def update_user_points(user_id: str, points: int) -> Optional[int]:
    """Overwrite a user's points and return the previous balance.

    Returns None when no user has ``user_id``; nothing is written then.
    The directory version is bumped in the same transaction.
    """
    with transactional_connection(db.engine) as conn:
        row = conn.execute(
            "SELECT points FROM users WHERE user_id = ?",
            (user_id,),
        ).fetchone()
        if row is None:
            return None
        conn.execute(
            "UPDATE users SET points = ? WHERE user_id = ?",
            (points, user_id),
        )
        _bump_version(conn, DIRECTORY_VIEW)
        return int(row["points"] or 0)
