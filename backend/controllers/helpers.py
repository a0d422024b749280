from typing import Optional

from flask import g, request
from schemas import UserListQuery


def current_user_id() -> Optional[str]:
    user = getattr(g, "current_user", None)
    return str(user["id"]) if user else None


def parse_user_list_query() -> UserListQuery:
    """Read ``page`` and ``q`` from the query string, defaulting bad values."""
    return UserListQuery.model_validate(
        {
            "page": request.args.get("page"),
            "q": request.args.get("q"),
        }
    )
