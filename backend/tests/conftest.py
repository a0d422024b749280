import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

_TEST_DB_DIR = Path(tempfile.mkdtemp(prefix="shopdesk-tests-"))
os.environ["DATABASE_URL"] = (
    os.environ.get("TEST_DATABASE_URL") or f"sqlite:///{_TEST_DB_DIR / 'shopdesk.db'}"
)

import pytest  # noqa: E402
from app import app  # noqa: E402
from extensions import db  # noqa: E402
from infra import cache_manager, rate_limiter  # noqa: E402
from models import Order, User  # noqa: E402
from services import auth_service  # noqa: E402

BASE_CREATED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture()
def client():
    app.config.update({"TESTING": True, "ADMIN_USERNAMES": frozenset()})

    try:
        with app.app_context():
            db.session.remove()
            db.drop_all()
            db.create_all()
    except Exception as exc:  # pragma: no cover - skip if database unavailable
        pytest.skip(f"Test database not available: {exc}")

    rate_limiter.reset()
    cache_manager.reset_cache()

    with app.test_client() as client:
        yield client

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def auth_headers(subject="admin-1", username="root", *, is_admin=True):
    tokens = auth_service.issue_token_payload(
        subject,
        username,
        is_admin=is_admin,
        jwt_secret=app.config["JWT_SECRET"],
        jwt_algorithm=app.config["JWT_ALGORITHM"],
        jwt_exp_minutes=5,
    )
    return {
        "Authorization": f"Bearer {tokens['access_token']}",
        "X-CSRF-Token": tokens["csrf_token"],
    }


@pytest.fixture()
def admin_headers(client):
    return auth_headers()


@pytest.fixture()
def customer_headers(client):
    return auth_headers("customer-9", "shopper", is_admin=False)


def add_users(*specs):
    """Insert users from dicts with user_id plus optional columns and order count."""
    with app.app_context():
        for spec in specs:
            spec = dict(spec)
            orders = spec.pop("orders", 0)
            db.session.add(User(**spec))
            for index in range(orders):
                db.session.add(
                    Order(order_id=f"{spec['user_id']}-o{index}", user_id=spec["user_id"])
                )
        db.session.commit()


def add_customers(count, *, named=None):
    """Insert ``count`` customers u000.. with ascending creation times.

    ``named`` maps an index to a username overriding ``customer_<index>``.
    """
    named = named or {}
    add_users(
        *(
            {
                "user_id": f"u{index:03d}",
                "username": named.get(index, f"customer_{index}"),
                "points": index,
                "created_at": BASE_CREATED_AT + timedelta(minutes=index),
            }
            for index in range(count)
        )
    )
