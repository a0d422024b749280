from datetime import datetime, timezone
from types import SimpleNamespace

from app import app
from conftest import add_customers, add_users
from extensions import db
from infra.cache_manager import publish_change
from models import AuditLog
from repositories import users_repo
from security import CallerIdentity, TransientStoreError
from sqlalchemy import create_engine
from services import admin_service


ROOT = CallerIdentity(user_id="admin-1", username="root", is_admin=True)


def _page(client, headers, **params):
    resp = client.get("/admin/users", query_string=params, headers=headers)
    assert resp.status_code == 200
    return resp.get_json()


def test_pages_over_45_customers(client, admin_headers):
    add_customers(45)

    first = _page(client, admin_headers, page=1)
    third = _page(client, admin_headers, page=3)
    fourth = _page(client, admin_headers, page=4)

    assert len(first["items"]) == 20
    assert len(third["items"]) == 5
    assert fourth["items"] == []
    assert first["total"] == third["total"] == fourth["total"] == 45
    assert fourth["page"] == 4
    assert fourth["page_size"] == 20


def test_every_row_listed_once_across_pages(client, admin_headers):
    add_customers(45, named={3: "alice_w", 30: "Alice Cooper"})

    for query in ("", "customer_1", "alice"):
        seen = []
        page = 1
        while True:
            data = _page(client, admin_headers, page=page, q=query)
            if not data["items"]:
                break
            seen.extend(item["user_id"] for item in data["items"])
            page += 1
        assert len(seen) == len(set(seen))
        assert len(seen) == data["total"]


def test_search_alice(client, admin_headers):
    add_customers(45, named={3: "alice_w", 30: "Alice Cooper"})

    data = _page(client, admin_headers, page=1, q="alice")
    assert data["total"] == 2
    assert {item["username"] for item in data["items"]} == {"alice_w", "Alice Cooper"}


def test_record_shape(client, admin_headers):
    add_users({"user_id": "u1", "username": None, "points": 12, "orders": 2})

    item = _page(client, admin_headers)["items"][0]
    assert item == {
        "user_id": "u1",
        "username": None,
        "points": 12,
        "last_login_at": None,
        "created_at": None,
        "order_count": 2,
    }


def test_malformed_page_defaults_to_first(client, admin_headers):
    add_customers(3)

    for raw in ("abc", "0", "-2", "2.5", ""):
        data = _page(client, admin_headers, page=raw)
        assert data["page"] == 1
        assert len(data["items"]) == 3


def test_points_edit_visible_in_next_listing(client, admin_headers):
    add_users({"user_id": "u123", "username": "edited", "points": 100})

    before = _page(client, admin_headers, q="u123")
    assert before["items"][0]["points"] == 100

    resp = client.post(
        "/admin/users/u123/points", json={"points": 150}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert resp.get_json() == {"message": "Points updated", "user_id": "u123", "points": 150}

    after = _page(client, admin_headers, q="u123")
    assert after["items"][0]["points"] == 150


def test_points_edit_is_audited(client, admin_headers):
    add_users({"user_id": "u1", "username": "alice", "points": 3})

    client.post("/admin/users/u1/points", json={"points": "8"}, headers=admin_headers)

    with app.app_context():
        entry = db.session.query(AuditLog).one()
        assert entry.event_type == "admin.user_points_updated"
        assert entry.actor_id == "admin-1"
        assert entry.context["previous_points"] == 3
        assert entry.context["points"] == 8


def test_non_numeric_points_never_reach_service(client, admin_headers, monkeypatch):
    add_users({"user_id": "u1", "username": "alice", "points": 3})

    def boom(*args, **kwargs):
        raise AssertionError("mutation service must not be called")

    monkeypatch.setattr(admin_service, "save_user_points", boom)

    for payload in ({"points": "abc"}, {"points": 1.5}, {"points": True}, {}, {"points": None}):
        resp = client.post("/admin/users/u1/points", json=payload, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "invalid_input"

    resp = client.post(
        "/admin/users/u1/points", data="not json", headers=admin_headers
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "invalid_json"


def test_unknown_user_is_404(client, admin_headers):
    resp = client.post(
        "/admin/users/ghost/points", json={"points": 1}, headers=admin_headers
    )
    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "not_found"


def test_save_requires_csrf_header(client, admin_headers):
    add_users({"user_id": "u1", "username": "alice", "points": 3})
    headers = {"Authorization": admin_headers["Authorization"]}

    resp = client.post("/admin/users/u1/points", json={"points": 4}, headers=headers)
    assert resp.status_code == 403
    assert resp.get_json()["error"]["code"] == "invalid_csrf"


def test_save_is_rate_limited(client, admin_headers):
    add_users({"user_id": "u1", "username": "alice", "points": 0})
    app.config["RATE_LIMITS"]["save_user_points"] = {"limit": 2, "window": 60}
    try:
        statuses = [
            client.post(
                "/admin/users/u1/points", json={"points": n}, headers=admin_headers
            ).status_code
            for n in range(3)
        ]
    finally:
        app.config["RATE_LIMITS"]["save_user_points"] = {"limit": 30, "window": 60}
    assert statuses == [200, 200, 429]


def test_store_outage_is_503(client, admin_headers, monkeypatch):
    def unreachable(q=""):
        raise TransientStoreError("User store is temporarily unavailable")

    monkeypatch.setattr(users_repo, "count_users", unreachable)

    resp = client.get("/admin/users", headers=admin_headers)
    assert resp.status_code == 503
    assert resp.get_json()["error"]["code"] == "service_unavailable"


def test_timestamps_rendered_as_utc_iso8601(client, admin_headers):
    add_users(
        {
            "user_id": "u1",
            "username": "alice",
            "created_at": datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
            "last_login_at": datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
        }
    )

    item = _page(client, admin_headers)["items"][0]
    assert item["created_at"] == "2024-01-02T03:04:05+00:00"
    assert item["last_login_at"] == "2024-03-01T12:00:00+00:00"


def test_save_during_listing_does_not_leave_stale_page(client, admin_headers, monkeypatch):
    add_users({"user_id": "u1", "username": "alice", "points": 100})
    read_rows = users_repo.list_users

    def list_then_save(limit, offset, q=""):
        rows = read_rows(limit, offset, q)
        admin_service.save_user_points(ROOT, "u1", 150, notify_change_cb=publish_change)
        return rows

    monkeypatch.setattr(users_repo, "list_users", list_then_save)
    assert _page(client, admin_headers)["items"][0]["points"] == 100

    monkeypatch.setattr(users_repo, "list_users", read_rows)
    assert _page(client, admin_headers)["items"][0]["points"] == 150


def test_save_from_another_process_is_visible(client, admin_headers):
    add_users({"user_id": "u1", "username": "alice", "points": 100})
    assert _page(client, admin_headers)["items"][0]["points"] == 100

    # Another worker commits without reaching this process's listeners.
    with app.app_context():
        admin_service.save_user_points(ROOT, "u1", 175)

    assert _page(client, admin_headers)["items"][0]["points"] == 175


def test_unreachable_database_is_503(client, admin_headers, monkeypatch, tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'shopdesk.db'}")
    monkeypatch.setattr(users_repo, "db", SimpleNamespace(engine=engine))

    resp = client.get("/admin/users", headers=admin_headers)
    assert resp.status_code == 503
    assert resp.get_json()["error"]["code"] == "service_unavailable"
    engine.dispose()
