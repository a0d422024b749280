from flask import Blueprint, current_app, jsonify, request

from controllers.helpers import parse_user_list_query
from infra import health_service
from infra.cache_manager import cache_get, cache_set, publish_change
from security import (
    configured_admin_usernames,
    current_identity,
    jwt_required,
    rate_limit,
    require_admin,
    validate_points_payload,
)
from services import admin_service, navigation_service

admin_bp = Blueprint("admin", __name__)


@admin_bp.get("/")
def home():
    return jsonify({"status": "ok"}), 200


@admin_bp.get("/healthz")
def health():
    summary, healthy = health_service.build_health_summary()
    status_code = 200 if healthy else 503
    return jsonify(summary), status_code


@admin_bp.get("/admin/navigation")
@jwt_required()
@require_admin
def navigation():
    identity = current_identity()
    return jsonify(navigation_service.build_navigation(identity.username))


@admin_bp.get("/admin/users")
@jwt_required()
@require_admin
def list_users():
    query = parse_user_list_query()
    config = current_app.config
    result = admin_service.list_users(
        current_identity(),
        page=query.page,
        page_size=int(config["ADMIN_USERS_PAGE_SIZE"]),
        q=query.q,
        admin_usernames=configured_admin_usernames(),
        cache_get=cache_get,
        cache_set=cache_set,
        cache_ttl=int(config["ADMIN_USERS_CACHE_TTL"]),
    )
    return jsonify(result)


@admin_bp.post("/admin/users/<string:user_id>/points")
@jwt_required()
@require_admin
def save_user_points(user_id: str):
    limits = current_app.config["RATE_LIMITS"]["save_user_points"]
    limited = rate_limit("save_user_points", limits["limit"], limits["window"])
    if limited:
        return limited

    points = validate_points_payload(request.get_json(silent=True))
    result = admin_service.save_user_points(
        current_identity(),
        user_id,
        points,
        admin_usernames=configured_admin_usernames(),
        notify_change_cb=publish_change,
    )
    return jsonify(result), 200
