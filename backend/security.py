from functools import wraps
from typing import Any, Dict, Iterable, NamedTuple, Optional

import structlog
from flask import current_app, g, jsonify, request
from infra import rate_limiter
from pydantic import ValidationError as PydanticValidationError
from schemas import PointsUpdatePayload

logger = structlog.get_logger("shopdesk.security")


class ApiError(Exception):
    default_code = "bad_request"
    default_status = 400

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.status = status or self.default_status
        self.details = details or {}


class ValidationError(ApiError):
    default_code = "invalid_input"
    default_status = 400


class AuthorizationError(ApiError):
    default_code = "forbidden"
    default_status = 403


class NotFoundError(ApiError):
    default_code = "not_found"
    default_status = 404


class TransientStoreError(ApiError):
    """The backing store could not be reached; the call is safe to retry."""

    default_code = "service_unavailable"
    default_status = 503


class CallerIdentity(NamedTuple):
    user_id: Optional[str]
    username: Optional[str]
    is_admin: bool


def check_admin(
    identity: Optional[CallerIdentity],
    *,
    admin_usernames: Iterable[str] = (),
) -> None:
    """Raise AuthorizationError unless ``identity`` belongs to an administrator.

    Pure over its arguments: callers resolve the identity (from a verified
    token, the CLI, a test) and pass the configured username allowlist.
    """
    if identity is None:
        raise AuthorizationError("Admin privileges required")
    if identity.is_admin:
        return
    if identity.username and identity.username in set(admin_usernames):
        return
    logger.warning(
        "admin.access_denied",
        user_id=identity.user_id,
        username=identity.username,
    )
    raise AuthorizationError("Admin privileges required")


def current_identity() -> Optional[CallerIdentity]:
    user_obj = getattr(g, "current_user", None)
    if not user_obj:
        return None
    user_id = user_obj.get("id")
    return CallerIdentity(
        user_id=str(user_id) if user_id is not None else None,
        username=user_obj.get("username"),
        is_admin=bool(user_obj.get("is_admin", False)),
    )


def configured_admin_usernames() -> frozenset:
    return frozenset(current_app.config.get("ADMIN_USERNAMES") or ())


def rate_limit(endpoint_name: str, limit: int, window_seconds: int):
    """Wrapper for the infra rate limiter to be used in controllers."""
    user_obj = getattr(g, "current_user", None)
    if user_obj:
        identifier = f"user:{user_obj['id']}"
    else:
        identifier = request.remote_addr or "anonymous"
    is_limited = rate_limiter.check_rate_limit(
        endpoint_name, identifier, limit, window_seconds
    )
    if is_limited:
        return error_response("too_many_requests", "Rate limit exceeded", 429)
    return None


def require_admin(fn):
    @wraps(fn)
    def wrapped(*args, **kwargs):
        check_admin(current_identity(), admin_usernames=configured_admin_usernames())
        return fn(*args, **kwargs)

    return wrapped


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapped(*args, **kwargs):
            if not getattr(g, "current_user", None):
                return error_response(
                    "unauthorized", "Missing or invalid access token", 401
                )
            return fn(*args, **kwargs)

        return wrapped

    return decorator


def error_response(
    code: str,
    message: str,
    status: int,
    details: Optional[Dict[str, Any]] = None,
):
    payload = {
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
        }
    }
    return jsonify(payload), status


def _extract_error_info(exc: PydanticValidationError) -> tuple[str, Dict[str, Any]]:
    errors = exc.errors()
    missing_fields = [
        ".".join(str(part) for part in err.get("loc", []) if part != "__root__")
        for err in errors
        if err.get("type") == "missing"
    ]
    if missing_fields:
        return (
            f"Missing required field(s): {', '.join(missing_fields)}",
            {"fields": missing_fields},
        )
    if errors:
        message = errors[0].get("msg") or ""
        if message.startswith("Value error, "):
            message = message.split(", ", 1)[1]
        if message:
            return message, {}
    return str(exc), {}


def validate_points_payload(payload: Any) -> int:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload", code="invalid_json")

    try:
        data = PointsUpdatePayload.model_validate(payload)
    except PydanticValidationError as exc:
        message, details = _extract_error_info(exc)
        raise ValidationError(message, details=details)

    return data.points
