"""
Auth service.

Mints access tokens in the format the identity provider issues. The API only
verifies tokens; minting lives here for the CLI and the test-suite.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import jwt  # type: ignore[import]


def create_access_token(
    user_id: str,
    username: Optional[str],
    *,
    is_admin: bool,
    jwt_secret: str,
    jwt_algorithm: str,
    jwt_exp_minutes: int,
) -> Tuple[str, str]:
    csrf_token = secrets.token_hex(16)
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "username": username or "",
        "csrf": csrf_token,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=int(jwt_exp_minutes))).timestamp()),
        "is_admin": bool(is_admin),
    }
    token = jwt.encode(payload, jwt_secret, algorithm=jwt_algorithm)
    return token, csrf_token


def issue_token_payload(
    user_id: str,
    username: Optional[str],
    *,
    is_admin: bool,
    jwt_secret: str,
    jwt_algorithm: str,
    jwt_exp_minutes: int,
) -> Dict[str, Any]:
    token, csrf_token = create_access_token(
        user_id,
        username,
        is_admin=is_admin,
        jwt_secret=jwt_secret,
        jwt_algorithm=jwt_algorithm,
        jwt_exp_minutes=jwt_exp_minutes,
    )
    return {
        "access_token": token,
        "csrf_token": csrf_token,
        "token_type": "Bearer",
        "expires_in": int(jwt_exp_minutes) * 60,
    }
