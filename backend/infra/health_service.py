import time
from typing import Dict, Tuple

import structlog

from infra import cache_manager
from repositories import health_repo

logger = structlog.get_logger("shopdesk.health")

SERVER_START_TIME = time.time()


def check_db_connection() -> bool:
    try:
        return health_repo.check_database_connection()
    except Exception as exc:
        logger.warning("health.db_check_failed", error=str(exc))
        return False


def check_cache_state() -> bool:
    try:
        return cache_manager.cache_health()
    except Exception as exc:
        logger.warning("health.cache_check_failed", error=str(exc))
        return False


def current_uptime_seconds(server_start_time: float) -> float:
    return max(0.0, time.time() - server_start_time)


def build_health_summary(
    server_start_time: float = SERVER_START_TIME,
) -> Tuple[Dict[str, object], bool]:
    db_ok = check_db_connection()
    cache_ok = check_cache_state()
    summary = {
        "uptime_s": round(current_uptime_seconds(server_start_time), 2),
        "db_ok": db_ok,
        "cache_ok": cache_ok,
    }
    return summary, db_ok and cache_ok
