import copy
import time
from threading import Lock
from typing import Callable, Dict, List, Tuple

import structlog

logger = structlog.get_logger("shopdesk.cache")

CacheEntry = Tuple[float, object]

_cache_storage: Dict[str, CacheEntry] = {}
_cache_lock = Lock()
_time_provider: Callable[[], float] = time.time

_listeners: Dict[str, List[Callable[[], None]]] = {}
_listeners_lock = Lock()

ADMIN_USERS_CACHE_PREFIX = "admin_users"

USER_LIST_CHANGED = "user_list.changed"


def build_cache_key(prefix: str, key_parts: Tuple) -> str:
    key_str = "::".join(str(part) for part in key_parts)
    return f"{prefix}::{key_str}"


def cache_get(prefix: str, key_parts: Tuple):
    key = build_cache_key(prefix, key_parts)
    with _cache_lock:
        entry = _cache_storage.get(key)
        if not entry:
            return None
        expires_at, value = entry
        if expires_at <= _time_provider():
            del _cache_storage[key]
            return None
        return copy.deepcopy(value)


def cache_set(prefix: str, key_parts: Tuple, value: object, ttl: int) -> None:
    key = build_cache_key(prefix, key_parts)
    with _cache_lock:
        _cache_storage[key] = (_time_provider() + ttl, copy.deepcopy(value))


def invalidate_cache(prefix: str) -> None:
    key_prefix = prefix + "::"
    with _cache_lock:
        stale = [key for key in _cache_storage if key.startswith(key_prefix)]
        for key in stale:
            del _cache_storage[key]
    logger.info("cache.invalidated", prefix=prefix, entries=len(stale))


def reset_cache() -> None:
    with _cache_lock:
        _cache_storage.clear()


def subscribe(topic: str, callback: Callable[[], None]) -> None:
    """Register ``callback`` to run whenever ``topic`` is published."""
    with _listeners_lock:
        callbacks = _listeners.setdefault(topic, [])
        if callback not in callbacks:
            callbacks.append(callback)


def publish_change(topic: str) -> None:
    with _listeners_lock:
        callbacks = list(_listeners.get(topic, ()))
    for callback in callbacks:
        callback()


def invalidate_admin_users() -> None:
    invalidate_cache(ADMIN_USERS_CACHE_PREFIX)


subscribe(USER_LIST_CHANGED, invalidate_admin_users)


def cache_health() -> bool:
    try:
        with _cache_lock:
            _ = len(_cache_storage)
        return True
    except Exception:
        return False


def set_time_provider(func: Callable[[], float]) -> None:
    """Override time provider (used in tests)."""
    global _time_provider
    _time_provider = func
