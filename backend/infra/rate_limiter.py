import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Tuple

SWEEP_INTERVAL = 60.0

# storage key -> (window seconds, hit timestamps)
_rate_limit_storage: Dict[str, Tuple[int, Deque[float]]] = {}
_rate_limit_lock = threading.Lock()
_clock: Callable[[], float] = time.monotonic
_last_sweep = float("-inf")


def _sweep_idle(now: float) -> None:
    idle = [
        key
        for key, (window, hits) in _rate_limit_storage.items()
        if not hits or hits[-1] <= now - window
    ]
    for key in idle:
        del _rate_limit_storage[key]


def check_rate_limit(endpoint: str, identifier: str, limit: int, window: int) -> bool:
    """Record a hit and return True when ``identifier`` exceeded ``limit`` per ``window``."""
    global _last_sweep
    storage_key = f"{identifier or 'anonymous'}:{endpoint}"
    now = _clock()

    with _rate_limit_lock:
        if now - _last_sweep >= SWEEP_INTERVAL:
            _sweep_idle(now)
            _last_sweep = now
        _, hits = _rate_limit_storage.setdefault(storage_key, (window, deque()))
        cutoff = now - window
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if len(hits) >= limit:
            return True
        hits.append(now)
        return False


def reset() -> None:
    global _last_sweep
    with _rate_limit_lock:
        _rate_limit_storage.clear()
        _last_sweep = float("-inf")
