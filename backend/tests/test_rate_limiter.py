import pytest
from infra import rate_limiter


@pytest.fixture()
def clock(monkeypatch):
    now = [0.0]
    rate_limiter.reset()
    monkeypatch.setattr(rate_limiter, "_clock", lambda: now[0])
    yield now
    rate_limiter.reset()


def test_limit_applies_per_window(clock):
    hits = [rate_limiter.check_rate_limit("save", "admin-1", 2, 60) for _ in range(3)]
    assert hits == [False, False, True]

    clock[0] = 61.0
    assert rate_limiter.check_rate_limit("save", "admin-1", 2, 60) is False


def test_idle_identifiers_are_evicted(clock):
    rate_limiter.check_rate_limit("save", "admin-1", 5, 60)
    rate_limiter.check_rate_limit("save", "admin-2", 5, 60)

    clock[0] = 1000.0
    rate_limiter.check_rate_limit("save", "admin-3", 5, 60)

    assert set(rate_limiter._rate_limit_storage) == {"admin-3:save"}


def test_active_identifiers_survive_sweep(clock):
    rate_limiter.check_rate_limit("save", "admin-1", 5, 600)

    clock[0] = 120.0
    rate_limiter.check_rate_limit("save", "admin-2", 5, 60)

    assert set(rate_limiter._rate_limit_storage) == {"admin-1:save", "admin-2:save"}
