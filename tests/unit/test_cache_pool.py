"""
Name: Cache Pool Tests

Responsibilities:
  - Validate redis configuration checks
  - Ensure acquire timeout / closed pool map to 503 and never leak connections
  - Ensure warm-up and connection lifetime follow the configuration
"""

import logging
import time
from contextlib import ExitStack

import pytest
import redis.exceptions as redis_exc
from pydantic import SecretStr

from app.common import errors
from app.common.errors import AppError
from app.infra.cache import build_cache_pool

from tests.fakes import FakeClock, FakeRedisConnection, make_redis_conf


pytestmark = pytest.mark.unit


def _build(clock=None, **overrides):
    kwargs = {"connection_class": FakeRedisConnection}
    if clock is not None:
        kwargs["clock"] = clock
    return build_cache_pool(make_redis_conf(**overrides), **kwargs)


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_size": 0},
        {"min_idle": -1},
        {"min_idle": 3, "max_size": 2},
        {"lifetime_secs": -1},
        {"acquire_timeout_secs": -1},
        {"url": SecretStr("")},
        {"url": SecretStr("http://127.0.0.1:6379/0")},
        {"url": SecretStr("redis:///0")},
    ],
)
def test_invalid_config_is_rejected(overrides):
    with pytest.raises(AppError) as ei:
        _build(**overrides)
    assert ei.value.condition is errors.CACHE_CONFIGURATION


def test_invalid_url_is_not_logged(caplog):
    with caplog.at_level(logging.DEBUG):
        with pytest.raises(AppError):
            _build(url=SecretStr("http://:hunter2@127.0.0.1:6379/0"))
    assert "hunter2" not in caplog.text


def test_warm_up_opens_min_idle_connections():
    cache = _build(max_size=3, min_idle=2)
    try:
        created = cache.pool._connections
        assert len(created) == 2
        assert all(c.connect_calls >= 1 for c in created)
        assert cache.checked_out() == 0
    finally:
        cache.close()


def test_checkouts_up_to_max_then_timeout(cache_pool):
    assert cache_pool.max_size == 2
    with ExitStack() as stack:
        clients = [stack.enter_context(cache_pool.checkout()) for _ in range(2)]
        assert clients[0] is not clients[1]
        assert cache_pool.checked_out() == 2

        start = time.monotonic()
        with pytest.raises(AppError) as ei:
            with cache_pool.checkout():
                pass
        elapsed = time.monotonic() - start

    assert ei.value.condition is errors.CACHE_POOL_TIMEOUT
    assert ei.value.status_code == 503
    assert 0.05 <= elapsed < 5
    assert cache_pool.checked_out() == 0

    with cache_pool.checkout():
        assert cache_pool.checked_out() == 1
    assert cache_pool.checked_out() == 0


def test_redis_error_in_body_is_translated_and_released(cache_pool):
    with pytest.raises(AppError) as ei:
        with cache_pool.checkout():
            raise redis_exc.ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")
    assert ei.value.condition is errors.REDIS_CLIENT
    assert ei.value.status_code == 500
    assert cache_pool.checked_out() == 0


def test_closed_pool_rejects_checkout(cache_pool):
    cache_pool.close()
    assert cache_pool.closed
    with pytest.raises(AppError) as ei:
        with cache_pool.checkout():
            pass
    assert ei.value.condition is errors.CACHE_POOL_CLOSED
    assert ei.value.status_code == 503


def test_connection_older_than_lifetime_is_dropped_on_release():
    clock = FakeClock()
    cache = _build(clock=clock, max_size=1, lifetime_secs=10)
    try:
        with cache.checkout():
            pass
        conn = cache.pool._connections[0]
        assert conn.disconnect_calls == 0

        with cache.checkout():
            clock.advance(20)
        assert conn.disconnect_calls == 1

        with cache.checkout():
            clock.advance(5)
        assert conn.disconnect_calls == 1
    finally:
        cache.close()


def test_zero_lifetime_keeps_connections():
    clock = FakeClock()
    cache = _build(clock=clock, max_size=1, lifetime_secs=0)
    try:
        with cache.checkout():
            clock.advance(100000)
        assert cache.pool._connections[0].disconnect_calls == 0
    finally:
        cache.close()
