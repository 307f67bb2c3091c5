# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

"""Redis 连接池

基于 redis-py 的 BlockingConnectionPool：
- max_size 个连接，池满时最多阻塞 acquire_timeout_secs，超时 -> 503
- 超过 lifetime_secs 的连接在归还时断开，下次借出重新建连
- 启动时预热 min_idle 个连接，连不上直接启动失败
"""

from __future__ import annotations

import logging
import time
from contextlib import ExitStack, contextmanager
from typing import Any, Callable, Iterator, Optional, Type
from urllib.parse import urlparse

import redis
from redis.exceptions import RedisError

from app.common import errors
from app.common.errors import AppError
from app.infra.config import RedisConf
from app.infra.db_errors import FailureKind, Store, condition_for_kind, translate_exception

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

REDIS_SCHEMES = ("redis", "rediss", "unix")


class LifetimeBlockingConnectionPool(redis.BlockingConnectionPool):
    """归还时检查连接年龄，超过 max_lifetime 就断开"""

    def __init__(self, max_lifetime: float = 0, clock: Clock = time.monotonic, **kwargs: Any) -> None:
        self.max_lifetime = max_lifetime
        self._clock = clock
        super().__init__(**kwargs)

    def get_connection(self, *args: Any, **kwargs: Any):  # noqa: ANN201
        connection = super().get_connection(*args, **kwargs)
        if getattr(connection, "born_at", None) is None:
            connection.born_at = self._clock()
        return connection

    def release(self, connection) -> None:  # noqa: ANN001
        born_at = getattr(connection, "born_at", None)
        if self.max_lifetime > 0 and born_at is not None and self._clock() - born_at > self.max_lifetime:
            connection.disconnect()
            connection.born_at = None
        super().release(connection)

    def in_use(self) -> int:
        idle = sum(1 for c in list(self.pool.queue) if c is not None)
        return len(self._connections) - idle


def _config_error(field: str) -> AppError:
    logger.error("invalid redis config: %s", field)
    return AppError(errors.CACHE_CONFIGURATION, detail=field)


def validate_redis_conf(conf: RedisConf) -> str:
    if conf.max_size < 1:
        raise _config_error("max_size must be >= 1")
    if conf.min_idle < 0:
        raise _config_error("min_idle must be >= 0")
    if conf.min_idle > conf.max_size:
        raise _config_error("min_idle must be <= max_size")
    for field in ("lifetime_secs", "acquire_timeout_secs"):
        if getattr(conf, field) < 0:
            raise _config_error(f"{field} must be >= 0")

    url = conf.url.get_secret_value().strip()
    if not url:
        raise _config_error("url is empty")
    try:
        parsed = urlparse(url)
    except ValueError:
        raise _config_error("url is malformed") from None
    if parsed.scheme not in REDIS_SCHEMES:
        raise _config_error("url scheme must be redis://, rediss:// or unix://")
    if parsed.scheme != "unix" and not parsed.hostname:
        raise _config_error("url has no host")
    return url


class CachePool:
    def __init__(self, pool: LifetimeBlockingConnectionPool, conf: RedisConf, clock: Clock = time.monotonic) -> None:
        self.pool = pool
        self.max_size = conf.max_size
        self.acquire_timeout = conf.acquire_timeout_secs
        self._clock = clock
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def checked_out(self) -> int:
        return self.pool.in_use()

    def _acquire(self) -> redis.Redis:
        if self._closed:
            raise AppError(condition_for_kind(Store.CACHE, FailureKind.POOL_CLOSED))

        start = self._clock()
        try:
            # single_connection_client: 构造时从池里借一个连接，close() 时归还
            return redis.Redis(connection_pool=self.pool, single_connection_client=True)
        except (RedisError, OSError) as e:
            logger.warning(
                "redis acquire failed after %.3fs (timeout=%ss)",
                self._clock() - start,
                self.acquire_timeout,
            )
            raise translate_exception(e, Store.CACHE) from e

    @contextmanager
    def checkout(self) -> Iterator[redis.Redis]:
        client = self._acquire()
        try:
            yield client
        except AppError:
            raise
        except RedisError as e:
            raise translate_exception(e, Store.CACHE) from e
        finally:
            client.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.pool.disconnect()
        logger.info("redis connection pool closed")


def build_cache_pool(
    conf: RedisConf,
    *,
    connection_class: Optional[Type[redis.Connection]] = None,
    clock: Clock = time.monotonic,
) -> CachePool:
    """按配置构建 redis 连接池；不重试，失败即抛 AppError(CACHE_CONFIGURATION)"""
    url = validate_redis_conf(conf)

    kwargs: dict = {}
    if connection_class is not None:
        kwargs["connection_class"] = connection_class

    pool: Optional[LifetimeBlockingConnectionPool] = None
    try:
        pool = LifetimeBlockingConnectionPool.from_url(
            url,
            max_connections=conf.max_size,
            timeout=conf.acquire_timeout_secs,
            max_lifetime=conf.lifetime_secs,
            clock=clock,
            **kwargs,
        )
        cache = CachePool(pool, conf, clock=clock)
        _warm_up(cache, conf.min_idle)
    except Exception as e:  # noqa: BLE001
        translate_exception(e, Store.CACHE)
        if pool is not None:
            pool.disconnect()
        raise AppError(errors.CACHE_CONFIGURATION, detail="redis pool build failed") from e

    logger.info("Init redis client success (max_size=%d, min_idle=%d)", conf.max_size, conf.min_idle)
    return cache


def _warm_up(cache: CachePool, min_idle: int) -> None:
    with ExitStack() as stack:
        for _ in range(min_idle):
            # 借出即建连
            stack.enter_context(cache.checkout())
