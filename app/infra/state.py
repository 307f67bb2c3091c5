# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import redis

from app.infra.cache import CachePool
from app.infra.config import WeChatConf
from app.infra.db import RelationalPool
from app.infra.pools import PoolManager


class AppState:
    """请求上下文共享的状态：连接池是共享引用，不会被复制"""

    def __init__(self, pools: PoolManager, wechat: WeChatConf) -> None:
        self._pools = pools
        self.wechat = wechat

    @property
    def pools(self) -> PoolManager:
        return self._pools

    def get_conn(self) -> RelationalPool:
        """池在启动时已经建好，这里不会失败"""
        return self._pools.relational

    @contextmanager
    def get_redis_client(self) -> Iterator[redis.Redis]:
        """借一个 redis 连接；失败只会抛 AppError（超时/关闭 -> 503，其余 -> 500）"""
        cache: CachePool = self._pools.cache
        with cache.checkout() as client:
            yield client
