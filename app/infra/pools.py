# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.infra.cache import CachePool, build_cache_pool
from app.infra.config import Settings
from app.infra.db import RelationalPool, build_relational_pool

logger = logging.getLogger(__name__)


@dataclass
class PoolManager:
    """持有两个连接池；进程内只构建一次，关闭只在进程退出时发生"""

    relational: RelationalPool
    cache: CachePool

    @classmethod
    def from_settings(cls, settings: Settings) -> "PoolManager":
        relational = build_relational_pool(settings.mysql)
        try:
            cache = build_cache_pool(settings.redis)
        except Exception:
            relational.close()
            raise
        return cls(relational=relational, cache=cache)

    def close(self) -> None:
        self.cache.close()
        self.relational.close()
        logger.info("all pools closed")
