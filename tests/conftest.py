"""Shared fixtures: SQLite-backed relational pool, socket-free redis pool."""

from __future__ import annotations

import pytest
from pydantic import SecretStr

from app.infra.cache import build_cache_pool
from app.infra.config import MysqlConf, WeChatConf
from app.infra.db import build_relational_pool

from tests.fakes import FakeRedisConnection, make_mysql_conf, make_redis_conf


@pytest.fixture
def mysql_conf(tmp_path) -> MysqlConf:
    return make_mysql_conf(tmp_path)


@pytest.fixture
def relational_pool(mysql_conf):
    pool = build_relational_pool(mysql_conf)
    yield pool
    pool.close()


@pytest.fixture
def cache_pool():
    pool = build_cache_pool(make_redis_conf(), connection_class=FakeRedisConnection)
    yield pool
    pool.close()


@pytest.fixture
def wechat_conf() -> WeChatConf:
    return WeChatConf(appid="wx-test", secret=SecretStr("wx-secret"))
