# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

"""MySQL 连接池

- 启动时按配置构建一次；任何构建失败都直接抛出，进程不启动
- checkout()/session() 借出的连接在 with 块结束时归还，正常返回、异常、取消都一样
- 借出失败已经是 AppError（超时/关闭 -> 503），不会把驱动异常抛给上层
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import Connection, Engine, URL, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import QueuePool

from app.common import errors
from app.common.errors import AppError
from app.common.logging import parse_level
from app.infra.config import MysqlConf
from app.infra.db_errors import FailureKind, Store, condition_for_kind, translate_exception, translating

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class Base(DeclarativeBase):
    """SQLAlchemy ORM 基类"""


def _config_error(field: str) -> AppError:
    # 只记录字段名，不记录取值
    logger.error("invalid mysql config: %s", field)
    return AppError(errors.DB_CONFIGURATION, detail=field)


def validate_mysql_conf(conf: MysqlConf) -> URL:
    if conf.max_connections < 1:
        raise _config_error("max_connections must be >= 1")
    for field in ("lifetime_sec", "idle_sec", "acquire_timeout_sec", "slow_threshold_mills"):
        if getattr(conf, field) < 0:
            raise _config_error(f"{field} must be >= 0")

    dsn = conf.dsn.get_secret_value().strip()
    if not dsn:
        raise _config_error("dsn is empty")
    try:
        url = make_url(dsn)
    except (sa_exc.ArgumentError, ValueError):
        raise _config_error("dsn is malformed") from None
    if not url.drivername:
        raise _config_error("dsn has no driver")
    return url


def _install_idle_eviction(engine: Engine, idle_sec: float, clock: Clock) -> None:
    """空闲超过 idle_sec 的连接在下一次借出时丢弃重连"""
    if idle_sec <= 0:
        return

    @event.listens_for(engine, "checkin")
    def _on_checkin(dbapi_connection, record) -> None:  # noqa: ANN001
        record.info["checked_in_at"] = clock()

    @event.listens_for(engine, "checkout")
    def _on_checkout(dbapi_connection, record, proxy) -> None:  # noqa: ANN001
        checked_in_at = record.info.pop("checked_in_at", None)
        if checked_in_at is not None and clock() - checked_in_at > idle_sec:
            raise sa_exc.DisconnectionError("connection idle timeout")


class RelationalPool:
    def __init__(self, engine: Engine, conf: MysqlConf, clock: Clock = time.monotonic) -> None:
        self.engine = engine
        self.max_connections = conf.max_connections
        self.acquire_timeout = conf.acquire_timeout_sec
        self._slow_threshold = conf.slow_threshold_mills / 1000.0
        self._slow_level = parse_level(conf.slow_level, logging.INFO)
        self._timeout_level = parse_level(conf.timeout_level, logging.WARNING)
        self._clock = clock
        self._closed = False
        self._sessions = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def checked_out(self) -> int:
        return self.engine.pool.checkedout()

    def _acquire(self) -> Connection:
        if self._closed:
            raise AppError(condition_for_kind(Store.RELATIONAL, FailureKind.POOL_CLOSED))

        start = self._clock()
        try:
            conn = self.engine.connect()
        except Exception as e:  # noqa: BLE001
            if isinstance(e, sa_exc.TimeoutError):
                logger.log(
                    self._timeout_level,
                    "mysql acquire timed out after %.3fs (timeout=%ss, %s)",
                    self._clock() - start,
                    self.acquire_timeout,
                    self.engine.pool.status(),
                )
            raise translate_exception(e, Store.RELATIONAL) from e

        elapsed = self._clock() - start
        if elapsed > self._slow_threshold:
            logger.log(
                self._slow_level,
                "slow mysql acquire: %.3fs > %.3fs",
                elapsed,
                self._slow_threshold,
            )
        return conn

    @contextmanager
    def checkout(self) -> Iterator[Connection]:
        conn = self._acquire()
        try:
            with translating(Store.RELATIONAL):
                yield conn
        finally:
            conn.close()

    @contextmanager
    def session(self) -> Iterator[Session]:
        conn = self._acquire()
        db = self._sessions(bind=conn)
        try:
            with translating(Store.RELATIONAL):
                yield db
        finally:
            db.close()
            conn.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.engine.dispose()
        logger.info("MySQL connection pool closed")


def build_relational_pool(
    conf: MysqlConf,
    *,
    verify: bool = True,
    clock: Clock = time.monotonic,
) -> RelationalPool:
    """按配置构建连接池；不重试，失败即抛 AppError(DB_CONFIGURATION)"""
    url = validate_mysql_conf(conf)
    logger.info("Initializing MySQL connection pool with config: %r", conf)

    connect_args = {}
    if url.get_backend_name() == "mysql":
        connect_args["connect_timeout"] = max(1, int(conf.acquire_timeout_sec))

    engine: Optional[Engine] = None
    try:
        engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=conf.max_connections,
            max_overflow=0,
            pool_timeout=conf.acquire_timeout_sec,
            pool_recycle=conf.lifetime_sec if conf.lifetime_sec > 0 else -1,
            pool_pre_ping=True,
            connect_args=connect_args,
            future=True,
            echo=False,
        )
        _install_idle_eviction(engine, conf.idle_sec, clock)

        if verify:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
    except Exception as e:  # noqa: BLE001
        translate_exception(e, Store.RELATIONAL)
        if engine is not None:
            engine.dispose()
        raise AppError(errors.DB_CONFIGURATION, detail="mysql pool build failed") from e

    logger.info("MySQL connection pool initialized successfully")
    return RelationalPool(engine, conf, clock=clock)
