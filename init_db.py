# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

import logging

from app.common.errors import AppError
from app.common.logging import setup_logging
from app.common.trace import trace_scope
from app.domain import models  # noqa: F401
from app.infra.config import get_settings
from app.infra.db import Base, RelationalPool, build_relational_pool
from app.infra.db_errors import DriverFailure, FailureKind, Store, translate

logger = logging.getLogger(__name__)


def init_db(pool: RelationalPool) -> None:
    """按 ORM 元数据建表；失败按迁移失败处理"""
    logger.info("Creating tables...")
    try:
        Base.metadata.create_all(bind=pool.engine)
    except Exception as e:  # noqa: BLE001
        failure = DriverFailure(
            store=Store.RELATIONAL,
            kind=FailureKind.MIGRATION,
            detail=f"{type(e).__name__}: {e}",
        )
        raise AppError(translate(failure), detail=failure.detail) from e
    logger.info("Done.")


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log.level)
    with trace_scope("init-db"):
        pool = build_relational_pool(settings.mysql)
        try:
            init_db(pool)
        finally:
            pool.close()


if __name__ == "__main__":
    main()
