# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from app.api import user as user_api
from app.common.exception_handlers import register_exception_handlers
from app.common.logging import setup_logging
from app.common.middlewares import TraceIdMiddleware
from app.common.response import ok
from app.infra.config import get_settings
from app.infra.pools import PoolManager
from app.infra.state import AppState

logger = logging.getLogger(__name__)

StateFactory = Callable[[], AppState]


def build_app_state() -> AppState:
    """启动时构建连接池；失败直接抛出，进程不接流量"""
    settings = get_settings()
    pools = PoolManager.from_settings(settings)
    return AppState(pools, settings.wechat)


def create_app(state_factory: Optional[StateFactory] = None) -> FastAPI:
    factory = state_factory or build_app_state

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state = factory()
        app.state.app_state = state
        logger.info("server started")
        try:
            yield
        finally:
            state.pools.close()
            logger.info("server stopped")

    app = FastAPI(
        title="best-backend",
        version="1.0.0",
        lifespan=lifespan,
    )

    # ---------- middlewares / handlers ----------

    app.add_middleware(TraceIdMiddleware)
    register_exception_handlers(app)

    @app.get("/health")
    def health_check() -> JSONResponse:
        logger.debug("health")
        return ok("ok")

    app.include_router(user_api.router)
    return app


setup_logging(get_settings().log.level)

app = create_app()


def run() -> None:
    http = get_settings().http
    logger.info("Starting HTTP server on http://%s", http.address())
    uvicorn.run(app, host=http.listen, port=http.port)


if __name__ == "__main__":
    run()
