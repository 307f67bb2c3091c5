# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.common import errors
from app.common.errors import AppError, ErrorCondition
from app.common.response import wrap

logger = logging.getLogger(__name__)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.detail is not None:
        logger.info(
            "%s %s -> %s(%d) detail=%s",
            request.method,
            request.url.path,
            exc.condition.name,
            exc.code,
            exc.detail,
        )
    return wrap(exc)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # 校验细节只写日志
    logger.info("%s %s invalid request: %s", request.method, request.url.path, exc.errors())
    return wrap(errors.BAD_REQUEST)


def _condition_for_http_status(status_code: int) -> ErrorCondition:
    if status_code in (404, 405):
        return errors.NOT_IMPLEMENTED
    if status_code == 401:
        return errors.INVALID_USER_ID
    if status_code >= 500:
        return errors.INTERNAL
    return errors.BAD_REQUEST


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    cond = _condition_for_http_status(exc.status_code)
    logger.info("%s %s http %d -> %s", request.method, request.url.path, exc.status_code, cond.name)
    return wrap(cond)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:  # noqa: ARG001
    logger.exception("Unhandled error")
    return wrap(errors.INTERNAL)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
