# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

"""错误码表

- 进程启动时构建一次，之后只读（MappingProxyType），不提供运行时注册
- message 面向客户端，只能是固定文案；驱动原始信息只写日志
- 同一个 500 桶内的子码对外文案相同，仅用于日志关联
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


class StatusClass(str, enum.Enum):
    OK = "ok"
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SERVICE_UNAVAILABLE = "service_unavailable"
    INTERNAL = "internal"
    NOT_IMPLEMENTED = "not_implemented"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS: Dict[StatusClass, int] = {
    StatusClass.OK: 200,
    StatusClass.BAD_REQUEST: 400,
    StatusClass.UNAUTHORIZED: 401,
    StatusClass.NOT_FOUND: 404,
    StatusClass.CONFLICT: 409,
    StatusClass.SERVICE_UNAVAILABLE: 503,
    StatusClass.INTERNAL: 500,
    StatusClass.NOT_IMPLEMENTED: 501,
}


@dataclass(frozen=True)
class ErrorCondition:
    name: str
    code: int
    status: StatusClass
    message: str

    @property
    def http_status(self) -> int:
        return self.status.http_status


MSG_BAD_REQUEST = "Bad Request Params"
MSG_UNAUTHORIZED = "Unauthorized"
MSG_NOT_FOUND = "Record Not Found"
MSG_CONFLICT = "Resource Conflict"
MSG_UNAVAILABLE = "Service Unavailable"
MSG_INTERNAL = "Server Internal Error"
MSG_NOT_IMPLEMENTED = "Not Implemented"


_S = StatusClass

# (name, code, status, message)，code 一经分配不可复用
_TABLE = (
    ("SUCCESS", 10000, _S.OK, "success"),
    ("BAD_REQUEST", 14000, _S.BAD_REQUEST, MSG_BAD_REQUEST),
    ("INVALID_USER_ID", 20000, _S.UNAUTHORIZED, MSG_UNAUTHORIZED),
    ("NOT_IMPLEMENTED", 50000, _S.NOT_IMPLEMENTED, MSG_NOT_IMPLEMENTED),
    ("INTERNAL", 50001, _S.INTERNAL, MSG_INTERNAL),
    # cache
    ("REDIS_CLIENT", 50100, _S.INTERNAL, MSG_INTERNAL),
    ("CACHE_POOL_TIMEOUT", 50101, _S.SERVICE_UNAVAILABLE, MSG_UNAVAILABLE),
    ("CACHE_POOL_CLOSED", 50102, _S.SERVICE_UNAVAILABLE, MSG_UNAVAILABLE),
    ("CACHE_CONFIGURATION", 50103, _S.INTERNAL, MSG_INTERNAL),
    # relational
    ("DB_INVALID_ARGUMENT", 50200, _S.INTERNAL, MSG_INTERNAL),
    ("DB_CONFIGURATION", 50201, _S.INTERNAL, MSG_INTERNAL),
    ("DB_DATA_CONFLICT", 50202, _S.CONFLICT, MSG_CONFLICT),
    ("DB_DATA_LENGTH_EXCEEDED", 50203, _S.BAD_REQUEST, MSG_BAD_REQUEST),
    ("DB_NUMERIC_RANGE", 50204, _S.BAD_REQUEST, MSG_BAD_REQUEST),
    ("DB_REQUIRED_FIELD", 50205, _S.BAD_REQUEST, MSG_BAD_REQUEST),
    ("DB_FOREIGN_KEY_CONSTRAINT", 50206, _S.BAD_REQUEST, MSG_BAD_REQUEST),
    ("DB_TABLE_NOT_FOUND", 50207, _S.INTERNAL, MSG_INTERNAL),
    ("DB_GENERIC", 50208, _S.INTERNAL, MSG_INTERNAL),
    ("DB_UNKNOWN", 50209, _S.INTERNAL, MSG_INTERNAL),
    ("DB_IO", 50210, _S.INTERNAL, MSG_INTERNAL),
    ("DB_TLS", 50211, _S.INTERNAL, MSG_INTERNAL),
    ("DB_PROTOCOL", 50212, _S.INTERNAL, MSG_INTERNAL),
    ("DB_ROW_NOT_FOUND", 50213, _S.NOT_FOUND, MSG_NOT_FOUND),
    ("DB_TYPE_NOT_FOUND", 50214, _S.INTERNAL, MSG_INTERNAL),
    ("DB_COLUMN_INDEX_OUT_OF_BOUNDS", 50215, _S.INTERNAL, MSG_INTERNAL),
    ("DB_COLUMN_NOT_FOUND", 50216, _S.INTERNAL, MSG_INTERNAL),
    ("DB_COLUMN_DECODE", 50217, _S.INTERNAL, MSG_INTERNAL),
    ("DB_ENCODE", 50218, _S.INTERNAL, MSG_INTERNAL),
    ("DB_DECODE", 50219, _S.INTERNAL, MSG_INTERNAL),
    ("DB_DRIVER", 50220, _S.INTERNAL, MSG_INTERNAL),
    ("DB_POOL_TIMEOUT", 50221, _S.SERVICE_UNAVAILABLE, MSG_UNAVAILABLE),
    ("DB_POOL_CLOSED", 50222, _S.SERVICE_UNAVAILABLE, MSG_UNAVAILABLE),
    ("DB_WORKER_CRASHED", 50223, _S.INTERNAL, MSG_INTERNAL),
    ("DB_MIGRATION", 50224, _S.INTERNAL, MSG_INTERNAL),
    ("DB_INVALID_SAVEPOINT", 50225, _S.INTERNAL, MSG_INTERNAL),
    ("DB_BEGIN_FAILED", 50226, _S.INTERNAL, MSG_INTERNAL),
    ("DB_UNKNOWN_ERROR", 50227, _S.INTERNAL, MSG_INTERNAL),
    # business
    ("WECHAT_LOGIN", 50500, _S.INTERNAL, MSG_INTERNAL),
    ("UNMARSHAL_JSON", 50501, _S.INTERNAL, MSG_INTERNAL),
)


def _build(table) -> Mapping[str, ErrorCondition]:
    by_name: Dict[str, ErrorCondition] = {}
    seen_codes: Dict[int, str] = {}
    for name, code, status, message in table:
        if name in by_name:
            raise ValueError(f"duplicate error name: {name}")
        if code in seen_codes:
            raise ValueError(f"error code {code} used by both {seen_codes[code]} and {name}")
        seen_codes[code] = name
        by_name[name] = ErrorCondition(name=name, code=code, status=status, message=message)
    return MappingProxyType(by_name)


REGISTRY: Mapping[str, ErrorCondition] = _build(_TABLE)


def lookup(name: str) -> ErrorCondition:
    """按名称取错误定义；名称集合是封闭的，未知名称属于编程错误（KeyError）"""
    return REGISTRY[name]


def by_code(code: int) -> Optional[ErrorCondition]:
    for cond in REGISTRY.values():
        if cond.code == code:
            return cond
    return None


SUCCESS = lookup("SUCCESS")
BAD_REQUEST = lookup("BAD_REQUEST")
INVALID_USER_ID = lookup("INVALID_USER_ID")
NOT_IMPLEMENTED = lookup("NOT_IMPLEMENTED")
INTERNAL = lookup("INTERNAL")

REDIS_CLIENT = lookup("REDIS_CLIENT")
CACHE_POOL_TIMEOUT = lookup("CACHE_POOL_TIMEOUT")
CACHE_POOL_CLOSED = lookup("CACHE_POOL_CLOSED")
CACHE_CONFIGURATION = lookup("CACHE_CONFIGURATION")

DB_INVALID_ARGUMENT = lookup("DB_INVALID_ARGUMENT")
DB_CONFIGURATION = lookup("DB_CONFIGURATION")
DB_DATA_CONFLICT = lookup("DB_DATA_CONFLICT")
DB_DATA_LENGTH_EXCEEDED = lookup("DB_DATA_LENGTH_EXCEEDED")
DB_NUMERIC_RANGE = lookup("DB_NUMERIC_RANGE")
DB_REQUIRED_FIELD = lookup("DB_REQUIRED_FIELD")
DB_FOREIGN_KEY_CONSTRAINT = lookup("DB_FOREIGN_KEY_CONSTRAINT")
DB_TABLE_NOT_FOUND = lookup("DB_TABLE_NOT_FOUND")
DB_GENERIC = lookup("DB_GENERIC")
DB_UNKNOWN = lookup("DB_UNKNOWN")
DB_IO = lookup("DB_IO")
DB_TLS = lookup("DB_TLS")
DB_PROTOCOL = lookup("DB_PROTOCOL")
DB_ROW_NOT_FOUND = lookup("DB_ROW_NOT_FOUND")
DB_TYPE_NOT_FOUND = lookup("DB_TYPE_NOT_FOUND")
DB_COLUMN_INDEX_OUT_OF_BOUNDS = lookup("DB_COLUMN_INDEX_OUT_OF_BOUNDS")
DB_COLUMN_NOT_FOUND = lookup("DB_COLUMN_NOT_FOUND")
DB_COLUMN_DECODE = lookup("DB_COLUMN_DECODE")
DB_ENCODE = lookup("DB_ENCODE")
DB_DECODE = lookup("DB_DECODE")
DB_DRIVER = lookup("DB_DRIVER")
DB_POOL_TIMEOUT = lookup("DB_POOL_TIMEOUT")
DB_POOL_CLOSED = lookup("DB_POOL_CLOSED")
DB_WORKER_CRASHED = lookup("DB_WORKER_CRASHED")
DB_MIGRATION = lookup("DB_MIGRATION")
DB_INVALID_SAVEPOINT = lookup("DB_INVALID_SAVEPOINT")
DB_BEGIN_FAILED = lookup("DB_BEGIN_FAILED")
DB_UNKNOWN_ERROR = lookup("DB_UNKNOWN_ERROR")

WECHAT_LOGIN = lookup("WECHAT_LOGIN")
UNMARSHAL_JSON = lookup("UNMARSHAL_JSON")


class AppError(Exception):
    """异常统一：业务层只抛 AppError，由全局异常处理转为标准响应

    detail 只用于服务端日志，不会进入响应体
    """

    def __init__(self, condition: ErrorCondition, detail: Optional[Any] = None) -> None:
        super().__init__(condition.name)
        self.condition = condition
        self.detail = detail

    @property
    def code(self) -> int:
        return self.condition.code

    @property
    def message(self) -> str:
        return self.condition.message

    @property
    def status_code(self) -> int:
        return self.condition.http_status

    def __repr__(self) -> str:
        return f"AppError({self.condition.name}, code={self.condition.code})"
