# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

"""驱动错误 -> 错误码表

两步：
1. classify_db_error / classify_cache_error：把 SQLAlchemy(PyMySQL) / redis-py 的异常
   归一成封闭的 DriverFailure 形状
2. translate：纯查表，把 DriverFailure 映射到 ErrorCondition

原始异常信息只在这里写日志，不会越过这一层；上层只能看到 AppError / ErrorCondition
"""

from __future__ import annotations

import enum
import logging
import ssl
from concurrent.futures import BrokenExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from typing import FrozenSet, Iterator, Mapping, Optional, Tuple

import redis.exceptions as redis_exc
from sqlalchemy import exc as sa_exc

from app.common import errors
from app.common.errors import AppError, ErrorCondition

logger = logging.getLogger(__name__)


class Store(str, enum.Enum):
    RELATIONAL = "relational"
    CACHE = "cache"


class FailureKind(str, enum.Enum):
    CONFIGURATION = "configuration"
    INVALID_ARGUMENT = "invalid_argument"
    ENGINE = "engine"
    IO = "io"
    TLS = "tls"
    PROTOCOL = "protocol"
    ROW_NOT_FOUND = "row_not_found"
    TYPE_NOT_FOUND = "type_not_found"
    COLUMN_NOT_FOUND = "column_not_found"
    COLUMN_INDEX_OUT_OF_BOUNDS = "column_index_out_of_bounds"
    COLUMN_DECODE = "column_decode"
    ENCODE = "encode"
    DECODE = "decode"
    DRIVER = "driver"
    POOL_TIMED_OUT = "pool_timed_out"
    POOL_CLOSED = "pool_closed"
    WORKER_CRASHED = "worker_crashed"
    MIGRATION = "migration"
    BEGIN_FAILED = "begin_failed"
    INVALID_SAVEPOINT = "invalid_savepoint"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class DriverFailure:
    store: Store
    kind: FailureKind
    vendor_code: Optional[str] = None
    detail: str = ""


# ---------- tables ----------

# 按顺序匹配，先命中先返回
VENDOR_CODE_TABLE: Tuple[Tuple[FrozenSet[str], ErrorCondition], ...] = (
    (frozenset({"23000", "23505"}), errors.DB_DATA_CONFLICT),
    (frozenset({"22001"}), errors.DB_DATA_LENGTH_EXCEEDED),
    (frozenset({"22003"}), errors.DB_NUMERIC_RANGE),
    (frozenset({"23502"}), errors.DB_REQUIRED_FIELD),
    (frozenset({"23503"}), errors.DB_FOREIGN_KEY_CONSTRAINT),
    (frozenset({"42S02"}), errors.DB_TABLE_NOT_FOUND),
)

RELATIONAL_KIND_TABLE: Mapping[FailureKind, ErrorCondition] = {
    FailureKind.CONFIGURATION: errors.DB_CONFIGURATION,
    FailureKind.INVALID_ARGUMENT: errors.DB_INVALID_ARGUMENT,
    FailureKind.IO: errors.DB_IO,
    FailureKind.TLS: errors.DB_TLS,
    FailureKind.PROTOCOL: errors.DB_PROTOCOL,
    FailureKind.ROW_NOT_FOUND: errors.DB_ROW_NOT_FOUND,
    FailureKind.TYPE_NOT_FOUND: errors.DB_TYPE_NOT_FOUND,
    FailureKind.COLUMN_NOT_FOUND: errors.DB_COLUMN_NOT_FOUND,
    FailureKind.COLUMN_INDEX_OUT_OF_BOUNDS: errors.DB_COLUMN_INDEX_OUT_OF_BOUNDS,
    FailureKind.COLUMN_DECODE: errors.DB_COLUMN_DECODE,
    FailureKind.ENCODE: errors.DB_ENCODE,
    FailureKind.DECODE: errors.DB_DECODE,
    FailureKind.DRIVER: errors.DB_DRIVER,
    FailureKind.POOL_TIMED_OUT: errors.DB_POOL_TIMEOUT,
    FailureKind.POOL_CLOSED: errors.DB_POOL_CLOSED,
    FailureKind.WORKER_CRASHED: errors.DB_WORKER_CRASHED,
    FailureKind.MIGRATION: errors.DB_MIGRATION,
    FailureKind.BEGIN_FAILED: errors.DB_BEGIN_FAILED,
    FailureKind.INVALID_SAVEPOINT: errors.DB_INVALID_SAVEPOINT,
    FailureKind.UNKNOWN: errors.DB_UNKNOWN_ERROR,
}

CACHE_KIND_TABLE: Mapping[FailureKind, ErrorCondition] = {
    FailureKind.CONFIGURATION: errors.CACHE_CONFIGURATION,
    FailureKind.POOL_TIMED_OUT: errors.CACHE_POOL_TIMEOUT,
    FailureKind.POOL_CLOSED: errors.CACHE_POOL_CLOSED,
}

# PyMySQL 不透出 SQLSTATE，按 MySQL errno 补一张对照表
MYSQL_ERRNO_SQLSTATE: Mapping[int, str] = {
    1022: "23000",  # ER_DUP_KEY
    1048: "23000",  # ER_BAD_NULL_ERROR
    1062: "23000",  # ER_DUP_ENTRY
    1169: "23000",  # ER_DUP_UNIQUE
    1216: "23000",  # ER_NO_REFERENCED_ROW
    1217: "23000",  # ER_ROW_IS_REFERENCED
    1451: "23000",  # ER_ROW_IS_REFERENCED_2
    1452: "23000",  # ER_NO_REFERENCED_ROW_2
    1586: "23000",  # ER_DUP_ENTRY_WITH_KEY_NAME
    1406: "22001",  # ER_DATA_TOO_LONG
    1264: "22003",  # ER_WARN_DATA_OUT_OF_RANGE
    1690: "22003",  # ER_DATA_OUT_OF_RANGE
    1146: "42S02",  # ER_NO_SUCH_TABLE
    1054: "42S22",  # ER_BAD_FIELD_ERROR
    1064: "42000",  # ER_PARSE_ERROR
    1366: "HY000",  # ER_TRUNCATED_WRONG_VALUE_FOR_FIELD
}

# 本地测试库 SQLite（3.11+ 的 sqlite_errorname）
SQLITE_ERRORNAME_SQLSTATE: Mapping[str, str] = {
    "SQLITE_CONSTRAINT_UNIQUE": "23000",
    "SQLITE_CONSTRAINT_PRIMARYKEY": "23000",
    "SQLITE_CONSTRAINT_NOTNULL": "23502",
    "SQLITE_CONSTRAINT_FOREIGNKEY": "23503",
    "SQLITE_TOOBIG": "22001",
    "SQLITE_CONSTRAINT": "23000",
}

MYSQL_IO_ERRNOS = frozenset({2002, 2003, 2005, 2006, 2013, 2055})
MYSQL_CONFIG_ERRNOS = frozenset({1044, 1045, 1049, 1698})
# ER_SP_DOES_NOT_EXIST：SAVEPOINT xxx does not exist
MYSQL_SAVEPOINT_ERRNOS = frozenset({1305})

REDIS_POOL_EXHAUSTED_MSG = "No connection available"


# ---------- translate ----------

def translate(failure: DriverFailure) -> ErrorCondition:
    """DriverFailure -> ErrorCondition，纯查表 + 一条服务端日志"""
    if failure.store is Store.CACHE:
        cond = CACHE_KIND_TABLE.get(failure.kind, errors.REDIS_CLIENT)
    elif failure.kind is FailureKind.ENGINE:
        cond = _engine_condition(failure.vendor_code)
    else:
        cond = RELATIONAL_KIND_TABLE.get(failure.kind, errors.DB_UNKNOWN_ERROR)

    logger.error(
        "%s store error: kind=%s vendor_code=%s detail=%s -> %s(%d)",
        failure.store.value,
        failure.kind.value,
        failure.vendor_code,
        failure.detail,
        cond.name,
        cond.code,
    )
    return cond


def _engine_condition(vendor_code: Optional[str]) -> ErrorCondition:
    if not vendor_code:
        return errors.DB_UNKNOWN
    for codes, cond in VENDOR_CODE_TABLE:
        if vendor_code in codes:
            return cond
    return errors.DB_GENERIC


def translate_exception(exc: BaseException, store: Store = Store.RELATIONAL) -> AppError:
    if isinstance(exc, AppError):
        return exc
    if store is Store.CACHE:
        failure = classify_cache_error(exc)
    else:
        failure = classify_db_error(exc)
    return AppError(translate(failure), detail=failure.detail)


# 只有这些属于驱动/网络异常；业务代码自己的异常原样抛给全局 handler
DRIVER_EXCEPTIONS: Tuple[type, ...] = (sa_exc.SQLAlchemyError, redis_exc.RedisError, OSError)


@contextmanager
def translating(store: Store = Store.RELATIONAL) -> Iterator[None]:
    """仓储层包在驱动调用外面：驱动异常在这里被翻译一次，之后只剩 AppError"""
    try:
        yield
    except DRIVER_EXCEPTIONS as e:
        raise translate_exception(e, store) from e


# ---------- classify: relational ----------

def classify_db_error(exc: BaseException) -> DriverFailure:
    kind, vendor_code = _classify_db(exc)
    return DriverFailure(
        store=Store.RELATIONAL,
        kind=kind,
        vendor_code=vendor_code,
        detail=_detail(exc),
    )


def _classify_db(exc: BaseException) -> Tuple[FailureKind, Optional[str]]:
    if isinstance(exc, sa_exc.TimeoutError):
        return FailureKind.POOL_TIMED_OUT, None
    if isinstance(exc, sa_exc.NoResultFound):
        return FailureKind.ROW_NOT_FOUND, None
    if isinstance(exc, sa_exc.NoSuchColumnError):
        return FailureKind.COLUMN_NOT_FOUND, None
    if isinstance(exc, sa_exc.NoReferenceError):
        return FailureKind.TYPE_NOT_FOUND, None
    if isinstance(exc, sa_exc.NoSuchModuleError):
        return FailureKind.CONFIGURATION, None
    if isinstance(exc, sa_exc.ArgumentError):
        return FailureKind.INVALID_ARGUMENT, None
    if isinstance(exc, sa_exc.PendingRollbackError):
        return FailureKind.BEGIN_FAILED, None
    if isinstance(exc, sa_exc.InvalidRequestError) and "savepoint" in str(exc).lower():
        return FailureKind.INVALID_SAVEPOINT, None
    if isinstance(exc, sa_exc.DBAPIError):
        return _classify_dbapi(exc)
    if isinstance(exc, sa_exc.StatementError):
        # 参数绑定阶段失败，语句还没有发到服务端
        return FailureKind.ENCODE, None
    if isinstance(exc, sa_exc.SQLAlchemyError):
        return FailureKind.DRIVER, None
    return _classify_builtin(exc), None


def _classify_dbapi(exc: sa_exc.DBAPIError) -> Tuple[FailureKind, Optional[str]]:
    orig = exc.orig
    errno = _mysql_errno(orig)

    if exc.connection_invalidated or errno in MYSQL_IO_ERRNOS:
        return FailureKind.IO, None
    if errno in MYSQL_CONFIG_ERRNOS:
        return FailureKind.CONFIGURATION, None
    if _is_missing_savepoint(orig, errno):
        return FailureKind.INVALID_SAVEPOINT, None
    if isinstance(exc, sa_exc.InterfaceError):
        return FailureKind.PROTOCOL, None
    if isinstance(orig, ssl.SSLError):
        return FailureKind.TLS, None
    if isinstance(orig, UnicodeDecodeError):
        return FailureKind.COLUMN_DECODE, None
    if isinstance(orig, (OSError, ConnectionError)):
        return FailureKind.IO, None
    return FailureKind.ENGINE, _vendor_code(orig, errno)


def _is_missing_savepoint(orig: object, errno: Optional[int]) -> bool:
    # MySQL 的 1305 也用于存储过程不存在，要同时看消息
    message = str(orig).lower()
    if "savepoint" not in message:
        return False
    return errno in MYSQL_SAVEPOINT_ERRNOS or "no such savepoint" in message


def _mysql_errno(orig: object) -> Optional[int]:
    args = getattr(orig, "args", None)
    if args and isinstance(args[0], int):
        return args[0]
    return None


def _vendor_code(orig: object, errno: Optional[int]) -> Optional[str]:
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)
    name = getattr(orig, "sqlite_errorname", None)
    if name in SQLITE_ERRORNAME_SQLSTATE:
        return SQLITE_ERRORNAME_SQLSTATE[name]
    if errno is None:
        return None
    return MYSQL_ERRNO_SQLSTATE.get(errno, str(errno))


def _classify_builtin(exc: BaseException) -> FailureKind:
    if isinstance(exc, ssl.SSLError):
        return FailureKind.TLS
    if isinstance(exc, (ConnectionError, TimeoutError, OSError)):
        return FailureKind.IO
    if isinstance(exc, UnicodeEncodeError):
        return FailureKind.ENCODE
    if isinstance(exc, UnicodeDecodeError):
        return FailureKind.DECODE
    if isinstance(exc, IndexError):
        return FailureKind.COLUMN_INDEX_OUT_OF_BOUNDS
    if isinstance(exc, BrokenExecutor):
        return FailureKind.WORKER_CRASHED
    return FailureKind.UNKNOWN


# ---------- classify: cache ----------

def classify_cache_error(exc: BaseException) -> DriverFailure:
    return DriverFailure(
        store=Store.CACHE,
        kind=_classify_cache(exc),
        vendor_code=_redis_error_prefix(exc),
        detail=_detail(exc),
    )


def _classify_cache(exc: BaseException) -> FailureKind:
    if isinstance(exc, redis_exc.AuthenticationError):
        return FailureKind.CONFIGURATION
    if isinstance(exc, redis_exc.ConnectionError):
        if REDIS_POOL_EXHAUSTED_MSG in str(exc):
            return FailureKind.POOL_TIMED_OUT
        return FailureKind.IO
    if isinstance(exc, redis_exc.TimeoutError):
        return FailureKind.IO
    if isinstance(exc, redis_exc.InvalidResponse):
        return FailureKind.PROTOCOL
    if isinstance(exc, redis_exc.DataError):
        return FailureKind.ENCODE
    if isinstance(exc, redis_exc.ResponseError):
        return FailureKind.ENGINE
    if isinstance(exc, ValueError):
        # redis.from_url 对非法 url 抛 ValueError
        return FailureKind.CONFIGURATION
    return _classify_builtin(exc)


def _redis_error_prefix(exc: BaseException) -> Optional[str]:
    if not isinstance(exc, redis_exc.ResponseError):
        return None
    head = str(exc).split(" ", 1)[0]
    return head if head.isupper() else None


def _detail(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


def condition_for_kind(store: Store, kind: FailureKind) -> ErrorCondition:
    """不经过异常、直接按形状翻译（例如池已关闭这类本层自己发现的失败）"""
    return translate(DriverFailure(store=store, kind=kind, detail=f"{store.value} {kind.value}"))


__all__ = [
    "Store",
    "FailureKind",
    "DriverFailure",
    "VENDOR_CODE_TABLE",
    "RELATIONAL_KIND_TABLE",
    "CACHE_KIND_TABLE",
    "MYSQL_ERRNO_SQLSTATE",
    "translate",
    "translate_exception",
    "translating",
    "DRIVER_EXCEPTIONS",
    "classify_db_error",
    "classify_cache_error",
    "condition_for_kind",
]
