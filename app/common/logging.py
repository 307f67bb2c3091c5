# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

import logging
from typing import Union

from app.common.trace import get_trace_id

_LEVEL_NAMES = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

DRIVER_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


class TraceIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        setattr(record, "trace_id", get_trace_id())
        return True


def parse_level(name: str, default: int) -> int:
    """配置里的级别名 -> logging 级别；未知名称回落到 default 并告警"""
    level = _LEVEL_NAMES.get((name or "").strip().lower())
    if level is None:
        logging.getLogger(__name__).warning(
            "invalid log level %r, using %s", name, logging.getLevelName(default)
        )
        return default
    return level


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """初始化全局日志；trace 级别额外打开 SQLAlchemy 的语句 / 连接池日志"""

    trace = isinstance(level, str) and level.strip().lower() == "trace"
    if isinstance(level, str):
        level = parse_level(level, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    if not root.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "[%(asctime)s - %(levelname)s - trace=%(trace_id)s - %(name)s - %(message)s]",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        root.addHandler(handler)

    # 给现有 handler 全部加 filter
    for h in root.handlers:
        has_filter = any(isinstance(f, TraceIdFilter) for f in getattr(h, "filters", []))
        if not has_filter:
            h.addFilter(TraceIdFilter())

    for name in DRIVER_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO if trace else logging.WARNING)
