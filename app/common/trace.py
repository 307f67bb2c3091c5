# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

"""请求 id

- 每个请求一个 id，存放在 ContextVar 里，日志 filter 从这里取
- 外部传入的 id 只接受短的 [A-Za-z0-9._-]，否则重新生成，避免把任意内容写进日志
"""

from __future__ import annotations

import re
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

_PLACEHOLDER = "-"
_VALID_TRACE_ID = re.compile(r"[A-Za-z0-9._-]{1,64}")

_trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default=_PLACEHOLDER)


def new_trace_id() -> str:
    return uuid.uuid4().hex


def accept_trace_id(incoming: Optional[str]) -> str:
    """复用上游传入的 id；缺失或不合法时生成新的"""
    if incoming and _VALID_TRACE_ID.fullmatch(incoming):
        return incoming
    return new_trace_id()


def get_trace_id() -> str:
    return _trace_id_ctx.get() or _PLACEHOLDER


@contextmanager
def trace_scope(trace_id: str) -> Iterator[str]:
    token = _trace_id_ctx.set(trace_id or _PLACEHOLDER)
    try:
        yield trace_id
    finally:
        _trace_id_ctx.reset(token)
