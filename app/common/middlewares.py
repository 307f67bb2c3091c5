# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.common.trace import accept_trace_id, trace_scope

INCOMING_REQUEST_ID_HEADER = "X-Request-Id"
REQUEST_ID_HEADER = "Request-Id"


class TraceIdMiddleware(BaseHTTPMiddleware):
    """给每个请求绑定 id，写进日志，并通过 Request-Id 响应头回给客户端"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        trace_id = accept_trace_id(request.headers.get(INCOMING_REQUEST_ID_HEADER))
        with trace_scope(trace_id):
            response: Response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = trace_id
        return response
