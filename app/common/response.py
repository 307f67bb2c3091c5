# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

"""统一响应包装

success: {"err_no": 10000, "err_msg": "success", "data": <payload>}
error:   {"err_no": <code>, "err_msg": <固定文案>}

data 仅在成功时出现；0 / 空结构等"假值"载荷也必须输出
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, model_validator

from app.common.errors import SUCCESS, AppError, ErrorCondition

SUCCESS_CODE: int = SUCCESS.code
SUCCESS_MSG: str = SUCCESS.message


class Envelope(BaseModel):
    err_no: int
    err_msg: str
    data: Optional[Any] = None

    @model_validator(mode="after")
    def _check_data_matches_code(self) -> "Envelope":
        has_data = "data" in self.model_fields_set
        if has_data and self.err_no != SUCCESS_CODE:
            raise ValueError("error envelope must not carry data")
        if not has_data and self.err_no == SUCCESS_CODE:
            raise ValueError("success envelope must carry data")
        return self

    @property
    def has_data(self) -> bool:
        return "data" in self.model_fields_set

    def to_wire(self) -> Dict[str, Any]:
        return jsonable_encoder(self.model_dump(exclude_unset=True))


def success(payload: Any) -> Envelope:
    return Envelope(err_no=SUCCESS_CODE, err_msg=SUCCESS_MSG, data=payload)


def failure(condition: ErrorCondition) -> Envelope:
    return Envelope(err_no=condition.code, err_msg=condition.message)


def wrap(result: Union[AppError, ErrorCondition, Any]) -> JSONResponse:
    """业务结果 -> (envelope, http status)，这里是唯一的出线格式转换点"""
    if isinstance(result, AppError):
        result = result.condition
    if isinstance(result, ErrorCondition):
        return JSONResponse(status_code=result.http_status, content=failure(result).to_wire())
    return JSONResponse(status_code=SUCCESS.http_status, content=success(result).to_wire())


def ok(payload: Any) -> JSONResponse:
    return wrap(payload)
