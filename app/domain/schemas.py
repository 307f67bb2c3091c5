# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class UserInfoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    nick_name: str
    avatar: str
    signature: str
    age: int
    phone: str
    created_at: int
    updated_at: int


class UserCreateRequest(BaseModel):
    nick_name: str = Field(..., min_length=1, max_length=64)
    phone: str = Field(..., pattern=r"^1\d{10}$")
    age: int = Field(0, ge=0, le=150)
    avatar: str = Field("", max_length=255)
    signature: str = Field("", max_length=255)
