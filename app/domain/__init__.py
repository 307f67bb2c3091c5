# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

"""
领域层：

- models: ORM 实体（UserInfo）
- schemas: Pydantic 请求/响应模型
"""
from . import models, schemas  # noqa: F401

__all__ = ["models", "schemas"]
