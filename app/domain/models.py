# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

import time
from typing import Optional

from sqlalchemy import BigInteger, Integer, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from app.infra.db import Base


def _ts() -> int:
    return int(time.time())


class UserInfo(Base):
    __tablename__ = "user_info"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    nick_name: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    avatar: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    signature: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    age: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)
    phone: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    wx_open_id: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True)

    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=_ts)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=_ts, onupdate=_ts)
    deleted_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
