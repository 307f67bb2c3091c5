# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

from fastapi import Request

from app.application.user.usecase import UserUsecase
from app.infra.state import AppState

_user_uc_singleton = UserUsecase()


def get_state(request: Request) -> AppState:
    return request.app.state.app_state


def get_user_usecase() -> UserUsecase:
    return _user_uc_singleton
