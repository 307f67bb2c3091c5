# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.deps import get_state, get_user_usecase
from app.application.user.usecase import UserUsecase
from app.common.response import ok
from app.domain import schemas
from app.infra.state import AppState


router = APIRouter(prefix="/user", tags=["user"])


@router.get("/random")
def random_user(
    state: AppState = Depends(get_state),
    uc: UserUsecase = Depends(get_user_usecase),
) -> JSONResponse:
    return ok(uc.random_user(state))


@router.get("/{user_id}")
def user_by_id(
    user_id: int,
    state: AppState = Depends(get_state),
    uc: UserUsecase = Depends(get_user_usecase),
) -> JSONResponse:
    return ok(uc.by_id(state, user_id))


@router.post("")
def create_user(
    req: schemas.UserCreateRequest,
    state: AppState = Depends(get_state),
    uc: UserUsecase = Depends(get_user_usecase),
) -> JSONResponse:
    return ok(uc.create(state, req))
