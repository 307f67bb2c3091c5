# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

import json
import logging
import random
import string
from typing import Optional

from sqlalchemy import select

from app.domain import models, schemas
from app.infra.state import AppState

logger = logging.getLogger(__name__)

USER_CACHE_TTL_SECONDS = 300


def _user_cache_key(user_id: int) -> str:
    return f"user_{user_id}"


class UserUsecase:
    def by_id(self, state: AppState, user_id: int) -> schemas.UserInfoOut:
        """先查缓存，未命中再查库；查不到行 -> 404"""
        with state.get_redis_client() as cache:
            cached = cache.get(_user_cache_key(user_id))
            if cached is not None:
                return schemas.UserInfoOut.model_validate(json.loads(cached))

            with state.get_conn().session() as db:
                user = db.execute(
                    select(models.UserInfo).where(
                        models.UserInfo.id == user_id,
                        models.UserInfo.deleted_at == 0,
                    )
                ).scalar_one()
                out = schemas.UserInfoOut.model_validate(user)

            cache.setex(_user_cache_key(user_id), USER_CACHE_TTL_SECONDS, out.model_dump_json())

        logger.info("by id %s user %s", user_id, out.id)
        return out

    def create(self, state: AppState, req: schemas.UserCreateRequest) -> schemas.UserInfoOut:
        """手机号唯一，重复插入 -> 409"""
        user = models.UserInfo(
            nick_name=req.nick_name,
            phone=req.phone,
            age=req.age,
            avatar=req.avatar,
            signature=req.signature,
        )
        with state.get_conn().session() as db:
            db.add(user)
            db.commit()
            db.refresh(user)
            out = schemas.UserInfoOut.model_validate(user)

        logger.info("create user id=%s", out.id)
        return out

    def random_user(self, state: AppState, rng: Optional[random.Random] = None) -> schemas.UserInfoOut:
        rng = rng or random.Random()
        req = schemas.UserCreateRequest(
            nick_name="user_" + "".join(rng.choices(string.ascii_lowercase + string.digits, k=8)),
            phone="1" + "".join(rng.choices(string.digits, k=10)),
            age=rng.randint(1, 100),
        )
        logger.info("create random user %s", req.nick_name)
        return self.create(state, req)
