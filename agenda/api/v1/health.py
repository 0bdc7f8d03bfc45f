from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from agenda.config import settings
from agenda.core.calendar.changes import get_change_channel
from agenda.db.base import engine

router = APIRouter(tags=["Health"])
log = logging.getLogger(__name__)


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    out: dict[str, str] = {"environment": settings.ENVIRONMENT}

    # DB (in-memory store базу не трогает)
    if settings.EVENT_STORE == "sql":
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            out["db"] = "ok"
        except SQLAlchemyError as exc:
            log.exception("DB health check failed")
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="db error") from exc
    else:
        out["db"] = "memory"

    # Change channel
    try:
        ok = await get_change_channel().ping()
    except (RedisError, OSError) as exc:
        log.exception("Change channel health check failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="changes error") from exc
    if not ok:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="changes error")
    out["changes"] = settings.CHANGE_CHANNEL

    out["status"] = "ok"
    return out
