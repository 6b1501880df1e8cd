import logging

from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db import get_db
from ..infra.redis_client import get_redis

router = APIRouter()
logger = logging.getLogger("julienned.ready")


@router.get("/ready")
async def ready(db: Session = Depends(get_db)):
    redis_ok = False
    try:
        r = await get_redis()
        redis_ok = bool(await r.ping())
    except (RedisError, OSError) as e:
        logger.warning("Redis not ready: %s", e)

    db_ok = False
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError as e:
        logger.warning("Database not ready: %s", e)

    return {"ok": True, "redis_ok": redis_ok, "db_ok": db_ok}
