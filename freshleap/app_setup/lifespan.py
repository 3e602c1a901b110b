"""
Démarrage/arrêt de l'application.

Au démarrage: création des tables (DB_AUTO_CREATE) puis branchement de
fastapi-limiter sur Redis. L'état effectif est publié dans
app.state.rate_limit_enabled et exposé par /health/rate-limit.

Variables:
  DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1  aucun Redis, limitation coupée
  USE_FAKE_REDIS_FOR_TESTS=1                fakeredis au lieu d'un vrai serveur
  LOCAL_RATE_LIMIT_FALLBACK=1               compteur mémoire si Redis est injoignable
  RATE_LIMIT_REDIS_URL                      redis://127.0.0.1:6379/0 par défaut
"""
import logging
import os
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter

from freshleap.config import DB_AUTO_CREATE
from freshleap.infra.database import init_db

logger = logging.getLogger("uvicorn.error")

DEFAULT_REDIS_URL = "redis://127.0.0.1:6379/0"


def _flag(name: str) -> bool:
    return os.getenv(name) == "1"


def _redis_connection():
    if _flag("USE_FAKE_REDIS_FOR_TESTS"):
        from fakeredis.aioredis import FakeRedis  # extra [test]
        return FakeRedis(decode_responses=True)
    url = os.getenv("RATE_LIMIT_REDIS_URL", DEFAULT_REDIS_URL)
    return aioredis.from_url(url, encoding="utf-8", decode_responses=True)


async def _start_rate_limiter(app: FastAPI) -> None:
    try:
        await FastAPILimiter.init(_redis_connection())
    except Exception as e:
        fallback = _flag("LOCAL_RATE_LIMIT_FALLBACK")
        app.state.rate_limit_enabled = fallback
        logger.warning(
            "rate_limit.init failed error=%s fallback=%s",
            e, "memory" if fallback else "none",
        )
        return
    app.state.rate_limit_enabled = True
    logger.info("rate_limit.init ok backend=redis")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if DB_AUTO_CREATE:
        init_db()
        logger.info("database.init tables ensured")

    if _flag("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS"):
        app.state.rate_limit_enabled = False
        logger.info("rate_limit.init skipped (DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS)")
    else:
        await _start_rate_limiter(app)

    yield

    if app.state.rate_limit_enabled and getattr(FastAPILimiter, "redis", None) is not None:
        await FastAPILimiter.close()
