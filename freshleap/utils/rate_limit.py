"""
Limitation de débit des routes sensibles (login, inscription, checkout, avis).

- Redis via fastapi-limiter quand le lifespan l'a initialisé (app.state.rate_limit_enabled)
- Fenêtre glissante en mémoire quand LOCAL_RATE_LIMIT_FALLBACK=1 (dev, tests)
- Sinon aucune limite: une panne Redis ne bloque jamais les achats
"""
import hashlib
import logging
import os
import time
from typing import Any, Dict, List
from urllib.parse import urlparse

from fastapi import HTTPException, Request, Response
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter

from freshleap.utils.security import bearer_token

logger = logging.getLogger(__name__)

LOCAL_STORE_ATTR = "_rl_store"


def _local_fallback_enabled() -> bool:
    return os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1"


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]


def rate_limit_key(request: Request) -> str:
    """
    Clé de comptage par appelant et par chemin:
    token Bearer ou cookie fl_access (hashés) pour un compte, IP sinon.
    """
    path = request.url.path
    token = bearer_token(request)
    if token:
        return f"user:{_digest(token)}:{path}"
    ip = request.client.host if request.client else "local"
    return f"ip:{ip}:{path}"


async def _identifier(request: Request) -> str:
    return rate_limit_key(request)


def _local_hit(request: Request, times: int, seconds: int) -> None:
    store: Dict[str, List[float]] = getattr(request.app.state, LOCAL_STORE_ATTR, None) or {}
    key = rate_limit_key(request)
    now = time.time()
    window = [t for t in store.get(key, []) if now - t < seconds]
    if len(window) >= times:
        logger.info("rate_limit.local blocked key=%s", key.split(":")[0])
        raise HTTPException(status_code=429, detail="Too Many Requests")
    window.append(now)
    store[key] = window
    setattr(request.app.state, LOCAL_STORE_ATTR, store)


def optional_rate_limit(times: int, seconds: int):
    """Dépendance FastAPI: `dependencies=[Depends(optional_rate_limit(5, 60))]`."""
    limiter = RateLimiter(times=times, seconds=seconds, identifier=_identifier)

    async def _dep(request: Request, response: Response):
        if _local_fallback_enabled():
            _local_hit(request, times, seconds)
            return
        if getattr(request.app.state, "rate_limit_enabled", None) is not True:
            return
        try:
            await limiter(request, response)
        except HTTPException:
            raise
        except Exception:
            logger.warning("rate_limit.redis unavailable path=%s", request.url.path)

    return _dep


def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    ready = getattr(FastAPILimiter, "redis", None) is not None
    if ready:
        backend = "redis"
    elif _local_fallback_enabled():
        backend = "memory"
    else:
        backend = None

    info: Dict[str, Any] = {
        "enabled": None if enabled is None else bool(enabled),
        "ready": ready,
        "backend": backend,
    }
    redis_url = os.getenv("RATE_LIMIT_REDIS_URL")
    if backend == "redis" and redis_url:
        parsed = urlparse(redis_url)
        info["redis"] = {"scheme": parsed.scheme, "host": parsed.hostname, "port": parsed.port}
    return info
