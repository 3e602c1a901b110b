from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from freshleap.infra.database import engine, ping_db
from freshleap.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root():
    return {"ok": True}

@router.get("/database")
def health_database():
    ok = ping_db()
    return JSONResponse(
        status_code=200 if ok else 503,
        content={"ok": ok, "dialect": engine.dialect.name},
    )

@router.get("/rate-limit")
def health_rate_limit(request: Request):
    return rate_limit_health_info(request)
