"""
Gestionnaires d'exceptions utilisés par la factory.
- HTTPException: corps JSON {"detail": ...}, en-têtes conservés (WWW-Authenticate, Retry-After).
- Erreur non gérée: journalisée avec la trace, corps générique (pas de fuite de message interne).
"""
import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def json_http_errors(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_errors(request: Request, exc: Exception):
        logger.exception("Unhandled error %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
