"""
Protection CSRF par double soumission (cookie csrf_token + header X-CSRF-Token).

Seules les requêtes mutatives d'un navigateur connecté (cookie fl_access) sont
contrôlées. Les clients Bearer, le webhook Stripe et les formulaires de
connexion/inscription passent sans header.
"""
import logging
import secrets

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from freshleap.config import COOKIE_SECURE
from freshleap.utils.security import COOKIE_NAME

logger = logging.getLogger(__name__)

CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_COOKIE_MAX_AGE = 3600
UNSAFE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
CSRF_EXEMPT_PATHS = frozenset({
    "/api/v1/checkout/webhook",
    "/api/v1/auth/login",
    "/api/v1/auth/signup",
})


def _normalize(path: str) -> str:
    return path.rstrip("/") or "/"


def is_csrf_exempt(path: str) -> bool:
    return _normalize(path) in {_normalize(p) for p in CSRF_EXEMPT_PATHS}


def get_or_create_csrf_token(request: Request) -> str:
    return request.cookies.get(CSRF_COOKIE_NAME) or secrets.token_urlsafe(32)


def _needs_check(request: Request) -> bool:
    if request.method.upper() not in UNSAFE_METHODS:
        return False
    if not request.cookies.get(COOKIE_NAME):
        return False
    return not is_csrf_exempt(request.url.path)


def _tokens_match(request: Request) -> bool:
    sent = request.headers.get(CSRF_HEADER_NAME) or ""
    expected = request.cookies.get(CSRF_COOKIE_NAME) or ""
    return bool(sent and expected) and secrets.compare_digest(sent, expected)


def register_csrf_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def csrf_protection(request: Request, call_next):
        if _needs_check(request) and not _tokens_match(request):
            logger.info("csrf.rejected method=%s path=%s", request.method, request.url.path)
            return JSONResponse(status_code=403, content={"detail": "CSRF verification failed"})

        response: Response = await call_next(request)
        if CSRF_COOKIE_NAME not in request.cookies:
            # Cookie lisible par le front, renvoyé ensuite dans X-CSRF-Token
            response.set_cookie(
                CSRF_COOKIE_NAME,
                get_or_create_csrf_token(request),
                max_age=CSRF_COOKIE_MAX_AGE,
                path="/",
                secure=COOKIE_SECURE,
                httponly=False,
                samesite="lax",
            )
        return response
