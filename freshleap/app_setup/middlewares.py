"""
Middlewares transverses: session visiteur, CORS, hôtes, proxy, cache, HTTPS.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from starlette.middleware.sessions import SessionMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from freshleap.config import ALLOWED_HOSTS, CORS_ORIGINS, COOKIE_SECURE, SESSION_SECRET_KEY

SESSION_COOKIE = "fl_session"
# Réponses propres à un compte ou à un panier: jamais en cache
PRIVATE_PREFIXES = ("/api/v1/auth", "/api/v1/orders", "/api/v1/cart", "/api/v1/checkout")
NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}


def _trusted_hosts():
    if "*" in CORS_ORIGINS:
        return ["*"]
    return list(ALLOWED_HOSTS)


def register_basic_middlewares(app: FastAPI) -> None:
    """
    Le cookie signé fl_session porte le panier des visiteurs non connectés.
    ProxyHeadersMiddleware est ajouté en dernier: il s'exécute en premier
    et corrige client/scheme avant TrustedHost et le rate limiting.
    """
    app.add_middleware(
        SessionMiddleware,
        secret_key=SESSION_SECRET_KEY,
        session_cookie=SESSION_COOKIE,
        same_site="lax",
        https_only=COOKIE_SECURE,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=_trusted_hosts())
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])


def register_no_cache_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def no_store_private(request: Request, call_next):
        response = await call_next(request)
        if request.method == "GET" and request.url.path.startswith(PRIVATE_PREFIXES):
            response.headers.update(NO_STORE_HEADERS)
        return response


def register_force_https_middleware(app: FastAPI) -> None:
    """Production uniquement (COOKIE_SECURE): redirige 301 quand le proxy signale du HTTP."""
    @app.middleware("http")
    async def force_https(request: Request, call_next):
        if request.headers.get("x-forwarded-proto") != "http":
            return await call_next(request)
        return RedirectResponse(str(request.url.replace(scheme="https")), status_code=301)
