from fastapi import FastAPI

from freshleap.config import COOKIE_SECURE, SUPABASE_URL

# Swagger UI (/docs) charge ses assets depuis ces CDN
DOCS_CDNS = ("https://cdn.jsdelivr.net", "https://unpkg.com")
STRIPE_JS = "https://js.stripe.com"


def build_csp() -> str:
    connect = ["'self'", "https://api.stripe.com", *DOCS_CDNS]
    if SUPABASE_URL:
        connect.append(SUPABASE_URL.rstrip("/"))
    cdns = " ".join(DOCS_CDNS)
    directives = [
        "default-src 'self'",
        "base-uri 'self'",
        "object-src 'none'",
        "frame-ancestors 'none'",
        "img-src 'self' data: https://fastapi.tiangolo.com",
        f"style-src 'self' 'unsafe-inline' {cdns}",
        f"script-src 'self' 'unsafe-inline' {STRIPE_JS} {cdns}",
        f"frame-src {STRIPE_JS} https://checkout.stripe.com",
        f"connect-src {' '.join(connect)}",
    ]
    return "; ".join(directives)


STATIC_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}


def register_security_middleware(app: FastAPI) -> None:
    csp = build_csp()

    @app.middleware("http")
    async def security_headers(request, call_next):
        response = await call_next(request)
        for name, value in STATIC_HEADERS.items():
            response.headers.setdefault(name, value)
        if COOKIE_SECURE:
            response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains")
        response.headers["Content-Security-Policy"] = csp
        return response
