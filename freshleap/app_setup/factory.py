"""
Construction de l'application FastAPI (utilisée par freshleap.asgi et les tests).
"""
from fastapi import FastAPI

from freshleap import __version__
from freshleap.config import COOKIE_SECURE
from freshleap.utils.csrf import register_csrf_middleware

from .exceptions import register_exception_handlers
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_force_https_middleware, register_no_cache_middleware
from .routers import register_routers
from .routes import register_routes
from .security import register_security_middleware


def create_app() -> FastAPI:
    app = FastAPI(title="FreshLeap API", version=__version__, lifespan=lifespan)

    # Ordre d'ajout inverse de l'ordre d'exécution
    register_basic_middlewares(app)
    register_csrf_middleware(app)
    register_security_middleware(app)
    register_no_cache_middleware(app)
    if COOKIE_SECURE:
        register_force_https_middleware(app)

    register_exception_handlers(app)
    register_routes(app)
    register_routers(app)
    return app
