"""
ASGI entrypoint: expose `app` for process managers / deployments.

- En production, un process manager (ex: gunicorn + uvicorn workers) importe `freshleap.asgi:app`.
- Toute la configuration (routes, middlewares, sécurité) est centralisée dans freshleap.app_setup;
  ce fichier ne fait qu'exposer l'instance `app`.
"""

from freshleap.app import app

__all__ = ["app"]
