"""
Lancement local de l'API FreshLeap: `python -m freshleap` ou la commande `freshleap`.

Variables lues: HOST (0.0.0.0), PORT (8000), UVICORN_RELOAD ("1"/"true"/"yes"),
LOG_LEVEL (info), WEB_CONCURRENCY (workers, ignoré si reload).
"""
import os

import uvicorn


def _truthy(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1", "true", "yes")


def main() -> None:
    reload_flag = _truthy("UVICORN_RELOAD")
    uvicorn.run(
        "freshleap.asgi:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 8000)),
        reload=reload_flag,
        workers=None if reload_flag else int(os.environ.get("WEB_CONCURRENCY", 1)),
        log_level=os.environ.get("LOG_LEVEL", "info"),
        # Derrière Render/Nginx: X-Forwarded-* déjà traité par ProxyHeadersMiddleware
        proxy_headers=False,
    )


if __name__ == "__main__":
    main()
