from fastapi import FastAPI, Response


def register_routes(app: FastAPI) -> None:
    """Routes hors /api/v1: index de l'API et favicon vide."""

    @app.get("/", include_in_schema=False)
    def index():
        return {
            "name": app.title,
            "version": app.version,
            "docs": app.docs_url,
            "health": "/health",
        }

    @app.get("/favicon.ico", include_in_schema=False)
    def favicon():
        return Response(status_code=204)
