"""FastAPI application factory for the task REST API."""

from fastapi import APIRouter, FastAPI

from notetasks.api.task_routes import register_task_routes


def create_app(cache) -> FastAPI:
    """Build and return a FastAPI app wired to the given VaultCache."""
    app = FastAPI(title="notetasks", docs_url="/api/docs", openapi_url="/api/openapi.json")

    api = APIRouter(prefix="/api")
    register_task_routes(api, cache)
    app.include_router(api)

    return app
