"""
Name: FastAPI Application Entry Point

Responsibilities:
  - Build the FastAPI application (create_app) with metadata
  - Configure request-context middleware and RFC 7807 exception handlers
  - Mount the workflow router under the /v1 prefix
  - Open / close the PostgreSQL pool when not running on the in-memory store

Collaborators:
  - RequestContextMiddleware: request id, client origin, log context
  - interfaces.api.http.router: document / derivation / permission endpoints
  - infrastructure.db.pool: connection pool lifecycle

Notes:
  - Identity is upstream: an auth middleware (or a test) must populate
    request.state.actor with a domain Actor before the routers run
  - /healthz follows the Kubernetes health check convention
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger
from ..crosscutting.middleware import RequestContextMiddleware
from ..infrastructure.db.pool import close_pool, init_pool
from ..interfaces.api.http.router import router
from .exception_handlers import register_exception_handlers


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    uses_postgres = not settings.uses_in_memory_store()

    if uses_postgres:
        init_pool(
            database_url=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
        )

    logger.info(
        "Caseflow API starting up",
        extra={
            "app_env": settings.app_env,
            "store": "postgres" if uses_postgres else "in_memory",
            "db_pool_min": settings.db_pool_min_size,
            "db_pool_max": settings.db_pool_max_size,
        },
    )
    try:
        yield
    finally:
        if uses_postgres:
            close_pool()
        logger.info("Caseflow API shutting down")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Caseflow API",
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "documents", "description": "Document lifecycle"},
            {"name": "derivations", "description": "Routing between areas"},
            {"name": "permissions", "description": "Checks, rules and roles"},
        ],
    )
    app.add_middleware(RequestContextMiddleware)
    register_exception_handlers(app)
    app.include_router(router, prefix="/v1")

    @app.get("/healthz", include_in_schema=False)
    def healthz():
        return {"ok": True}

    return app


app = create_app()
