"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers and
store lifecycle) so tests can build isolated instances.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from coordination.api.routes import health_router, locking_router, rate_limiting_router
from coordination.core.config import settings
from coordination.core.exception_handlers import setup_exception_handlers
from coordination.core.logging import configure_logging
from coordination.core.middleware import request_id_middleware
from coordination.core.openapi import apply_openapi_customizations
from coordination.core.store import close_shared_store


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    try:
        yield
    finally:
        await close_shared_store()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Redis Coordination API",
        description=(
            "Distributed locking and sliding-window rate limiting shared by "
            "every API process through Redis."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(locking_router)
    app.include_router(rate_limiting_router)
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
