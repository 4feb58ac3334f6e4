"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers, rate
limiter wiring) to improve testability compared to a monolithic main.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from quota_guard.adapters.counter_store import AbstractCounterStore, create_counter_store
from quota_guard.api.routes import admin_router, demo_router, health_router
from quota_guard.core.config import settings
from quota_guard.core.exception_handlers import setup_exception_handlers
from quota_guard.core.logging import configure_logging
from quota_guard.core.middleware import request_id_middleware
from quota_guard.core.openapi import apply_openapi_customizations
from quota_guard.services.limiter_service import build_limiter_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Verify the counter store on startup and release it on shutdown.

    A store that cannot be reached aborts startup, like a failed connection
    check would for any other required backend.
    """
    store: AbstractCounterStore = app.state.counter_store
    await store.ping()
    logger.info(
        "app.started",
        extra={
            "store_backend": settings.rate_limit.store_backend,
            "ip_rps": settings.rate_limit.ip_requests_per_second,
            "token_rps": settings.rate_limit.token_requests_per_second,
        },
    )
    try:
        yield
    finally:
        await store.close()
        logger.info("app.stopped")


def create_app(store: AbstractCounterStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        store: Counter store to use; built from settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Quota Guard",
        description=(
            "Per-identity request rate limiting in front of an HTTP service. "
            "Requests carrying an API token are limited per token, all others per "
            "client IP; clients exceeding their per-second quota are blocked for a "
            "cooldown period and receive HTTP 429."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # The store is built eagerly (connections are lazy) so the limiter is
    # available even when the lifespan is not run, e.g. under a bare TestClient.
    app.state.counter_store = store if store is not None else create_counter_store(settings)
    app.state.rate_limiter = build_limiter_service(app.state.counter_store)

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(demo_router)
    app.include_router(admin_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
