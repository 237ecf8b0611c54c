"""Application factory for the admission gate service.

Centralizes app construction (middleware, handlers, routers, limiter
registry) so tests can build isolated apps with their own registries.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from admission_gate.adapters.rate_limit.registry import LimiterRegistry
from admission_gate.api.routes import health_router, limits_router
from admission_gate.core.config import settings
from admission_gate.core.exception_handlers import setup_exception_handlers
from admission_gate.core.logging import configure_logging
from admission_gate.core.middleware import request_id_middleware
from admission_gate.core.rate_limit import EventSink, build_registry


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Registry lives exactly as long as the app; closing stops the reclaimers.
    try:
        yield
    finally:
        app.state.limiters.close()


def create_app(
    registry: LimiterRegistry | None = None,
    *,
    event_sink: EventSink | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        registry: Limiter registry to serve; built from settings when omitted.
        event_sink: Optional observer for rate-limit denials.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.

    Raises:
        ConfigurationError: If the configured policies are invalid.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Admission Gate",
        description=(
            "Per-identity sliding-window admission control. Guarded operations "
            "consume one slot per request; denied callers receive 429 with a "
            "Retry-After hint."
        ),
        version="0.1.0",
        lifespan=_lifespan,
    )
    app.state.limiters = registry if registry is not None else build_registry(settings.rate_limit)
    app.state.rate_limit_event_sink = event_sink

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(limits_router, prefix="/v1")
    app.include_router(health_router)

    return app
