from __future__ import annotations

"""Application factory for the FastAPI app."""

from fastapi import FastAPI

from traffic_limiter.api.routes import health_router, traffic_router
from traffic_limiter.core.config import settings
from traffic_limiter.core.exception_handlers import setup_exception_handlers
from traffic_limiter.core.logging import configure_logging
from traffic_limiter.core.middleware import request_id_middleware
from traffic_limiter.core.openapi import apply_openapi_customizations


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Traffic Limiter",
        description=(
            "Per-client traffic limiter: admits at most one post per client "
            "address per configured window, with an exemption list of trusted "
            "addresses and ranges. Clients are tracked by keyed digests only."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(traffic_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
