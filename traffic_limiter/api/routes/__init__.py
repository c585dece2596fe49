from __future__ import annotations

from traffic_limiter.api.routes.health import router as health_router
from traffic_limiter.api.routes.traffic import router as traffic_router

__all__ = ["health_router", "traffic_router"]
