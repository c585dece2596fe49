from __future__ import annotations

from fastapi import APIRouter

from traffic_limiter.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe; also reports whether limiting is active."""

    return {
        "status": "ok",
        "limiting": "enabled" if settings.traffic.limit >= 1 else "disabled",
    }
