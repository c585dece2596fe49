"""Traffic limiting dependency for FastAPI routes.

This module wires the limiter into the HTTP layer:
- the rate table store and salt provider are process-wide and rebuilt only
  when their settings change (primarily in tests);
- each request gets its own ``TrafficLimiter`` bound to a CGI-style view of
  the request (``REMOTE_ADDR`` plus ``HTTP_*`` headers);
- a denied request becomes HTTP 429; storage failures propagate as
  ``StorageAppError`` and are rendered by the global handler.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request, status

from traffic_limiter.adapters.rate_table import AbstractRateTableStore, build_rate_table_store
from traffic_limiter.adapters.salt import AbstractSaltProvider, build_salt_provider
from traffic_limiter.core.config import settings
from traffic_limiter.core.limiter import (
    REMOTE_ADDR,
    TrafficLimiter,
    TrafficLimiterConfig,
    header_to_environ_key,
)

logger = logging.getLogger(__name__)


_store: AbstractRateTableStore | None = None
_store_config: tuple[str, str] | None = None
_salt_provider: AbstractSaltProvider | None = None
_salt_config: tuple[str | None, str] | None = None


def get_rate_table_store() -> AbstractRateTableStore:
    """Return the process-wide rate table store."""

    global _store, _store_config

    config = (settings.traffic.backend, str(settings.traffic.dir))
    if _store is None or _store_config != config:
        _store = build_rate_table_store(settings.traffic.backend, settings.traffic.dir)
        _store_config = config
    return _store


def get_salt_provider() -> AbstractSaltProvider:
    """Return the process-wide salt provider."""

    global _salt_provider, _salt_config

    config = (settings.traffic.salt, str(settings.traffic.dir))
    if _salt_provider is None or _salt_config != config:
        _salt_provider = build_salt_provider(settings.traffic.salt, settings.traffic.dir)
        _salt_config = config
    return _salt_provider


def build_environ(request: Request) -> dict[str, str]:
    """Expose the request as ``REMOTE_ADDR`` and ``HTTP_*`` keys.

    Repeated headers are joined with ", " the way CGI servers do.
    """

    environ = {
        header_to_environ_key(name): ", ".join(request.headers.getlist(name))
        for name in set(request.headers.keys())
    }
    environ[REMOTE_ADDR] = request.client.host if request.client else ""
    return environ


def get_traffic_limiter(request: Request) -> TrafficLimiter:
    """Bind a limiter to the current request."""

    return TrafficLimiter(
        TrafficLimiterConfig.from_settings(settings.traffic),
        store=get_rate_table_store(),
        secret=get_salt_provider().get(),
        environ=build_environ(request),
    )


def enforce_traffic_limit(request: Request) -> None:
    """FastAPI dependency enforcing one admitted request per window per client.

    Declared sync so FastAPI runs the blocking table I/O in its threadpool.
    Stores the client's strong digest on ``request.state.client_id``.

    Raises:
        HTTPException: 429 Too Many Requests when the client must wait.
        StorageAppError: When the rate table cannot be read or written.
    """

    limiter = get_traffic_limiter(request)
    request.state.client_id = limiter.digest()

    if limiter.can_pass():
        return

    retry_after = limiter.retry_after()
    logger.warning(
        "traffic.rejected",
        extra={
            "client_hash": request.state.client_id[:16],
            "retry_after_s": retry_after,
            "request_path": request.url.path,
        },
    )

    headers: dict[str, str] = {}
    if settings.traffic.include_headers:
        headers["Retry-After"] = str(retry_after)

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=f"Please wait {retry_after} seconds between each post.",
        headers=headers or None,
    )
