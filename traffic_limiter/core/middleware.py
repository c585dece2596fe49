"""Request correlation middleware.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from traffic_limiter.core.config import settings
from traffic_limiter.core.logging import clear_request_id, set_request_id

DURATION_HEADER = "X-Request-Duration-ms"


def _incoming_request_id(request: Request, header_name: str) -> str:
    """Reuse the caller's id when it sent one, else mint a new one."""
    supplied = request.headers.get(header_name, "").strip()
    return supplied or uuid.uuid4().hex


async def request_id_middleware(request: Request, call_next) -> Response:
    """Tag the request's log records and response with a correlation id.

    The id lives in a contextvar only while the request is handled, so the
    limiter's ``traffic.*`` records carry it without the id being passed down.
    The response echoes it and reports the handling time in milliseconds.
    """

    header_name = settings.log.request_id_header
    request_id = _incoming_request_id(request, header_name)

    started = time.perf_counter()
    set_request_id(request_id)
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()
    elapsed_ms = (time.perf_counter() - started) * 1000

    response.headers[header_name] = request_id
    if DURATION_HEADER not in response.headers:
        response.headers[DURATION_HEADER] = f"{elapsed_ms:.2f}"
    return response
