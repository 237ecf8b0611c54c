"""HTTP middleware for request correlation and access logging.

Every request gets a correlation id (taken from the configured header or a
fresh UUID) stored in a contextvar, so admission log records emitted while
handling it carry the same ``request_id``. The id and the handling time are
echoed back in response headers.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from admission_gate.core.config import settings
from admission_gate.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)


async def request_id_middleware(request: Request, call_next) -> Response:
    """Propagate the request id and log one access record per request.

    Responses get the request id header and ``X-Request-Duration-ms``.
    Throttled requests (429) are logged at INFO like any other response;
    the denial itself is already logged as ``rate_limit.exceeded``.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "http.request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
