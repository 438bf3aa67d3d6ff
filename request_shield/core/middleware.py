"""HTTP middleware for request ID propagation and correlation.

Registered as the outermost middleware so that the defense filter's log lines
and error envelopes (including rate-limit and lockout rejections) carry the
same request id as the response header.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from request_shield.core.config import settings
from request_shield.core.logging import clear_request_id, set_request_id


async def request_id_middleware(request: Request, call_next) -> Response:
    """Bind a request id for the lifetime of the request.

    The incoming ``X-Request-ID`` header (name configurable via
    ``LOG_REQUEST_ID_HEADER``) is reused when present; otherwise a UUID4 is
    generated. The id is echoed back on the response together with the total
    handling time in ``X-Request-Duration-ms``.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with correlation headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
