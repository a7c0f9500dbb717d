"""
API Middleware
"""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Probes hit these every few seconds
PROBE_PREFIX = "/api/v1/health"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tag each request with an id and log its outcome.

    The id comes from ``X-Request-ID`` when the caller sends one, is bound
    into the structlog context for every log line emitted while handling the
    request, and is echoed back together with ``X-Response-Time``.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error while serving request")
            structlog.contextvars.clear_contextvars()
            raise

        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"

        if response.status_code >= 500:
            log = logger.error
        elif request.url.path.startswith(PROBE_PREFIX):
            log = logger.debug
        else:
            log = logger.info
        log("Request served", status_code=response.status_code, duration_ms=elapsed_ms)

        structlog.contextvars.clear_contextvars()
        return response
