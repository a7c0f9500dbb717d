"""
API Errors

Exceptions raised by the dashboard endpoints and the handlers that render
them as ``{"error": ...}`` JSON bodies.
"""

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class DashboardAPIError(Exception):
    """Base class for errors returned by the dashboard API"""

    status_code = 500
    error = "Internal server error"

    def __init__(self, details: Optional[str] = None):
        super().__init__(details or self.error)
        self.details = details

    def to_body(self) -> dict:
        body = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        return body


class AuthenticationFailure(DashboardAPIError):
    """Missing, malformed or rejected bearer token"""

    status_code = 401
    error = "Unauthorized"

    def to_body(self) -> dict:
        return {"error": self.error}


class AuthorizationFailure(AuthenticationFailure):
    """Valid identity that is not on the admin allow-list"""


class UpstreamQueryFailure(DashboardAPIError):
    """A store query failed while building the dashboard"""


async def dashboard_error_handler(request: Request, exc: DashboardAPIError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "details": str(exc)},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach the JSON error handlers to ``app``."""
    app.add_exception_handler(DashboardAPIError, dashboard_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
