"""
Health Endpoints

``/health`` reports on every backing service the dashboard needs;
``/health/live`` and ``/health/ready`` are the orchestrator probes.
"""

from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from backoffice.config import Settings
from backoffice.database.connection import check_database_health
from backoffice.reporting.windows import utcnow
from backoffice.serving.api.routes.dashboard import get_app_settings
from backoffice.serving.cache import get_redis

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


async def _redis_check() -> Dict[str, Any]:
    try:
        await get_redis().ping()
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy"}


def _auth_check(settings: Settings) -> Dict[str, Any]:
    """Configuration only; the provider is not called on every probe."""
    return {
        "status": "configured" if settings.auth.supabase_anon_key.get_secret_value() else "missing_key",
        "admins": len(settings.auth.admin_emails),
    }


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    """
    Database failure makes the service unhealthy. A broken Redis only
    degrades it, since payloads can still be built without the cache.
    """
    checks: Dict[str, Any] = {
        "database": await check_database_health(),
        "auth": _auth_check(settings),
    }
    status = "healthy" if checks["database"]["status"] == "healthy" else "unhealthy"

    if settings.dashboard.cache_enabled:
        checks["redis"] = await _redis_check()
        if checks["redis"]["status"] != "healthy" and status == "healthy":
            status = "degraded"

    return HealthResponse(
        status=status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=utcnow(),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(response: Response) -> Dict[str, str]:
    """Ready once the store answers a trivial query."""
    database = await check_database_health()
    if database["status"] != "healthy":
        response.status_code = 503
        return {"status": "not_ready", "reason": "database_unavailable"}
    return {"status": "ready"}
