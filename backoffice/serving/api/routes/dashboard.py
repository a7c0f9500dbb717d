"""
Admin Dashboard Endpoint

Returns every KPI, chart series and pending-work list for one time filter.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request

from backoffice.config import Settings
from backoffice.database.connection import get_session_factory
from backoffice.reporting.aggregator import DashboardAggregator
from backoffice.reporting.repository import ReportingRepository
from backoffice.reporting.schemas import DashboardResponse, ErrorResponse
from backoffice.reporting.windows import TimeFilter
from backoffice.serving.api.errors import DashboardAPIError, UpstreamQueryFailure
from backoffice.serving.auth import AdminIdentity, require_admin
from backoffice.serving.cache import CacheManager, redis_ready

logger = structlog.get_logger(__name__)
router = APIRouter()


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_repository(settings: Settings = Depends(get_app_settings)) -> ReportingRepository:
    return ReportingRepository(
        get_session_factory(),
        max_concurrency=settings.dashboard.max_concurrent_queries,
    )


def get_aggregator(
    settings: Settings = Depends(get_app_settings),
    repository: ReportingRepository = Depends(get_repository),
) -> DashboardAggregator:
    return DashboardAggregator(repository, settings.dashboard)


def get_dashboard_cache(settings: Settings = Depends(get_app_settings)) -> Optional[CacheManager]:
    """Cache for rendered payloads, or None when caching is off or Redis is down"""
    if not settings.dashboard.cache_enabled or not redis_ready():
        return None
    return CacheManager("dashboard", default_ttl=settings.dashboard.cache_ttl_seconds)


@router.get(
    "/admin/dashboard",
    response_model=DashboardResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_dashboard(
    identity: AdminIdentity = Depends(require_admin),
    filter: Optional[str] = Query(
        default=None,
        description="today, week, month, 3months, 6months or all; unknown values mean all",
    ),
    settings: Settings = Depends(get_app_settings),
    aggregator: DashboardAggregator = Depends(get_aggregator),
    cache: Optional[CacheManager] = Depends(get_dashboard_cache),
):
    """
    Aggregate the dashboard for the requested window.

    Every query must succeed; a single failing query yields a 500 and no
    partial payload.
    """
    default = TimeFilter.parse(settings.dashboard.default_filter)
    time_filter = TimeFilter.parse(filter, default=default)

    logger.info("Dashboard requested", user_id=identity.id, filter=time_filter.value)

    async def render() -> dict:
        payload = await aggregator.build(time_filter)
        return payload.model_dump(mode="json", by_alias=True)

    try:
        if cache is None:
            return await aggregator.build(time_filter)
        return await cache.get_or_set(time_filter.value, render)
    except DashboardAPIError:
        raise
    except Exception as e:
        logger.error(
            "Dashboard aggregation failed",
            filter=time_filter.value,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise UpstreamQueryFailure(str(e)) from e
