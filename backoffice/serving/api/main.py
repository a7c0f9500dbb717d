"""
FastAPI Application Factory

Creates and configures the dashboard API application.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from backoffice.config import Settings, get_settings
from backoffice.config.logging import configure_logging
from backoffice.database.connection import close_database, init_database
from backoffice.serving.api.errors import register_error_handlers
from backoffice.serving.api.middleware import RequestLoggingMiddleware
from backoffice.serving.api.routes import dashboard_router, health_router
from backoffice.serving.auth import AdminAllowList, SupabaseAuthClient
from backoffice.serving.cache import close_redis, init_redis

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    configure_logging(settings=settings)

    logger.info(
        "Starting Back-Office Dashboard API",
        environment=settings.app_env,
        admins=len(app.state.admin_allow_list),
    )
    if not len(app.state.admin_allow_list):
        logger.warning("ADMIN_EMAILS is empty, every dashboard request will be rejected")

    try:
        await init_database(settings)
    except Exception as e:
        logger.warning("Database init failed", error=str(e))

    if settings.dashboard.cache_enabled:
        try:
            await init_redis(settings)
        except Exception as e:
            logger.warning("Redis init failed, serving uncached", error=str(e))

    yield

    logger.info("Shutting down...")
    await app.state.identity_resolver.aclose()
    await close_database()
    await close_redis()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Settings to use instead of the cached environment settings

    Returns:
        Configured FastAPI app instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Back-Office Dashboard API",
        description="KPI aggregation for the marketplace admin dashboard",
        version=settings.version,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.admin_allow_list = AdminAllowList(settings.auth.admin_emails)
    app.state.identity_resolver = SupabaseAuthClient.from_settings(settings.auth)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)

    register_error_handlers(app)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(dashboard_router, prefix="/api/v1", tags=["Dashboard"])

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "environment": settings.app_env,
            "documentation": "/docs",
        }

    return app
