"""
Database Connection Management

One async SQLAlchemy engine per process. A dashboard request opens one short
read-only session per query and runs them concurrently, so the pool has to
hold at least ``DASHBOARD_MAX_CONCURRENT_QUERIES`` connections.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from backoffice.config import Settings, get_settings

logger = structlog.get_logger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    db = settings.database
    options: Dict[str, Any] = {"echo": db.echo, "pool_pre_ping": True}

    # SQLite (local runs, tests) uses a pool without size knobs
    if make_url(db.async_url).get_backend_name() != "sqlite":
        pool_size = max(db.pool_size, settings.dashboard.max_concurrent_queries)
        options.update(pool_size=pool_size, max_overflow=db.max_overflow, pool_timeout=db.pool_timeout)

    return create_async_engine(db.async_url, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


async def _round_trip_ms(engine: AsyncEngine) -> float:
    started = time.perf_counter()
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return round((time.perf_counter() - started) * 1000, 2)


async def init_database(settings: Optional[Settings] = None) -> AsyncEngine:
    """
    Create the engine and session factory and verify the store is reachable.

    Calling it again returns the existing engine.
    """
    global _engine, _session_factory

    if _engine is not None:
        return _engine

    engine = create_engine_from_settings(settings or get_settings())
    try:
        latency_ms = await _round_trip_ms(engine)
    except Exception as e:
        logger.error("Store unreachable", url=engine.url.render_as_string(hide_password=True), error=str(e))
        await engine.dispose()
        raise

    _engine = engine
    _session_factory = create_session_factory(engine)
    logger.info(
        "Connected to store",
        backend=engine.url.get_backend_name(),
        database=engine.url.database,
        latency_ms=latency_ms,
    )
    return _engine


async def close_database() -> None:
    global _engine, _session_factory

    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("Store connections closed")


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Factory handed to ReportingRepository; one session per query."""
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _session_factory


@asynccontextmanager
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Unit-of-work session for writers such as the demo seeder.

    Example:
        async with get_db() as db:
            db.add_all(rows)
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.error("Rolling back session", error=str(e), error_type=type(e).__name__)
            await session.rollback()
            raise


async def check_database_health() -> Dict[str, Any]:
    try:
        latency_ms = await _round_trip_ms(get_engine())
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy", "latency_ms": latency_ms}
