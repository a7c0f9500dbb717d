"""
Test Suite Configuration
"""
import asyncio
from datetime import datetime
from typing import AsyncGenerator, Dict, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from backoffice.config import Settings
from backoffice.config.settings import AuthSettings, DashboardSettings
from backoffice.database.models import Base
from backoffice.reporting.aggregator import DashboardAggregator
from backoffice.reporting.repository import ReportingRepository
from backoffice.reporting.schemas import (
    Charts,
    DashboardResponse,
    KPIs,
    PendingItem,
    PendingWork,
    RankedItem,
    ReportMeta,
    RevenueComparison,
)
from backoffice.serving.api.main import create_app
from backoffice.serving.api.routes.dashboard import get_aggregator
from backoffice.serving.auth import AdminIdentity, get_identity_resolver

NOW = datetime(2026, 10, 18, 12, 0, 0)

ADMIN_TOKEN = "admin-token"
USER_TOKEN = "user-token"


class BrokenRepository(ReportingRepository):
    """Repository whose counts fail like a dropped connection"""

    async def count(self, model, window=None, statuses=None) -> int:
        await asyncio.sleep(0)
        raise ConnectionError("connection refused")


class StaticIdentityResolver:
    """Resolves a fixed set of tokens without calling the auth provider"""

    def __init__(self, identities: Dict[str, AdminIdentity]):
        self.identities = identities
        self.calls = 0

    async def get_user(self, token: str) -> Optional[AdminIdentity]:
        self.calls += 1
        return self.identities.get(token)

    async def aclose(self) -> None:
        pass


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
        auth=AuthSettings(admin_emails=["Admin@Example.com"]),
        dashboard=DashboardSettings(max_concurrent_queries=4),
    )


@pytest.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite so concurrent sessions see the same data"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def add_rows(session_factory):
    """Insert model instances and commit"""

    async def _add(*rows):
        async with session_factory() as session:
            session.add_all(rows)
            await session.commit()
        return rows

    return _add


@pytest.fixture
def repository(session_factory, test_settings) -> ReportingRepository:
    return ReportingRepository(session_factory, max_concurrency=test_settings.dashboard.max_concurrent_queries)


@pytest.fixture
def aggregator(repository, test_settings) -> DashboardAggregator:
    return DashboardAggregator(repository, test_settings.dashboard, clock=lambda: NOW)


@pytest.fixture
def identity_resolver() -> StaticIdentityResolver:
    return StaticIdentityResolver({
        ADMIN_TOKEN: AdminIdentity(id="u-admin", email="admin@example.com"),
        USER_TOKEN: AdminIdentity(id="u-user", email="someone@example.com"),
    })


@pytest.fixture
def app(test_settings, aggregator, identity_resolver):
    """API app wired to the SQLite store and the static resolver"""
    application = create_app(test_settings)
    application.dependency_overrides[get_identity_resolver] = lambda: identity_resolver
    application.dependency_overrides[get_aggregator] = lambda: aggregator
    return application


@pytest.fixture
async def client(app) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


@pytest.fixture
def sample_payload() -> dict:
    """Small dashboard payload as the API serializes it"""
    response = DashboardResponse(
        kpis=KPIs(total_revenue=100, total_requests=3, cancellation_rate=33.3, customers_count=2),
        charts=Charts(
            top_selling_products=[RankedItem(name="Kettle", value=4), RankedItem(name="Toaster", value=1)],
            customer_segmentation=[
                RankedItem(name="Orders only", value=1),
                RankedItem(name="Service only", value=0),
                RankedItem(name="Multiple services", value=1),
            ],
        ),
        pending_work=PendingWork(
            urgent=[PendingItem(id="m-1", type="moving", request_number="MV-1", created_at=datetime(2026, 10, 16))],
        ),
        monthly_revenue_comparison=RevenueComparison(this_month=100, last_month=50, change=100.0),
        meta=ReportMeta(filter="month", start_date=datetime(2026, 9, 18, 12), end_date=NOW, generated_at=NOW),
    )
    return response.model_dump(mode="json", by_alias=True)
