"""
Unit Tests - Dashboard API
"""
import uuid
from decimal import Decimal

import pytest

from backoffice.database.models import Order
from backoffice.reporting.aggregator import DashboardAggregator
from backoffice.serving.api.routes.dashboard import get_aggregator

from tests.conftest import ADMIN_TOKEN, NOW, USER_TOKEN, BrokenRepository


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestAuthorization:
    """Admin guard on the dashboard endpoint"""

    async def test_missing_token(self, client):
        response = await client.get("/api/v1/admin/dashboard")

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    async def test_malformed_header(self, client):
        response = await client.get("/api/v1/admin/dashboard", headers={"Authorization": ADMIN_TOKEN})
        assert response.status_code == 401

    async def test_unknown_token(self, client):
        response = await client.get("/api/v1/admin/dashboard", headers=bearer("expired"))

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    @pytest.mark.parametrize("params", [{}, {"filter": "all"}, {"filter": "not-a-filter", "page": "-1"}])
    async def test_non_admin_is_rejected_for_any_parameters(self, client, params):
        response = await client.get("/api/v1/admin/dashboard", params=params, headers=bearer(USER_TOKEN))

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    async def test_rejected_before_any_query(self, app, client, session_factory, test_settings):
        broken = DashboardAggregator(BrokenRepository(session_factory), test_settings.dashboard, clock=lambda: NOW)
        app.dependency_overrides[get_aggregator] = lambda: broken

        response = await client.get("/api/v1/admin/dashboard", headers=bearer(USER_TOKEN))

        assert response.status_code == 401


class TestDashboardEndpoint:
    """Successful and failing aggregations"""

    async def test_admin_gets_payload(self, client, add_rows):
        await add_rows(Order(id=uuid.uuid4(), total_price=Decimal("100"), status="delivered", created_at=NOW))

        response = await client.get("/api/v1/admin/dashboard", params={"filter": "month"}, headers=bearer(ADMIN_TOKEN))

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {
            "kpis", "charts", "pendingWork", "topActiveCustomers", "monthlyRevenueComparison", "meta",
        }
        assert body["kpis"]["totalRevenue"] == 100
        assert body["kpis"]["totalRequests"] == 1
        assert len(body["charts"]["monthlyTrend"]) == 6
        assert len(body["charts"]["dailyTrend"]) == 30
        assert body["pendingWork"] == {"urgent": [], "awaitingResponse": []}
        assert body["meta"]["filter"] == "month"

    async def test_default_filter_is_month(self, client):
        response = await client.get("/api/v1/admin/dashboard", headers=bearer(ADMIN_TOKEN))

        assert response.status_code == 200
        assert response.json()["meta"]["filter"] == "month"

    async def test_blank_filter_uses_default(self, client):
        response = await client.get("/api/v1/admin/dashboard", params={"filter": ""}, headers=bearer(ADMIN_TOKEN))

        assert response.status_code == 200
        assert response.json()["meta"]["filter"] == "month"

    async def test_unknown_filter_means_all(self, client):
        response = await client.get(
            "/api/v1/admin/dashboard", params={"filter": "fortnight"}, headers=bearer(ADMIN_TOKEN)
        )

        assert response.status_code == 200
        meta = response.json()["meta"]
        assert meta["filter"] == "all"
        assert meta["startDate"].startswith("2020-01-01")

    async def test_query_failure_returns_500(self, app, client, session_factory, test_settings):
        broken = DashboardAggregator(BrokenRepository(session_factory), test_settings.dashboard, clock=lambda: NOW)
        app.dependency_overrides[get_aggregator] = lambda: broken

        response = await client.get("/api/v1/admin/dashboard", headers=bearer(ADMIN_TOKEN))

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error", "details": "connection refused"}

    async def test_request_id_is_echoed(self, client):
        response = await client.get(
            "/api/v1/admin/dashboard", headers={**bearer(ADMIN_TOKEN), "X-Request-ID": "req-42"}
        )

        assert response.headers["X-Request-ID"] == "req-42"
        assert response.headers["X-Response-Time"].endswith("ms")


class TestServiceEndpoints:
    """Info and health endpoints"""

    async def test_info(self, client, test_settings):
        response = await client.get("/api/v1/info")

        assert response.status_code == 200
        assert response.json()["name"] == test_settings.app_name
        assert response.json()["environment"] == "testing"

    async def test_liveness(self, client):
        response = await client.get("/api/v1/health/live")
        assert response.json() == {"status": "alive"}

    async def test_readiness_without_database(self, client):
        response = await client.get("/api/v1/health/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"
