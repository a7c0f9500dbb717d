"""
Unit Tests - Dashboard View
"""
import json

import httpx
import pytest

from backoffice.view import charts
from backoffice.view.client import DashboardClient, DashboardClientError
from backoffice.view.export import export_filename, kpi_frame, pending_frame, to_csv, to_print_html


def view_client(handler) -> DashboardClient:
    return DashboardClient(
        api_base_url="http://api.test/api/v1/",
        auth_base_url="http://auth.test",
        api_key="anon-key",
        transport=httpx.MockTransport(handler),
    )


class TestDashboardClient:
    """Tests for the view's HTTP client"""

    def test_sign_in(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/auth/v1/token"
            assert request.url.params["grant_type"] == "password"
            assert request.headers["apikey"] == "anon-key"
            assert json.loads(request.content) == {"email": "admin@example.com", "password": "pw"}
            return httpx.Response(200, json={"access_token": "tok", "token_type": "bearer"})

        session = view_client(handler).sign_in("admin@example.com", "pw")
        assert session["access_token"] == "tok"

    def test_sign_in_failure_uses_provider_message(self):
        client = view_client(
            lambda request: httpx.Response(400, json={"error": "invalid_grant", "error_description": "Invalid login credentials"})
        )

        with pytest.raises(DashboardClientError) as exc_info:
            client.sign_in("admin@example.com", "wrong")
        assert exc_info.value.message == "Invalid login credentials"
        assert exc_info.value.status_code == 400

    def test_fetch_dashboard(self, sample_payload):
        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == "http://api.test/api/v1/admin/dashboard?filter=week"
            assert request.headers["Authorization"] == "Bearer tok"
            return httpx.Response(200, json=sample_payload)

        assert view_client(handler).fetch_dashboard("week", "tok") == sample_payload

    def test_fetch_unauthorized(self):
        client = view_client(lambda request: httpx.Response(401, json={"error": "Unauthorized"}))

        with pytest.raises(DashboardClientError) as exc_info:
            client.fetch_dashboard("month", "tok")
        assert exc_info.value.message == "Unauthorized"
        assert exc_info.value.status_code == 401

    def test_fetch_server_error_includes_details(self):
        client = view_client(
            lambda request: httpx.Response(500, json={"error": "Internal server error", "details": "timeout"})
        )

        with pytest.raises(DashboardClientError) as exc_info:
            client.fetch_dashboard("month", "tok")
        assert exc_info.value.message == "Internal server error: timeout"

    def test_unreachable_api(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(DashboardClientError):
            view_client(handler).fetch_dashboard("month", "tok")


class TestExport:
    """Tests for CSV and print export"""

    def test_kpi_frame(self, sample_payload):
        frame = kpi_frame(sample_payload)

        assert len(frame) == 7
        assert frame.set_index("metric").loc["Total revenue", "value"] == 100

    def test_pending_frame(self, sample_payload):
        frame = pending_frame(sample_payload)

        assert frame["queue"].tolist() == ["urgent"]
        assert frame["requestNumber"].tolist() == ["MV-1"]

    def test_csv_sections(self, sample_payload):
        csv = to_csv(sample_payload)

        assert csv.startswith("# Back-office dashboard")
        assert "# Key metrics\n" in csv
        assert "# Top selling products\nname,value\nKettle,4\nToaster,1\n" in csv
        # empty sections keep their heading
        assert "# Most abandoned products\n\n" in csv

    def test_print_html(self, sample_payload):
        page = to_print_html(sample_payload)

        assert page.startswith("<!DOCTYPE html>")
        assert "<h2>Top selling products</h2>" in page
        assert "Kettle" in page
        assert "No data for this period" in page
        assert "window.print()" in page

    def test_filename(self, sample_payload):
        assert export_filename(sample_payload, "csv") == "dashboard-month-2026-10-18.csv"


class TestCharts:
    """Tests for plotly figure builders"""

    def test_empty_series_show_placeholder(self):
        for fig in (
            charts.monthly_trend_figure([]),
            charts.daily_trend_figure([]),
            charts.bar_figure([], "Top"),
            charts.stock_figure([]),
            charts.pie_figure([{"name": "Orders", "value": 0}], "Revenue"),
        ):
            assert charts.is_empty_figure(fig)
            assert fig.layout.annotations[0].text == charts.EMPTY_MESSAGE

    def test_monthly_trend_has_a_line_per_module(self):
        fig = charts.monthly_trend_figure([{"month": "Oct 2026", "orders": 1, "moving": 2, "service": 0, "sell": 0}])

        assert [trace.name for trace in fig.data] == ["Orders", "Moving", "Technical service", "Product sell"]
        assert list(fig.data[1].y) == [2]

    def test_horizontal_bars_put_largest_on_top(self):
        fig = charts.bar_figure(
            [{"name": "Kettle", "value": 4}, {"name": "Toaster", "value": 1}], "Top", horizontal=True
        )

        assert list(fig.data[0].y) == ["Toaster", "Kettle"]

    def test_revenue_pie_uses_module_colors(self):
        fig = charts.pie_figure(
            [{"name": "Orders", "value": 10, "color": "#f97316"}, {"name": "Moving", "value": 5, "color": "#1e3a8a"}],
            "Revenue",
        )

        assert list(fig.data[0].marker.colors) == ["#f97316", "#1e3a8a"]
