"""
Unit Tests - Dashboard View State
"""
from contextlib import contextmanager

import pytest

from backoffice.view import app as view_app
from backoffice.view.client import DashboardClientError


class FakeColumn:
    def __init__(self, metrics):
        self.metrics = metrics

    def metric(self, label, value, delta=None):
        self.metrics.append((label, value, delta))


class FakeStreamlit:
    """The parts of the streamlit module the view state logic touches"""

    def __init__(self, **state):
        self.session_state = {
            "access_token": "tok",
            "filter": "month",
            "payload": None,
            "loaded_filter": None,
            "loaded_at": 0.0,
            "force_refresh": False,
        }
        self.session_state.update(state)
        self.toasts = []
        self.errors = []
        self.metrics = []

    @contextmanager
    def spinner(self, text):
        yield

    def toast(self, message):
        self.toasts.append(message)

    def error(self, message):
        self.errors.append(message)

    def columns(self, count):
        return [FakeColumn(self.metrics) for _ in range(count)]


class ScriptedClient:
    """Fails with ``error`` when set, otherwise returns a payload for the filter"""

    def __init__(self, error=None):
        self.error = error
        self.requested = []

    def fetch_dashboard(self, time_filter, access_token):
        self.requested.append(time_filter)
        if self.error is not None:
            raise self.error
        return payload_for(time_filter)


def payload_for(time_filter: str) -> dict:
    return {"kpis": {"totalRevenue": 10}, "meta": {"filter": time_filter}}


@pytest.fixture
def view(monkeypatch):
    """Install a fake streamlit and client; returns a function to set them up"""

    def install(client, **state):
        fake = FakeStreamlit(**state)
        monkeypatch.setattr(view_app, "st", fake)
        monkeypatch.setattr(view_app, "get_client", lambda: client)
        return fake

    return install


class TestLoadPayload:
    """Fetching, failure handling and filter changes"""

    def test_first_load_fetches(self, view):
        client = ScriptedClient()
        fake = view(client)

        payload = view_app.load_payload(interval=0)

        assert payload == payload_for("month")
        assert client.requested == ["month"]
        assert fake.session_state["loaded_filter"] == "month"
        assert fake.toasts == []

    def test_loaded_payload_is_reused(self, view):
        client = ScriptedClient()
        view(client, payload=payload_for("month"), loaded_filter="month", loaded_at=1e12)

        assert view_app.load_payload(interval=300) == payload_for("month")
        assert client.requested == []

    def test_failure_on_same_filter_keeps_previous_payload(self, view):
        client = ScriptedClient(DashboardClientError("boom", 500))
        fake = view(client, payload=payload_for("month"), loaded_filter="month", force_refresh=True)

        payload = view_app.load_payload(interval=0)

        assert payload == payload_for("month")
        assert len(fake.toasts) == 1
        assert "boom" in fake.toasts[0]
        assert fake.errors == []

    def test_failure_on_other_filter_drops_stale_payload(self, view):
        client = ScriptedClient(DashboardClientError("boom", 500))
        fake = view(client, filter="week", payload=payload_for("month"), loaded_filter="month")

        assert view_app.load_payload(interval=0) is None
        assert client.requested == ["week"]
        assert len(fake.toasts) == 1

    def test_failure_does_not_block_next_filter_change(self, view):
        client = ScriptedClient(DashboardClientError("boom", 500))
        fake = view(client, filter="week")

        assert view_app.load_payload(interval=0) is None

        client.error = None
        fake.session_state["filter"] = "3months"
        payload = view_app.load_payload(interval=0)

        assert payload == payload_for("3months")
        assert client.requested == ["week", "3months"]

    def test_unauthorized_shows_sign_in_hint(self, view):
        client = ScriptedClient(DashboardClientError("Unauthorized", 401))
        fake = view(client)

        view_app.load_payload(interval=0)

        assert len(fake.toasts) == 1
        assert len(fake.errors) == 1


class TestRenderKpis:
    """KPI cards with and without data"""

    def test_placeholders_without_payload(self, view):
        fake = view(ScriptedClient())

        view_app.render_kpis(None)

        assert len(fake.metrics) == 8
        assert all(value == view_app.PLACEHOLDER for _, value, _ in fake.metrics)
        assert view_app.PLACEHOLDER == "…"

    def test_values_with_payload(self, view):
        fake = view(ScriptedClient())
        payload = {
            "kpis": {"totalRevenue": 1500, "totalRequests": 12, "cancellationRate": 8.3},
            "monthlyRevenueComparison": {"thisMonth": 900, "lastMonth": 600, "change": 50.0},
        }

        view_app.render_kpis(payload)

        shown = {label: (value, delta) for label, value, delta in fake.metrics}
        assert shown["Total revenue"] == ("1,500", None)
        assert shown["Cancellation rate"] == ("8.3 %", None)
        assert shown["Customers"] == (view_app.PLACEHOLDER, None)
        assert shown["Revenue this month"] == ("900", "+50.0 %")
