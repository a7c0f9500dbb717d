"""
Back-Office Dashboard View

Streamlit page rendering the aggregation payload.

    streamlit run backoffice/view/app.py
"""

import time
from typing import Any, Dict, Optional

import pandas as pd
import streamlit as st

from backoffice.config import get_settings
from backoffice.view import charts
from backoffice.view.client import DashboardClient, DashboardClientError
from backoffice.view.export import export_filename, to_csv, to_print_html

FILTER_OPTIONS = (
    ("today", "Today"),
    ("week", "Last 7 days"),
    ("month", "Last month"),
    ("3months", "Last 3 months"),
    ("6months", "Last 6 months"),
    ("all", "All time"),
)

PLACEHOLDER = "…"


@st.cache_resource
def get_client() -> DashboardClient:
    return DashboardClient.from_settings(get_settings())


def init_state() -> None:
    defaults = {
        "access_token": None,
        "email": None,
        "filter": get_settings().dashboard.default_filter,
        "payload": None,
        "loaded_filter": None,
        "loaded_at": 0.0,
        "force_refresh": False,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def show_login() -> None:
    st.title("Back-office dashboard")
    with st.form("login"):
        email = st.text_input("E-mail")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in")

    if submitted:
        try:
            session = get_client().sign_in(email, password)
        except DashboardClientError as exc:
            st.error(f"Sign-in failed: {exc.message}")
            return
        st.session_state["access_token"] = session["access_token"]
        st.session_state["email"] = email
        st.rerun()


def sign_out() -> None:
    for key in ("access_token", "email", "payload", "loaded_filter"):
        st.session_state[key] = None
    st.session_state["loaded_at"] = 0.0


def needs_refresh(interval: int) -> bool:
    state = st.session_state
    if state["force_refresh"] or state["payload"] is None:
        return True
    if state["loaded_filter"] != state["filter"]:
        return True
    return interval > 0 and time.time() - state["loaded_at"] >= interval


def load_payload(interval: int) -> Optional[Dict[str, Any]]:
    """Fetch when stale; on failure keep the last payload and show a toast."""
    state = st.session_state
    if not needs_refresh(interval):
        return state["payload"]

    state["force_refresh"] = False
    try:
        with st.spinner("Loading dashboard..."):
            payload = get_client().fetch_dashboard(state["filter"], state["access_token"])
    except DashboardClientError as exc:
        st.toast(f"Could not load the dashboard: {exc.message}")
        if exc.status_code == 401:
            st.error("Your session is no longer authorized. Sign out and sign in again.")
        # remember the attempt so the next filter change fetches again
        state["loaded_filter"] = state["filter"]
        state["loaded_at"] = time.time()
        previous = state["payload"]
        if previous and previous["meta"]["filter"] == state["filter"]:
            return previous
        return None

    state["payload"] = payload
    state["loaded_filter"] = state["filter"]
    state["loaded_at"] = time.time()
    return payload


def render_kpis(payload: Optional[Dict[str, Any]]) -> None:
    kpis = payload["kpis"] if payload else {}

    def show(column, label: str, key: str, fmt: str) -> None:
        value = kpis.get(key)
        column.metric(label, fmt.format(value) if value is not None else PLACEHOLDER)

    col1, col2, col3, col4 = st.columns(4)
    show(col1, "Total revenue", "totalRevenue", "{:,.0f}")
    show(col2, "Total requests", "totalRequests", "{:,}")
    show(col3, "Customers", "customersCount", "{:,}")
    show(col4, "Avg response time", "avgResponseTime", "{:.1f} h")

    col5, col6, col7, col8 = st.columns(4)
    show(col5, "Cancellation rate", "cancellationRate", "{:.1f} %")
    show(col6, "Acceptance rate", "acceptanceRate", "{:.1f} %")
    show(col7, "Cart abandonment", "cartAbandonmentRate", "{:.1f} %")
    comparison = payload["monthlyRevenueComparison"] if payload else None
    col8.metric(
        "Revenue this month",
        f"{comparison['thisMonth']:,.0f}" if comparison else PLACEHOLDER,
        f"{comparison['change']:+.1f} %" if comparison else None,
    )


def render_charts(payload: Optional[Dict[str, Any]]) -> None:
    c = payload["charts"] if payload else {}

    col1, col2 = st.columns(2)
    col1.plotly_chart(charts.monthly_trend_figure(c.get("monthlyTrend", [])), use_container_width=True)
    col2.plotly_chart(charts.daily_trend_figure(c.get("dailyTrend", [])), use_container_width=True)

    col1, col2 = st.columns(2)
    col1.plotly_chart(
        charts.pie_figure(c.get("revenueDistribution", []), "Revenue by module"), use_container_width=True
    )
    col2.plotly_chart(
        charts.rate_figure(c.get("cancellationAnalysis", []), "Cancellation rate by module"),
        use_container_width=True,
    )

    col1, col2 = st.columns(2)
    col1.plotly_chart(
        charts.bar_figure(c.get("topSellingProducts", []), "Top selling products", horizontal=True),
        use_container_width=True,
    )
    col2.plotly_chart(
        charts.bar_figure(c.get("topSellRequestProducts", []), "Most offered products", horizontal=True),
        use_container_width=True,
    )

    col1, col2 = st.columns(2)
    col1.plotly_chart(
        charts.bar_figure(c.get("topProblematicProducts", []), "Most serviced product types"),
        use_container_width=True,
    )
    col2.plotly_chart(
        charts.pie_figure(c.get("topProblemCategories", []), "Problem categories"),
        use_container_width=True,
    )

    col1, col2 = st.columns(2)
    col1.plotly_chart(
        charts.bar_figure(c.get("topFavoriteProducts", []), "Most favorited products", horizontal=True),
        use_container_width=True,
    )
    col2.plotly_chart(
        charts.bar_figure(c.get("topAbandonedProducts", []), "Most abandoned products", horizontal=True),
        use_container_width=True,
    )

    col1, col2, col3 = st.columns(3)
    col1.plotly_chart(
        charts.pie_figure(c.get("customerSegmentation", []), "Customer segmentation"),
        use_container_width=True,
    )
    col2.plotly_chart(
        charts.bar_figure(c.get("avgTransactionValues", []), "Average transaction value"),
        use_container_width=True,
    )
    col3.plotly_chart(
        charts.rate_figure(c.get("completionRates", []), "Completion rate by module"),
        use_container_width=True,
    )

    st.plotly_chart(charts.stock_figure(c.get("stockByMonth", [])), use_container_width=True)


def render_tables(payload: Optional[Dict[str, Any]]) -> None:
    pending = payload["pendingWork"] if payload else {"urgent": [], "awaitingResponse": []}

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Urgent: in review for over a day")
        if pending["urgent"]:
            st.dataframe(pd.DataFrame(pending["urgent"]), hide_index=True)
        else:
            st.caption("Nothing waiting")
    with col2:
        st.subheader("Awaiting customer response")
        if pending["awaitingResponse"]:
            st.dataframe(pd.DataFrame(pending["awaitingResponse"]), hide_index=True)
        else:
            st.caption("Nothing waiting")

    st.subheader("Most active customers")
    customers = payload["topActiveCustomers"] if payload else []
    if customers:
        st.dataframe(pd.DataFrame(customers), hide_index=True)
    else:
        st.caption("No orders in this period")


def render_exports(payload: Optional[Dict[str, Any]]) -> None:
    if not payload:
        return
    col1, col2 = st.columns(2)
    col1.download_button(
        "Export CSV",
        data=to_csv(payload),
        file_name=export_filename(payload, "csv"),
        mime="text/csv",
    )
    col2.download_button(
        "Printable report",
        data=to_print_html(payload),
        file_name=export_filename(payload, "html"),
        mime="text/html",
    )


def render_dashboard() -> None:
    interval = get_settings().view.auto_refresh_seconds
    payload = load_payload(interval)

    if payload:
        meta = payload["meta"]
        st.caption(f"Period {meta['startDate'][:10]} to {meta['endDate'][:10]}, generated {meta['generatedAt'][:19]}")
    else:
        st.caption("Waiting for data...")

    render_kpis(payload)
    render_charts(payload)
    render_tables(payload)
    render_exports(payload)


def main() -> None:
    st.set_page_config(page_title="Back-office dashboard", layout="wide")
    init_state()

    if not st.session_state["access_token"]:
        show_login()
        st.stop()

    st.sidebar.header("Back-office dashboard")
    st.sidebar.caption(f"Signed in as {st.session_state['email']}")
    labels = dict(FILTER_OPTIONS)
    keys = [key for key, _ in FILTER_OPTIONS]
    current = st.session_state["filter"] if st.session_state["filter"] in labels else "month"
    st.session_state["filter"] = st.sidebar.radio(
        "Period",
        options=keys,
        index=keys.index(current),
        format_func=lambda key: labels[key],
    )
    if st.sidebar.button("Refresh"):
        st.session_state["force_refresh"] = True
    if st.sidebar.button("Sign out"):
        sign_out()
        st.rerun()

    interval = get_settings().view.auto_refresh_seconds
    if interval > 0:
        st.fragment(run_every=interval)(render_dashboard)()
    else:
        render_dashboard()


if __name__ == "__main__":
    main()
