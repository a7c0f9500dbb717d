"""
Dashboard Export

Flattens a dashboard payload into pandas frames and renders them as a
sectioned CSV file or a printable HTML report.
"""

import html
import io
from typing import Any, Dict, List

import pandas as pd

KPI_LABELS = {
    "totalRevenue": "Total revenue",
    "totalRequests": "Total requests",
    "cancellationRate": "Cancellation rate (%)",
    "acceptanceRate": "Acceptance rate (%)",
    "avgResponseTime": "Average response time (h)",
    "customersCount": "Customers",
    "cartAbandonmentRate": "Cart abandonment rate (%)",
}

CHART_SECTIONS = {
    "monthlyTrend": "Monthly requests",
    "dailyTrend": "Daily requests",
    "revenueDistribution": "Revenue by module",
    "cancellationAnalysis": "Cancellation rate by module",
    "topSellingProducts": "Top selling products",
    "topSellRequestProducts": "Most offered products",
    "topProblematicProducts": "Most serviced product types",
    "topProblemCategories": "Problem categories",
    "topFavoriteProducts": "Most favorited products",
    "topAbandonedProducts": "Most abandoned products",
    "customerSegmentation": "Customer segmentation",
    "avgTransactionValues": "Average transaction value",
    "completionRates": "Completion rate by module",
    "stockByMonth": "Catalogue stock by month",
}

PENDING_COLUMNS = ["type", "requestNumber", "createdAt", "fromAddress", "toAddress",
                   "productType", "serviceAddress", "title", "brand", "adminPrice", "adminOfferPrice"]

PRINT_CSS = """
body { font-family: Arial, sans-serif; margin: 24px; color: #111827; }
h1 { color: #1e3a8a; }
h2 { border-bottom: 2px solid #f97316; padding-bottom: 4px; margin-top: 28px; }
table { border-collapse: collapse; width: 100%; margin-top: 8px; }
th, td { border: 1px solid #d1d5db; padding: 4px 8px; text-align: left; }
th { background: #f3f4f6; }
@media print { h2 { page-break-after: avoid; } table { page-break-inside: avoid; } }
"""


def kpi_frame(payload: Dict[str, Any]) -> pd.DataFrame:
    kpis = payload.get("kpis", {})
    rows = [{"metric": label, "value": kpis.get(key, 0)} for key, label in KPI_LABELS.items()]
    return pd.DataFrame(rows, columns=["metric", "value"])


def pending_frame(payload: Dict[str, Any]) -> pd.DataFrame:
    """Urgent and awaiting-response requests in one table."""
    pending = payload.get("pendingWork", {})
    rows = [
        {"queue": queue, **{column: item.get(column) for column in PENDING_COLUMNS}}
        for queue, key in (("urgent", "urgent"), ("awaiting response", "awaitingResponse"))
        for item in pending.get(key, [])
    ]
    return pd.DataFrame(rows, columns=["queue", *PENDING_COLUMNS])


def customers_frame(payload: Dict[str, Any]) -> pd.DataFrame:
    return pd.DataFrame(
        payload.get("topActiveCustomers", []),
        columns=["name", "email", "orderCount", "totalSpent"],
    )


def revenue_comparison_frame(payload: Dict[str, Any]) -> pd.DataFrame:
    comparison = payload.get("monthlyRevenueComparison", {})
    return pd.DataFrame(
        [{
            "this month": comparison.get("thisMonth", 0),
            "last month": comparison.get("lastMonth", 0),
            "change (%)": comparison.get("change", 0),
        }]
    )


def sections(payload: Dict[str, Any]) -> List[tuple]:
    """``(title, frame)`` for every exported section, in report order."""
    charts = payload.get("charts", {})
    result = [
        ("Key metrics", kpi_frame(payload)),
        ("Revenue this month vs last month", revenue_comparison_frame(payload)),
    ]
    for key, title in CHART_SECTIONS.items():
        result.append((title, pd.DataFrame(charts.get(key, []))))
    result.append(("Pending work", pending_frame(payload)))
    result.append(("Top active customers", customers_frame(payload)))
    return result


def _period(payload: Dict[str, Any]) -> str:
    meta = payload.get("meta", {})
    return f"{meta.get('startDate', '')} to {meta.get('endDate', '')} ({meta.get('filter', '')})"


def to_csv(payload: Dict[str, Any]) -> str:
    """
    Sectioned CSV: a ``# title`` line, then the section table, then a
    blank line. Empty sections keep their title with no rows.
    """
    buffer = io.StringIO()
    buffer.write(f"# Back-office dashboard, {_period(payload)}\n\n")
    for title, frame in sections(payload):
        buffer.write(f"# {title}\n")
        if not frame.empty:
            frame.to_csv(buffer, index=False, lineterminator="\n")
        buffer.write("\n")
    return buffer.getvalue()


def to_print_html(payload: Dict[str, Any]) -> str:
    """Standalone HTML report meant for the browser's print dialog."""
    parts = [
        "<!DOCTYPE html><html><head><meta charset='utf-8'>",
        "<title>Back-office dashboard report</title>",
        f"<style>{PRINT_CSS}</style></head><body>",
        "<h1>Back-office dashboard</h1>",
        f"<p>Period: {html.escape(_period(payload))}</p>",
    ]
    for title, frame in sections(payload):
        parts.append(f"<h2>{html.escape(title)}</h2>")
        if frame.empty:
            parts.append("<p><em>No data for this period</em></p>")
        else:
            parts.append(frame.to_html(index=False, border=0, na_rep=""))
    parts.append("<script>window.onload = function () { window.print(); };</script>")
    parts.append("</body></html>")
    return "\n".join(parts)


def export_filename(payload: Dict[str, Any], extension: str) -> str:
    meta = payload.get("meta", {})
    stamp = str(meta.get("generatedAt", ""))[:10] or "report"
    return f"dashboard-{meta.get('filter', 'all')}-{stamp}.{extension}"
