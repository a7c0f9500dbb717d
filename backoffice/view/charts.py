"""Plotly figure builders for the dashboard view."""

from typing import Any, Dict, List, Optional, Sequence

import plotly.graph_objects as go

MODULE_COLORS: Dict[str, str] = {
    "orders": "#f97316",
    "moving": "#1e3a8a",
    "service": "#14b8a6",
    "sell": "#a855f7",
}

MODULE_LABELS: Dict[str, str] = {
    "orders": "Orders",
    "moving": "Moving",
    "service": "Technical service",
    "sell": "Product sell",
}

BAR_COLOR = "#1e3a8a"
EMPTY_MESSAGE = "No data for this period"
MARGIN = dict(l=40, r=20, t=60, b=40)


def _layout(fig: go.Figure, title: str, **kwargs) -> go.Figure:
    fig.update_layout(
        title=title,
        title_x=0.05,
        plot_bgcolor="white",
        margin=MARGIN,
        **kwargs,
    )
    return fig


def empty_figure(title: str, message: str = EMPTY_MESSAGE) -> go.Figure:
    """Placeholder figure shown when a series has no rows."""
    fig = go.Figure()
    fig.add_annotation(
        text=message,
        x=0.5,
        y=0.5,
        xref="paper",
        yref="paper",
        showarrow=False,
        font=dict(size=14, color="gray"),
    )
    fig.update_xaxes(visible=False)
    fig.update_yaxes(visible=False)
    return _layout(fig, title)


def is_empty_figure(fig: go.Figure) -> bool:
    return not fig.data


def monthly_trend_figure(points: Sequence[Dict[str, Any]], title: str = "Monthly requests") -> go.Figure:
    """One line per module over the last months."""
    if not points:
        return empty_figure(title)

    months = [point["month"] for point in points]
    fig = go.Figure()
    for key, color in MODULE_COLORS.items():
        fig.add_trace(
            go.Scatter(
                x=months,
                y=[point.get(key, 0) for point in points],
                mode="lines+markers",
                name=MODULE_LABELS[key],
                line=dict(color=color, width=3),
                marker=dict(size=8),
            )
        )
    fig.update_xaxes(showgrid=False)
    fig.update_yaxes(showgrid=True, gridcolor="lightgray", rangemode="tozero")
    return _layout(fig, title)


def daily_trend_figure(points: Sequence[Dict[str, Any]], title: str = "Daily requests") -> go.Figure:
    """Area chart of total requests per day."""
    if not points:
        return empty_figure(title)

    fig = go.Figure(
        go.Scatter(
            x=[point["day"] for point in points],
            y=[point.get("requests", 0) for point in points],
            mode="lines",
            fill="tozeroy",
            line=dict(color=MODULE_COLORS["service"], width=2),
            name="Requests",
        )
    )
    fig.update_xaxes(showgrid=False)
    fig.update_yaxes(showgrid=True, gridcolor="lightgray", rangemode="tozero")
    return _layout(fig, title, showlegend=False)


def pie_figure(
    items: Sequence[Dict[str, Any]],
    title: str,
    colors: Optional[List[str]] = None,
) -> go.Figure:
    """Donut chart of ``name``/``value`` rows; all-zero rows count as empty."""
    if not items or not any(item.get("value") for item in items):
        return empty_figure(title)

    colors = colors or [item.get("color") for item in items]
    fig = go.Figure(
        go.Pie(
            labels=[item["name"] for item in items],
            values=[item["value"] for item in items],
            hole=0.45,
            marker=dict(colors=colors if all(colors) else None),
            sort=False,
        )
    )
    return _layout(fig, title)


def bar_figure(
    items: Sequence[Dict[str, Any]],
    title: str,
    value_key: str = "value",
    horizontal: bool = False,
    color: str = BAR_COLOR,
    suffix: str = "",
) -> go.Figure:
    """Bar chart of ranked ``name``/``value`` rows, largest first."""
    if not items:
        return empty_figure(title)

    names = [item["name"] for item in items]
    values = [item.get(value_key, 0) for item in items]
    if horizontal:
        # plotly draws horizontal bars bottom-up
        bar = go.Bar(x=values[::-1], y=names[::-1], orientation="h", marker_color=color)
    else:
        bar = go.Bar(x=names, y=values, marker_color=color)

    fig = go.Figure(bar)
    value_axis = fig.update_xaxes if horizontal else fig.update_yaxes
    value_axis(showgrid=True, gridcolor="lightgray", ticksuffix=suffix)
    return _layout(fig, title, showlegend=False)


def rate_figure(points: Sequence[Dict[str, Any]], title: str) -> go.Figure:
    """Per-module percentages."""
    return bar_figure(points, title, value_key="rate", suffix=" %", color=MODULE_COLORS["orders"])


def stock_figure(points: Sequence[Dict[str, Any]], title: str = "Catalogue stock value") -> go.Figure:
    """Stock value bars with the product count on a second axis."""
    if not points:
        return empty_figure(title)

    months = [point["month"] for point in points]
    fig = go.Figure()
    fig.add_trace(
        go.Bar(
            x=months,
            y=[point.get("totalValue", 0) for point in points],
            name="Stock value",
            marker_color=MODULE_COLORS["moving"],
        )
    )
    fig.add_trace(
        go.Scatter(
            x=months,
            y=[point.get("productCount", 0) for point in points],
            name="Products",
            mode="lines+markers",
            line=dict(color=MODULE_COLORS["orders"], width=3),
            yaxis="y2",
        )
    )
    return _layout(
        fig,
        title,
        yaxis=dict(title="Value", showgrid=True, gridcolor="lightgray"),
        yaxis2=dict(title="Products", overlaying="y", side="right", showgrid=False),
    )
