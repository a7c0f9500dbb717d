"""
Grouping Utilities

Group-by, reduce, sort and truncate helpers shared by every top-N
breakdown on the dashboard. Built on polars so each breakdown is a single
expression instead of a hand-written accumulator.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

import polars as pl


def safe_rate(numerator: float, denominator: float) -> float:
    """Percentage of ``numerator`` over ``denominator``; 0 when nothing to divide by."""
    if not denominator:
        return 0.0
    return (numerator or 0) / denominator * 100


def safe_mean(total: float, count: int) -> float:
    if not count:
        return 0.0
    return (total or 0) / count


def round1(value: float) -> float:
    """Round to one decimal place."""
    return round(float(value or 0), 1)


def label_or(value: Optional[str], placeholder: str) -> str:
    """Use ``placeholder`` for missing or blank labels."""
    if value is None:
        return placeholder
    value = str(value).strip()
    return value or placeholder


def rank(
    labels: Sequence[str],
    values: Optional[Sequence[float]] = None,
    limit: int = 10,
) -> List[Dict[str, Any]]:
    """
    Group ``labels`` and rank them by their reduced value.

    Args:
        labels: Group key per row
        values: Value per row to sum; every row counts as 1 when omitted
        limit: Maximum number of groups returned

    Returns:
        ``[{"name": label, "value": total}]`` sorted by value, descending.
        Ties keep the order in which labels first appeared.
    """
    if not labels or limit <= 0:
        return []

    if values is None:
        values = [1] * len(labels)
    if all(isinstance(v, int) or v is None for v in values):
        values, dtype = [v or 0 for v in values], pl.Int64
    else:
        values, dtype = [float(v or 0) for v in values], pl.Float64

    df = pl.DataFrame(
        {"name": list(labels), "value": values},
        schema={"name": pl.Utf8, "value": dtype},
    )

    ranked = (
        df.group_by("name", maintain_order=True)
        .agg(pl.col("value").sum())
        .sort("value", descending=True, maintain_order=True)
        .head(limit)
    )
    return ranked.to_dicts()


def rank_customers(
    rows: Iterable[Dict[str, Any]],
    limit: int = 10,
    unnamed: str = "Unnamed",
) -> List[Dict[str, Any]]:
    """
    Rank customers by number of orders.

    Args:
        rows: One dict per order with ``customer_id``, ``total_price``,
            ``name`` and ``email``
        limit: Maximum number of customers returned
        unnamed: Placeholder for customers without a name

    Returns:
        ``[{"name", "email", "order_count", "total_spent"}]``
    """
    records = [
        {
            "customer_id": str(row["customer_id"]),
            "name": label_or(row.get("name"), unnamed),
            "email": row.get("email") or "",
            "total_price": float(row.get("total_price") or 0),
        }
        for row in rows
        if row.get("customer_id") is not None
    ]
    if not records or limit <= 0:
        return []

    df = pl.DataFrame(
        records,
        schema={
            "customer_id": pl.Utf8,
            "name": pl.Utf8,
            "email": pl.Utf8,
            "total_price": pl.Float64,
        },
    )

    ranked = (
        df.group_by("customer_id", maintain_order=True)
        .agg(
            pl.col("name").first(),
            pl.col("email").first(),
            pl.len().alias("order_count"),
            pl.col("total_price").sum().alias("total_spent"),
        )
        .sort("order_count", descending=True, maintain_order=True)
        .head(limit)
        .drop("customer_id")
    )
    return ranked.to_dicts()

