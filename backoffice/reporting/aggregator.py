"""
Dashboard Aggregator

Turns a time filter into the complete dashboard payload. The work happens
in two steps:

1. Fan-out: every independent read query is scheduled as its own task and
   awaited together. The first failure cancels the rest and propagates, so
   a request either yields a full payload or none at all.
2. Reduce: the gathered counts, sums and rows are folded into KPIs, chart
   series and top-N breakdowns.

Nothing is kept between calls; each request recomputes from the store.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Optional, Tuple

import structlog
from sqlalchemy.orm import InstrumentedAttribute

from backoffice.config.settings import DashboardSettings
from backoffice.database.models import (
    Customer,
    MovingRequest,
    Order,
    OrderStatus,
    RequestStatus,
    SellRequest,
    ServiceRequest,
)
from backoffice.reporting.grouping import (
    label_or,
    rank,
    rank_customers,
    round1,
    safe_mean,
    safe_rate,
)
from backoffice.reporting.repository import ReportingRepository
from backoffice.reporting.schemas import (
    ActiveCustomer,
    Charts,
    DailyTrendPoint,
    DashboardResponse,
    KPIs,
    MonthlyTrendPoint,
    PendingItem,
    PendingWork,
    RankedItem,
    RatePoint,
    ReportMeta,
    RevenueComparison,
    RevenueShare,
    StockPoint,
)
from backoffice.reporting.windows import (
    TimeFilter,
    current_and_previous_month,
    recent_days,
    recent_months,
    resolve_window,
    utcnow,
)

logger = structlog.get_logger(__name__)

UNKNOWN_PRODUCT = "Unknown product"
UNKNOWN = "Unknown"
UNNAMED = "Unnamed"
OTHER = "Other"

# Orders that count as sold once they are past the cart
PURCHASED_ORDER_STATUSES = (
    OrderStatus.PROCESSING.value,
    OrderStatus.SHIPPED.value,
    OrderStatus.DELIVERED.value,
    OrderStatus.COMPLETED.value,
)
CANCELLED_OR_REJECTED = (RequestStatus.CANCELLED.value, RequestStatus.REJECTED.value)


@dataclass(frozen=True, eq=False)
class Module:
    """How one request table feeds the dashboard"""
    key: str
    label: str
    model: Any
    price_column: InstrumentedAttribute
    revenue_statuses: Tuple[str, ...]
    cancelled_statuses: Tuple[str, ...]
    completed_statuses: Tuple[str, ...]
    color: str

    @property
    def earns_revenue(self) -> bool:
        return bool(self.revenue_statuses)


ORDERS = Module(
    key="orders",
    label="Orders",
    model=Order,
    price_column=Order.total_price,
    revenue_statuses=(OrderStatus.PROCESSING.value, OrderStatus.SHIPPED.value, OrderStatus.DELIVERED.value),
    cancelled_statuses=(OrderStatus.CANCELLED.value,),
    completed_statuses=(OrderStatus.DELIVERED.value,),
    color="#f97316",
)
MOVING = Module(
    key="moving",
    label="Moving",
    model=MovingRequest,
    price_column=MovingRequest.admin_price,
    revenue_statuses=(RequestStatus.ACCEPTED.value, RequestStatus.COMPLETED.value),
    cancelled_statuses=CANCELLED_OR_REJECTED,
    completed_statuses=(RequestStatus.COMPLETED.value,),
    color="#1e3a8a",
)
SERVICE = Module(
    key="service",
    label="Technical service",
    model=ServiceRequest,
    price_column=ServiceRequest.final_price,
    revenue_statuses=(RequestStatus.COMPLETED.value,),
    cancelled_statuses=CANCELLED_OR_REJECTED,
    completed_statuses=(RequestStatus.COMPLETED.value,),
    color="#14b8a6",
)
SELL = Module(
    key="sell",
    label="Product sell",
    model=SellRequest,
    price_column=SellRequest.admin_offer_price,
    revenue_statuses=(),
    cancelled_statuses=CANCELLED_OR_REJECTED,
    completed_statuses=(RequestStatus.COMPLETED.value,),
    color="#a855f7",
)

MODULES = (ORDERS, MOVING, SERVICE, SELL)
REVENUE_MODULES = tuple(m for m in MODULES if m.earns_revenue)
# Modules where the customer answers an admin offer
OFFER_MODULES = (MOVING, SELL)

URGENT_COLUMNS = {
    MOVING: ("id", "request_number", "created_at", "from_address", "to_address"),
    SERVICE: ("id", "request_number", "created_at", "product_type", "service_address"),
}
AWAITING_COLUMNS = {
    MOVING: ("id", "request_number", "created_at", "from_address", "to_address", "admin_price"),
    SELL: ("id", "request_number", "created_at", "title", "brand", "admin_offer_price"),
}


async def gather_all(queries: Dict[Hashable, Awaitable]) -> Dict[Hashable, Any]:
    """
    Run awaitables concurrently and return their results by key.

    If any of them fails, the others are cancelled and the first error is
    re-raised.
    """
    tasks = {key: asyncio.ensure_future(query) for key, query in queries.items()}
    try:
        await asyncio.gather(*tasks.values())
    except BaseException:
        for task in tasks.values():
            task.cancel()
        await asyncio.gather(*tasks.values(), return_exceptions=True)
        raise
    return {key: task.result() for key, task in tasks.items()}


def _naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


class DashboardAggregator:
    """
    Computes the dashboard payload for one time filter.

    Example:
        aggregator = DashboardAggregator(repository, settings.dashboard)
        payload = await aggregator.build(TimeFilter.MONTH)
    """

    def __init__(
        self,
        repository: ReportingRepository,
        settings: Optional[DashboardSettings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.settings = settings or DashboardSettings()
        self.clock = clock

    async def build(self, time_filter: TimeFilter) -> DashboardResponse:
        """
        Run every query for ``time_filter`` and reduce the results.

        Raises:
            Exception: whatever the store raised; nothing partial is returned
        """
        started = time.perf_counter()
        now = _naive_utc(self.clock())
        window = resolve_window(time_filter, now, _naive_utc(self.settings.epoch))

        logger.info(
            "Dashboard aggregation started",
            filter=time_filter.value,
            start=window.start.isoformat(),
            end=window.end.isoformat(),
        )

        queries = self._plan(window, now)
        results = await gather_all(queries)

        favorites = rank(results["favorites"], limit=self.settings.top_limit)
        abandoned_ids = [pid for pid in results["cart"] if pid not in results["purchased"]]
        abandoned = rank(abandoned_ids, limit=self.settings.top_limit)

        lookup_ids = {item["name"] for item in favorites + abandoned}
        names = await self.repository.product_names(lookup_ids) if lookup_ids else {}

        response = DashboardResponse(
            kpis=self._kpis(results, abandoned_ids),
            charts=self._charts(results, now, favorites, abandoned, names),
            pending_work=self._pending_work(results),
            top_active_customers=[
                ActiveCustomer(**row)
                for row in rank_customers(results["customer_orders"], self.settings.top_limit, UNNAMED)
            ],
            monthly_revenue_comparison=self._revenue_comparison(results),
            meta=ReportMeta(
                filter=time_filter.value,
                start_date=window.start,
                end_date=window.end,
                generated_at=now,
            ),
        )

        logger.info(
            "Dashboard aggregation completed",
            filter=time_filter.value,
            queries=len(queries) + (1 if lookup_ids else 0),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response

    # -------------------------------------------------------------------------
    # Fan-out
    # -------------------------------------------------------------------------

    def _plan(self, window, now: datetime) -> Dict[Hashable, Awaitable]:
        """Every independent query of one dashboard request, keyed for the reducer."""
        repo = self.repository
        s = self.settings
        this_month, last_month = current_and_previous_month(now)
        queries: Dict[Hashable, Awaitable] = {}

        for m in MODULES:
            queries[("count", m.key)] = repo.count(m.model, window)
            queries[("cancelled", m.key)] = repo.count(m.model, window, m.cancelled_statuses)
            queries[("completed", m.key)] = repo.count(m.model, window, m.completed_statuses)
            queries[("customers", m.key)] = repo.customer_ids(m.model, window)

            for i, bucket in enumerate(recent_months(now, s.trend_months)):
                queries[("month", m.key, i)] = repo.count(m.model, bucket)
            for i, bucket in enumerate(recent_days(now, s.trend_days)):
                queries[("day", m.key, i)] = repo.count(m.model, bucket)

        for m in REVENUE_MODULES:
            queries[("revenue", m.key)] = repo.sum_column(m.model, m.price_column, window, m.revenue_statuses)
            queries[("revenue_this_month", m.key)] = repo.sum_column(
                m.model, m.price_column, this_month, m.revenue_statuses
            )
            queries[("revenue_last_month", m.key)] = repo.sum_column(
                m.model, m.price_column, last_month, m.revenue_statuses
            )

        for m in OFFER_MODULES:
            queries[("accepted", m.key)] = repo.count(m.model, window, (RequestStatus.ACCEPTED.value,))
            queries[("responded", m.key)] = repo.count(
                m.model, window, (RequestStatus.ACCEPTED.value, RequestStatus.REJECTED.value)
            )
            queries[("intervals", m.key)] = repo.response_intervals(m.model, m.price_column, window)

        urgent_before = now - timedelta(hours=s.urgent_after_hours)
        for m, columns in URGENT_COLUMNS.items():
            queries[("urgent", m.key)] = repo.urgent_requests(m.model, columns, urgent_before, s.pending_limit)
        for m, columns in AWAITING_COLUMNS.items():
            queries[("awaiting", m.key)] = repo.awaiting_requests(m.model, columns, s.pending_limit)

        for i, bucket in enumerate(recent_months(now, s.trend_months)):
            queries[("stock", i)] = repo.product_stock(bucket.end)

        queries["customers_count"] = repo.count(Customer)
        queries["order_items"] = repo.order_item_quantities(window)
        queries["sell_labels"] = repo.sell_request_labels(window)
        queries["service_labels"] = repo.service_request_labels(window)
        queries["favorites"] = repo.favorite_product_ids(window)
        queries["cart"] = repo.cart_product_ids()
        queries["purchased"] = repo.purchased_product_ids(window, PURCHASED_ORDER_STATUSES)
        queries["customer_orders"] = repo.customer_orders(window)
        return queries

    # -------------------------------------------------------------------------
    # Reduce
    # -------------------------------------------------------------------------

    def _kpis(self, r: Dict[Hashable, Any], abandoned_ids: List[str]) -> KPIs:
        total_requests = sum(r[("count", m.key)] for m in MODULES)
        cancellations = sum(r[("cancelled", m.key)] for m in MODULES)
        accepted = sum(r[("accepted", m.key)] for m in OFFER_MODULES)
        responded = sum(r[("responded", m.key)] for m in OFFER_MODULES)

        hours = [
            (updated - created).total_seconds() / 3600
            for m in OFFER_MODULES
            for created, updated in r[("intervals", m.key)]
            if created is not None and updated is not None
        ]

        return KPIs(
            total_revenue=sum(r[("revenue", m.key)] for m in REVENUE_MODULES),
            total_requests=total_requests,
            cancellation_rate=round1(safe_rate(cancellations, total_requests)),
            acceptance_rate=round1(safe_rate(accepted, responded)),
            avg_response_time=round1(safe_mean(sum(hours), len(hours))),
            customers_count=r["customers_count"],
            cart_abandonment_rate=round1(safe_rate(len(abandoned_ids), len(r["cart"]))),
        )

    def _charts(
        self,
        r: Dict[Hashable, Any],
        now: datetime,
        favorites: List[Dict[str, Any]],
        abandoned: List[Dict[str, Any]],
        names: Dict[str, Optional[str]],
    ) -> Charts:
        s = self.settings
        months = recent_months(now, s.trend_months)
        days = recent_days(now, s.trend_days)

        monthly_trend = [
            MonthlyTrendPoint(month=bucket.label, **{m.key: r[("month", m.key, i)] for m in MODULES})
            for i, bucket in enumerate(months)
        ]
        daily_trend = [
            DailyTrendPoint(day=bucket.label, requests=sum(r[("day", m.key, i)] for m in MODULES))
            for i, bucket in enumerate(days)
        ]

        quantities = r["order_items"]
        top_selling = rank(
            [label_or(title, UNKNOWN_PRODUCT) for title, _ in quantities],
            [quantity for _, quantity in quantities],
            limit=s.top_limit,
        )
        top_sell_requests = rank(
            [f"{label_or(brand, UNKNOWN)} {label_or(title, 'Product')}" for brand, title in r["sell_labels"]],
            limit=s.top_limit,
        )
        top_problematic = rank(
            [label_or(product_type, UNKNOWN) for product_type, _ in r["service_labels"]],
            limit=s.top_limit,
        )
        top_categories = rank(
            [label_or(category, OTHER) for _, category in r["service_labels"]],
            limit=s.top_categories_limit,
        )

        return Charts(
            monthly_trend=monthly_trend,
            daily_trend=daily_trend,
            revenue_distribution=[
                RevenueShare(name=m.label, value=r[("revenue", m.key)], color=m.color)
                for m in REVENUE_MODULES
            ],
            cancellation_analysis=[
                RatePoint(name=m.label, rate=round1(safe_rate(r[("cancelled", m.key)], r[("count", m.key)])))
                for m in MODULES
            ],
            top_selling_products=[RankedItem(**item) for item in top_selling],
            top_sell_request_products=[RankedItem(**item) for item in top_sell_requests],
            top_problematic_products=[RankedItem(**item) for item in top_problematic],
            top_problem_categories=[RankedItem(**item) for item in top_categories],
            top_favorite_products=self._named(favorites, names),
            top_abandoned_products=self._named(abandoned, names),
            customer_segmentation=self._segmentation(r),
            avg_transaction_values=[
                RankedItem(name=m.label, value=round(safe_mean(r[("revenue", m.key)], r[("count", m.key)])))
                for m in REVENUE_MODULES
            ],
            completion_rates=[
                RatePoint(name=m.label, rate=round1(safe_rate(r[("completed", m.key)], r[("count", m.key)])))
                for m in MODULES
            ],
            stock_by_month=[
                StockPoint(
                    month=bucket.label,
                    product_count=len(r[("stock", i)]),
                    total_value=round(sum(price * stock for price, stock in r[("stock", i)])),
                )
                for i, bucket in enumerate(months)
            ],
        )

    @staticmethod
    def _named(ranked: List[Dict[str, Any]], names: Dict[str, Optional[str]]) -> List[RankedItem]:
        """Swap product ids for product names."""
        return [
            RankedItem(name=label_or(names.get(item["name"]), UNKNOWN_PRODUCT), value=item["value"])
            for item in ranked
        ]

    @staticmethod
    def _segmentation(r: Dict[Hashable, Any]) -> List[RankedItem]:
        active = {m.key: r[("customers", m.key)] for m in MODULES}
        everyone = set().union(*active.values())

        def modules_used(customer_id: str) -> int:
            return sum(1 for ids in active.values() if customer_id in ids)

        only_orders = [c for c in active[ORDERS.key] if modules_used(c) == 1]
        only_service = [c for c in active[SERVICE.key] if modules_used(c) == 1]
        multi = [c for c in everyone if modules_used(c) >= 2]

        return [
            RankedItem(name="Orders only", value=len(only_orders)),
            RankedItem(name="Service only", value=len(only_service)),
            RankedItem(name="Multiple services", value=len(multi)),
        ]

    def _pending_work(self, r: Dict[Hashable, Any]) -> PendingWork:
        def items(kind: str, modules) -> List[PendingItem]:
            return [
                PendingItem(
                    type=m.key,
                    **{key: _plain(value) for key, value in row.items() if key != "id"},
                    id=str(row["id"]),
                )
                for m in modules
                for row in r[(kind, m.key)]
            ]

        return PendingWork(
            urgent=items("urgent", URGENT_COLUMNS),
            awaiting_response=items("awaiting", AWAITING_COLUMNS),
        )

    @staticmethod
    def _revenue_comparison(r: Dict[Hashable, Any]) -> RevenueComparison:
        this_month = sum(r[("revenue_this_month", m.key)] for m in REVENUE_MODULES)
        last_month = sum(r[("revenue_last_month", m.key)] for m in REVENUE_MODULES)
        return RevenueComparison(
            this_month=this_month,
            last_month=last_month,
            change=round1(safe_rate(this_month - last_month, last_month)),
        )
