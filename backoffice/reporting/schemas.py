"""
Dashboard Response Models

Pydantic models for the aggregation payload. Attributes are snake_case in
Python and camelCase on the wire.
"""

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# KPIs
# =============================================================================

class KPIs(CamelModel):
    """Scalar metrics shown in the dashboard cards"""
    total_revenue: float = 0
    total_requests: int = 0
    cancellation_rate: float = Field(default=0, ge=0, le=100)
    acceptance_rate: float = Field(default=0, ge=0, le=100)
    avg_response_time: float = 0
    customers_count: int = 0
    cart_abandonment_rate: float = Field(default=0, ge=0, le=100)


# =============================================================================
# CHARTS
# =============================================================================

class RankedItem(CamelModel):
    """One row of a top-N breakdown"""
    name: str
    value: Union[int, float]


class MonthlyTrendPoint(CamelModel):
    """Requests per module in one calendar month"""
    month: str
    orders: int = 0
    moving: int = 0
    service: int = 0
    sell: int = 0


class DailyTrendPoint(CamelModel):
    """Requests across all modules in one day"""
    day: str
    requests: int = 0


class RevenueShare(CamelModel):
    """Revenue contributed by one module"""
    name: str
    value: float = 0
    color: str


class RatePoint(CamelModel):
    """Percentage for one module"""
    name: str
    rate: float = 0


class StockPoint(CamelModel):
    """Catalogue size and stock value at the end of a month"""
    month: str
    product_count: int = 0
    total_value: int = 0


class Charts(CamelModel):
    """All chart series"""
    monthly_trend: List[MonthlyTrendPoint] = Field(default_factory=list)
    daily_trend: List[DailyTrendPoint] = Field(default_factory=list)
    revenue_distribution: List[RevenueShare] = Field(default_factory=list)
    cancellation_analysis: List[RatePoint] = Field(default_factory=list)
    top_selling_products: List[RankedItem] = Field(default_factory=list)
    top_sell_request_products: List[RankedItem] = Field(default_factory=list)
    top_problematic_products: List[RankedItem] = Field(default_factory=list)
    top_problem_categories: List[RankedItem] = Field(default_factory=list)
    top_favorite_products: List[RankedItem] = Field(default_factory=list)
    top_abandoned_products: List[RankedItem] = Field(default_factory=list)
    customer_segmentation: List[RankedItem] = Field(default_factory=list)
    avg_transaction_values: List[RankedItem] = Field(default_factory=list)
    completion_rates: List[RatePoint] = Field(default_factory=list)
    stock_by_month: List[StockPoint] = Field(default_factory=list)


# =============================================================================
# PENDING WORK
# =============================================================================

class PendingItem(CamelModel):
    """A request that needs an admin or a customer to act"""
    id: str
    type: str
    request_number: Optional[str] = None
    created_at: datetime
    from_address: Optional[str] = None
    to_address: Optional[str] = None
    product_type: Optional[str] = None
    service_address: Optional[str] = None
    title: Optional[str] = None
    brand: Optional[str] = None
    admin_price: Optional[float] = None
    admin_offer_price: Optional[float] = None


class PendingWork(CamelModel):
    """Requests waiting on the admin (urgent) or on the customer"""
    urgent: List[PendingItem] = Field(default_factory=list)
    awaiting_response: List[PendingItem] = Field(default_factory=list)


# =============================================================================
# CUSTOMERS & REVENUE
# =============================================================================

class ActiveCustomer(CamelModel):
    """Customer ranked by number of orders"""
    name: str
    email: str = ""
    order_count: int = 0
    total_spent: float = 0


class RevenueComparison(CamelModel):
    """This month's revenue against last month's"""
    this_month: float = 0
    last_month: float = 0
    change: float = 0


class ReportMeta(CamelModel):
    """Window the payload was computed for"""
    filter: str
    start_date: datetime
    end_date: datetime
    generated_at: datetime


class DashboardResponse(CamelModel):
    """Complete dashboard payload"""
    kpis: KPIs
    charts: Charts
    pending_work: PendingWork
    top_active_customers: List[ActiveCustomer] = Field(default_factory=list)
    monthly_revenue_comparison: RevenueComparison
    meta: ReportMeta


class ErrorResponse(BaseModel):
    """Body of 401/500 responses"""
    error: str
    details: Optional[str] = None
