"""
Reporting Repository

Read-only queries against the hosted store. Every coroutine opens its own
session so the aggregator can run them concurrently; a semaphore bounds how
many are in flight at once.
"""

import asyncio
import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

import structlog
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import InstrumentedAttribute

from backoffice.database.models import (
    CartItem,
    Customer,
    Favorite,
    Order,
    OrderItem,
    Product,
    RequestStatus,
    SellRequest,
    ServiceRequest,
)
from backoffice.reporting.windows import Bucket, TimeWindow

logger = structlog.get_logger(__name__)

Span = Union[TimeWindow, Bucket]


def within(column: InstrumentedAttribute, span: Optional[Span]) -> list:
    """WHERE clauses restricting ``column`` to ``span``."""
    if span is None:
        return []
    upper = column <= span.end if span.end_inclusive else column < span.end
    return [column >= span.start, upper]


class ReportingRepository:
    """
    Data access for the dashboard aggregator.

    Example:
        repo = ReportingRepository(get_session_factory())
        orders = await repo.count(Order, window)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_concurrency: int = 8,
    ):
        self._session_factory = session_factory
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def _scalar(self, query: Select) -> Any:
        async with self._semaphore:
            async with self._session_factory() as session:
                result = await session.execute(query)
                return result.scalar()

    async def _rows(self, query: Select) -> List[Any]:
        async with self._semaphore:
            async with self._session_factory() as session:
                result = await session.execute(query)
                return list(result.all())

    # -------------------------------------------------------------------------
    # Counts and sums
    # -------------------------------------------------------------------------

    async def count(
        self,
        model,
        window: Optional[Span] = None,
        statuses: Optional[Sequence[str]] = None,
    ) -> int:
        """Rows of ``model`` created in ``window`` with one of ``statuses``."""
        query = select(func.count()).select_from(model)
        conditions = within(model.created_at, window)
        if statuses:
            conditions.append(model.status.in_(list(statuses)))
        if conditions:
            query = query.where(*conditions)
        return int(await self._scalar(query) or 0)

    async def sum_column(
        self,
        model,
        column: InstrumentedAttribute,
        window: Optional[Span] = None,
        statuses: Optional[Sequence[str]] = None,
    ) -> float:
        """Sum of ``column``; NULL prices count as 0."""
        query = select(func.coalesce(func.sum(column), 0)).select_from(model)
        conditions = within(model.created_at, window)
        if statuses:
            conditions.append(model.status.in_(list(statuses)))
        if conditions:
            query = query.where(*conditions)
        return float(await self._scalar(query) or 0)

    async def response_intervals(
        self,
        model,
        price_column: InstrumentedAttribute,
        window: Span,
    ) -> List[Tuple[datetime, datetime]]:
        """(created_at, updated_at) of rows an admin has priced."""
        query = (
            select(model.created_at, model.updated_at)
            .where(price_column.is_not(None), *within(model.created_at, window))
        )
        return [(row.created_at, row.updated_at) for row in await self._rows(query)]

    # -------------------------------------------------------------------------
    # Rows for breakdowns
    # -------------------------------------------------------------------------

    async def order_item_quantities(self, window: Span) -> List[Tuple[Optional[str], int]]:
        """(product_title, quantity) of lines whose order falls in ``window``."""
        query = (
            select(OrderItem.product_title, OrderItem.quantity)
            .join(Order, OrderItem.order_id == Order.id)
            .where(*within(Order.created_at, window))
        )
        return [(row.product_title, int(row.quantity or 0)) for row in await self._rows(query)]

    async def sell_request_labels(self, window: Span) -> List[Tuple[Optional[str], Optional[str]]]:
        """(brand, title) of sell requests."""
        query = select(SellRequest.brand, SellRequest.title).where(*within(SellRequest.created_at, window))
        return [(row.brand, row.title) for row in await self._rows(query)]

    async def service_request_labels(self, window: Span) -> List[Tuple[Optional[str], Optional[str]]]:
        """(product_type, problem_category) of service requests."""
        query = (
            select(ServiceRequest.product_type, ServiceRequest.problem_category)
            .where(*within(ServiceRequest.created_at, window))
        )
        return [(row.product_type, row.problem_category) for row in await self._rows(query)]

    async def favorite_product_ids(self, window: Span) -> List[str]:
        query = select(Favorite.product_id).where(*within(Favorite.created_at, window))
        return [str(row.product_id) for row in await self._rows(query)]

    async def cart_product_ids(self) -> List[str]:
        """Product of every cart item, regardless of age."""
        query = select(CartItem.product_id)
        return [str(row.product_id) for row in await self._rows(query)]

    async def purchased_product_ids(self, window: Span, statuses: Sequence[str]) -> Set[str]:
        """Products bought in orders of the given statuses."""
        query = (
            select(OrderItem.product_id)
            .join(Order, OrderItem.order_id == Order.id)
            .where(Order.status.in_(list(statuses)), *within(Order.created_at, window))
        )
        return {str(row.product_id) for row in await self._rows(query) if row.product_id is not None}

    async def product_names(self, product_ids: Iterable[str]) -> Dict[str, Optional[str]]:
        """Look up names for ``product_ids``; unknown ids are absent."""
        ids = [_as_uuid(pid) for pid in product_ids]
        ids = [pid for pid in ids if pid is not None]
        if not ids:
            return {}
        query = select(Product.id, Product.name).where(Product.id.in_(ids))
        return {str(row.id): row.name for row in await self._rows(query)}

    async def customer_orders(self, window: Span) -> List[Dict[str, Any]]:
        """Orders in ``window`` joined to the ordering customer."""
        query = (
            select(Order.customer_id, Order.total_price, Customer.name, Customer.email)
            .join(Customer, Order.customer_id == Customer.id)
            .where(*within(Order.created_at, window))
            .order_by(Order.created_at)
        )
        return [
            {
                "customer_id": str(row.customer_id),
                "total_price": float(row.total_price or 0),
                "name": row.name,
                "email": row.email,
            }
            for row in await self._rows(query)
        ]

    async def customer_ids(self, model, window: Span) -> Set[str]:
        """Customers with at least one ``model`` row in ``window``."""
        query = (
            select(model.customer_id)
            .where(model.customer_id.is_not(None), *within(model.created_at, window))
            .distinct()
        )
        return {str(row.customer_id) for row in await self._rows(query)}

    # -------------------------------------------------------------------------
    # Pending work
    # -------------------------------------------------------------------------

    async def urgent_requests(
        self,
        model,
        columns: Sequence[str],
        older_than: datetime,
        limit: int,
    ) -> List[Dict[str, Any]]:
        """Requests still in review since before ``older_than``, oldest first."""
        query = (
            select(*[getattr(model, name) for name in columns])
            .where(model.status == RequestStatus.REVIEWING.value, model.created_at < older_than)
            .order_by(model.created_at.asc())
            .limit(limit)
        )
        return [dict(row._mapping) for row in await self._rows(query)]

    async def awaiting_requests(
        self,
        model,
        columns: Sequence[str],
        limit: int,
    ) -> List[Dict[str, Any]]:
        """Requests with an offer waiting on the customer, newest first."""
        query = (
            select(*[getattr(model, name) for name in columns])
            .where(model.status == RequestStatus.OFFER_SENT.value)
            .order_by(model.created_at.desc())
            .limit(limit)
        )
        return [dict(row._mapping) for row in await self._rows(query)]

    # -------------------------------------------------------------------------
    # Catalogue
    # -------------------------------------------------------------------------

    async def product_stock(self, created_before: datetime) -> List[Tuple[float, int]]:
        """(price, stock) of products that existed before ``created_before``."""
        query = select(Product.price, Product.stock).where(Product.created_at < created_before)
        return [(float(row.price or 0), int(row.stock or 0)) for row in await self._rows(query)]


def _as_uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        logger.debug("Skipping malformed product id", product_id=value)
        return None
