"""
Demo Data Seeder

Creates the store tables and fills them with random but plausible rows so
the dashboard has something to show locally.

    python -m backoffice.database.seed --customers 200 --days 200
"""

import argparse
import asyncio
import random
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Sequence

import structlog
from faker import Faker

from backoffice.config import get_settings
from backoffice.config.logging import configure_logging
from backoffice.database.connection import close_database, get_db, get_engine, init_database
from backoffice.database.models import (
    Base,
    CartItem,
    Customer,
    Favorite,
    MovingRequest,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    RequestStatus,
    SellRequest,
    ServiceRequest,
)
from backoffice.reporting.windows import utcnow

logger = structlog.get_logger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

PRODUCT_TYPES = ["Washing machine", "Refrigerator", "Television", "Laptop", "Air conditioner", "Oven"]
PROBLEM_CATEGORIES = ["Not turning on", "Noise", "Leak", "Display", "Overheating", "Broken part", "Software"]
BRANDS = ["Samsung", "LG", "Bosch", "Apple", "Sony", "Philips", "Arcelik", "Beko"]
SELL_TITLES = ["Phone", "Tablet", "Laptop", "Headphones", "Camera", "Console"]

ORDER_STATUSES = [
    (OrderStatus.PENDING, 0.10),
    (OrderStatus.PROCESSING, 0.10),
    (OrderStatus.SHIPPED, 0.15),
    (OrderStatus.DELIVERED, 0.55),
    (OrderStatus.CANCELLED, 0.10),
]
REQUEST_STATUSES = [
    (RequestStatus.REVIEWING, 0.20),
    (RequestStatus.OFFER_SENT, 0.15),
    (RequestStatus.ACCEPTED, 0.20),
    (RequestStatus.REJECTED, 0.10),
    (RequestStatus.CANCELLED, 0.05),
    (RequestStatus.COMPLETED, 0.30),
]


def _pick(weighted: Sequence) -> str:
    statuses, weights = zip(*weighted)
    return random.choices(statuses, weights=weights)[0].value


def _money(low: float, high: float) -> Decimal:
    return Decimal(str(round(random.uniform(low, high), 2)))


class DemoDataGenerator:
    """Builds unsaved model instances spread over the last ``days`` days"""

    def __init__(self, days: int = 200, seed: Optional[int] = 42, now: Optional[datetime] = None):
        self.days = days
        self.now = now or utcnow()
        self.fake = Faker()
        if seed is not None:
            random.seed(seed)
            Faker.seed(seed)
        self._counter = 0

    def moment(self) -> datetime:
        return self.now - timedelta(seconds=random.randint(0, self.days * 86400))

    def _number(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter:06d}"

    def _answered(self, created: datetime) -> datetime:
        return min(created + timedelta(hours=random.uniform(0.5, 72)), self.now)

    def customers(self, n: int) -> List[Customer]:
        return [
            Customer(id=uuid.uuid4(), name=self.fake.name(), email=self.fake.unique.email(), created_at=self.moment())
            for _ in range(n)
        ]

    def products(self, n: int) -> List[Product]:
        return [
            Product(
                id=uuid.uuid4(),
                name=f"{random.choice(BRANDS)} {self.fake.word().title()} {random.choice(SELL_TITLES)}",
                price=_money(10, 2500),
                stock=random.randint(0, 80),
                created_at=self.moment(),
            )
            for _ in range(n)
        ]

    def orders(self, customers: List[Customer], products: List[Product], n: int) -> List[Order]:
        orders = []
        for _ in range(n):
            lines = random.sample(products, k=random.randint(1, min(4, len(products))))
            items = [
                OrderItem(product_id=product.id, product_title=product.name, quantity=random.randint(1, 3))
                for product in lines
            ]
            total = sum((product.price * item.quantity for product, item in zip(lines, items)), Decimal("0"))
            orders.append(Order(
                customer_id=random.choice(customers).id,
                total_price=total,
                status=_pick(ORDER_STATUSES),
                created_at=self.moment(),
                items=items,
            ))
        return orders

    def moving_requests(self, customers: List[Customer], n: int) -> List[MovingRequest]:
        requests = []
        for _ in range(n):
            status = _pick(REQUEST_STATUSES)
            created = self.moment()
            priced = status != RequestStatus.REVIEWING.value
            requests.append(MovingRequest(
                request_number=self._number("MV"),
                customer_id=random.choice(customers).id,
                from_address=self.fake.address().replace("\n", ", "),
                to_address=self.fake.address().replace("\n", ", "),
                admin_price=_money(150, 3000) if priced else None,
                status=status,
                created_at=created,
                updated_at=self._answered(created) if priced else created,
            ))
        return requests

    def service_requests(self, customers: List[Customer], n: int) -> List[ServiceRequest]:
        requests = []
        for _ in range(n):
            status = _pick(REQUEST_STATUSES)
            created = self.moment()
            requests.append(ServiceRequest(
                request_number=self._number("SV"),
                customer_id=random.choice(customers).id,
                product_type=random.choice(PRODUCT_TYPES),
                problem_category=random.choice(PROBLEM_CATEGORIES + [None]),
                service_address=self.fake.address().replace("\n", ", "),
                final_price=_money(30, 800) if status == RequestStatus.COMPLETED.value else None,
                status=status,
                created_at=created,
                updated_at=self._answered(created),
            ))
        return requests

    def sell_requests(self, customers: List[Customer], n: int) -> List[SellRequest]:
        requests = []
        for _ in range(n):
            status = _pick(REQUEST_STATUSES)
            created = self.moment()
            priced = status != RequestStatus.REVIEWING.value
            requests.append(SellRequest(
                request_number=self._number("SL"),
                customer_id=random.choice(customers).id,
                title=random.choice(SELL_TITLES),
                brand=random.choice(BRANDS + [None]),
                admin_offer_price=_money(20, 1500) if priced else None,
                status=status,
                created_at=created,
                updated_at=self._answered(created) if priced else created,
            ))
        return requests

    def favorites(self, customers: List[Customer], products: List[Product], n: int) -> List[Favorite]:
        return [
            Favorite(customer_id=random.choice(customers).id, product_id=random.choice(products).id,
                     created_at=self.moment())
            for _ in range(n)
        ]

    def cart_items(self, customers: List[Customer], products: List[Product], n: int) -> List[CartItem]:
        return [
            CartItem(customer_id=random.choice(customers).id, product_id=random.choice(products).id,
                     quantity=random.randint(1, 3), created_at=self.moment())
            for _ in range(n)
        ]


async def create_tables() -> None:
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed(customers: int = 200, products: int = 60, days: int = 200, seed_value: Optional[int] = 42) -> None:
    """Create the schema and insert one batch of demo rows."""
    generator = DemoDataGenerator(days=days, seed=seed_value)

    people = generator.customers(customers)
    catalogue = generator.products(products)
    batches = {
        "customers": people,
        "products": catalogue,
        "orders": generator.orders(people, catalogue, customers * 3),
        "moving_requests": generator.moving_requests(people, customers),
        "service_requests": generator.service_requests(people, customers),
        "sell_requests": generator.sell_requests(people, customers // 2),
        "favorites": generator.favorites(people, catalogue, customers * 2),
        "cart_items": generator.cart_items(people, catalogue, customers),
    }

    async with get_db() as db:
        for table, rows in batches.items():
            db.add_all(rows)
            await db.flush()
            logger.info("Inserted demo rows", table=table, rows=len(rows))


async def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Seed the dashboard store with demo data")
    parser.add_argument("--customers", type=int, default=200, help="Number of customers (default: 200)")
    parser.add_argument("--products", type=int, default=60, help="Number of products (default: 60)")
    parser.add_argument("--days", type=int, default=200, help="Spread rows over this many days (default: 200)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings=settings)
    logger.info("Starting database seeding...")
    await init_database(settings)

    try:
        await create_tables()
        await seed(args.customers, args.products, args.days, args.seed)
        logger.info("Database seeding completed successfully!")
    except Exception as e:
        logger.error("Seeding failed", error=str(e))
        raise
    finally:
        await close_database()


def run() -> None:
    """Console script entry point"""
    asyncio.run(main())


if __name__ == "__main__":
    run()
