"""
Database Models - Hosted Store Tables

Read-side mappings of the tables owned by the hosted relational store.
The dashboard never writes to them; the demo seeder and the test suite
use the same metadata to create a local copy of the schema.

Request tables:
- orders / order_items: product sales
- moving_requests: relocation offers
- service_requests: technical service jobs
- sell_requests: buy-back offers

Supporting tables:
- customers, products, favorites, cart_items
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
import uuid

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# ENUMERATIONS
# =============================================================================

class OrderStatus(str, Enum):
    """Order status enumeration"""
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RequestStatus(str, Enum):
    """Lifecycle shared by moving, service and sell requests"""
    REVIEWING = "reviewing"
    OFFER_SENT = "offer_sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# =============================================================================
# SUPPORTING TABLES
# =============================================================================

class Customer(Base):
    """Registered customer"""
    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[Optional[str]] = mapped_column(String(200))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    orders: Mapped[List["Order"]] = relationship(back_populates="customer")


class Product(Base):
    """Catalogue product"""
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[Optional[str]] = mapped_column(String(200))
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    stock: Mapped[Optional[int]] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("ix_products_created_at", "created_at"),
    )


class Favorite(Base):
    """Product saved to a customer's favourites"""
    __tablename__ = "favorites"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("customers.id"))
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("products.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class CartItem(Base):
    """Product sitting in a customer's cart"""
    __tablename__ = "cart_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("customers.id"))
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("products.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


# =============================================================================
# REQUEST TABLES
# =============================================================================

class Order(Base):
    """Product order"""
    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("customers.id"))
    total_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    status: Mapped[str] = mapped_column(String(20), default=OrderStatus.PENDING.value)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    customer: Mapped[Optional[Customer]] = relationship(back_populates="orders")
    items: Mapped[List["OrderItem"]] = relationship(back_populates="order")

    __table_args__ = (
        Index("ix_orders_created_at", "created_at"),
        Index("ix_orders_status", "status"),
    )


class OrderItem(Base):
    """Order line"""
    __tablename__ = "order_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("orders.id"), nullable=False)
    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("products.id"))
    product_title: Mapped[Optional[str]] = mapped_column(String(200))
    quantity: Mapped[int] = mapped_column(Integer, default=1)

    order: Mapped[Order] = relationship(back_populates="items")


class MovingRequest(Base):
    """Relocation request priced by an admin"""
    __tablename__ = "moving_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    request_number: Mapped[Optional[str]] = mapped_column(String(50))
    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("customers.id"))
    from_address: Mapped[Optional[str]] = mapped_column(Text)
    to_address: Mapped[Optional[str]] = mapped_column(Text)
    admin_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    status: Mapped[str] = mapped_column(String(20), default=RequestStatus.REVIEWING.value)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_moving_requests_created_at", "created_at"),
        Index("ix_moving_requests_status", "status"),
    )


class ServiceRequest(Base):
    """Technical service request"""
    __tablename__ = "service_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    request_number: Mapped[Optional[str]] = mapped_column(String(50))
    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("customers.id"))
    product_type: Mapped[Optional[str]] = mapped_column(String(100))
    problem_category: Mapped[Optional[str]] = mapped_column(String(100))
    service_address: Mapped[Optional[str]] = mapped_column(Text)
    final_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    status: Mapped[str] = mapped_column(String(20), default=RequestStatus.REVIEWING.value)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_service_requests_created_at", "created_at"),
        Index("ix_service_requests_status", "status"),
    )


class SellRequest(Base):
    """Customer offer to sell a used product"""
    __tablename__ = "sell_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    request_number: Mapped[Optional[str]] = mapped_column(String(50))
    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("customers.id"))
    title: Mapped[Optional[str]] = mapped_column(String(200))
    brand: Mapped[Optional[str]] = mapped_column(String(100))
    admin_offer_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    status: Mapped[str] = mapped_column(String(20), default=RequestStatus.REVIEWING.value)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_sell_requests_created_at", "created_at"),
        Index("ix_sell_requests_status", "status"),
    )

