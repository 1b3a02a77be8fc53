from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Index, text
from sqlmodel import SQLModel, Field


class OrderKind(str, Enum):
    PHYSICAL_COPY = "PHYSICAL_COPY"
    DIGITAL_DOWNLOAD = "DIGITAL_DOWNLOAD"
    TIMED_BOOK_LICENSE = "TIMED_BOOK_LICENSE"
    MONTHLY_SUBSCRIPTION = "MONTHLY_SUBSCRIPTION"
    ANNUAL_SUBSCRIPTION = "ANNUAL_SUBSCRIPTION"

    @property
    def is_subscription(self) -> bool:
        return self in SUBSCRIPTION_KINDS

    @property
    def requires_product(self) -> bool:
        return self not in SUBSCRIPTION_KINDS

    @property
    def is_time_bound(self) -> bool:
        return self in TIME_BOUND_KINDS


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    PREPARING = "PREPARING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


SUBSCRIPTION_KINDS = frozenset({OrderKind.MONTHLY_SUBSCRIPTION, OrderKind.ANNUAL_SUBSCRIPTION})
PURCHASE_KINDS = frozenset({OrderKind.PHYSICAL_COPY, OrderKind.DIGITAL_DOWNLOAD})
TIME_BOUND_KINDS = frozenset({OrderKind.TIMED_BOOK_LICENSE}) | SUBSCRIPTION_KINDS

STORE_SCOPE = "store"


def scope_for(product_id: Optional[int]) -> str:
    """Tagged form of the product reference: one book, or the whole store."""
    if product_id is None:
        return STORE_SCOPE
    return f"product:{product_id}"


class Order(SQLModel, table=True):
    __tablename__ = "orders"
    __table_args__ = (
        # at most one pending order per (user, scope, kind)
        Index(
            "uq_orders_pending_scope",
            "user_id",
            "scope",
            "kind",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    product_id: Optional[int] = Field(default=None, foreign_key="book.id", index=True)
    scope: str

    kind: OrderKind
    status: OrderStatus = Field(default=OrderStatus.PENDING, index=True)

    amount: Decimal = Field(max_digits=10, decimal_places=2)
    shipping_fee: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)

    external_checkout_ref: Optional[str] = Field(default=None, unique=True, index=True)
    external_payment_ref: Optional[str] = Field(default=None, index=True)

    # physical copies only
    recipient_name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None

    # licenses and subscriptions only
    access_window_start: Optional[date] = None
    access_window_end: Optional[date] = None

    paid_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_global(self) -> bool:
        return self.product_id is None
