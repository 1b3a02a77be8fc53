from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from storefront.models.order import OrderKind, OrderStatus


class OrderRead(BaseModel):
    id: int
    book_id: Optional[int] = None
    book_title: Optional[str] = None
    kind: OrderKind
    status: OrderStatus
    amount: Decimal
    shipping_fee: Optional[Decimal] = None
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    recipient_name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    access_window_start: Optional[date] = None
    access_window_end: Optional[date] = None
    paid_at: Optional[datetime] = None
    created_at: datetime


class OrderAdminRead(OrderRead):
    user_id: int
    user_email: Optional[str] = None
    customer_name: Optional[str] = None
    external_checkout_ref: Optional[str] = None
    external_payment_ref: Optional[str] = None
    updated_at: datetime


class OrderEventRead(BaseModel):
    event_type: str
    label: str
    meta: Optional[dict] = None
    created_by: str
    created_at: datetime


class OrderDetail(BaseModel):
    order: OrderAdminRead
    timeline: List[OrderEventRead]


class OrderPage(BaseModel):
    total_items: int
    total_pages: int
    current_page: int
    results: List[OrderAdminRead]


class StatusUpdate(BaseModel):
    status: OrderStatus


class TrackingUpdate(BaseModel):
    tracking_number: str
    carrier: Optional[str] = None


class AccessResponse(BaseModel):
    book_id: int
    has_access: bool
