# storefront/schemas/checkout_schemas.py
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from storefront.models.order import OrderKind


class ShippingInfo(BaseModel):
    recipient_name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    postal_code: str = Field(min_length=1)
    country: str = Field(min_length=2)   # ISO 3166-1 alpha-2 preferred
    phone: Optional[str] = None


class CheckoutRequest(BaseModel):
    kind: OrderKind
    book_id: Optional[int] = None      # absent for store-wide subscriptions
    shipping: Optional[ShippingInfo] = None


class CheckoutResponse(BaseModel):
    order_id: int
    checkout_url: str
    checkout_ref: str
    amount: Decimal
    shipping_fee: Optional[Decimal] = None
    status: str


class ShippingQuote(BaseModel):
    country_code: Optional[str]
    shipping_cost: Decimal
    free_shipping_threshold: Decimal
    free_shipping: bool
