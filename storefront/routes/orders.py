from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from storefront.config import settings
from storefront.database import get_session
from storefront.models.book import Book
from storefront.models.order import Order
from storefront.models.user import User
from storefront.schemas.checkout_schemas import CheckoutRequest, CheckoutResponse, ShippingQuote
from storefront.schemas.orders_schemas import OrderRead
from storefront.services import order_repository
from storefront.services.order_service import (
    attach_checkout_reference,
    create_order,
    create_renewal,
)
from storefront.services.payment_gateway import StripeGateway, get_payment_gateway
from storefront.services.shipping_service import calculate_shipping_cost, qualifies_for_free_shipping
from storefront.utils.serializers import to_order_read
from storefront.utils.token import get_current_user

router = APIRouter()


def _open_checkout(
    session: Session,
    order: Order,
    user: User,
    gateway: StripeGateway,
) -> CheckoutResponse:
    book = session.get(Book, order.product_id) if order.product_id is not None else None
    checkout = gateway.open_checkout(order, book, customer_email=user.email)
    order = attach_checkout_reference(session, order.id, checkout.checkout_ref)

    return CheckoutResponse(
        order_id=order.id,
        checkout_url=checkout.checkout_url,
        checkout_ref=checkout.checkout_ref,
        amount=order.amount,
        shipping_fee=order.shipping_fee,
        status=order.status.value,
    )


@router.get("/shipping-cost", response_model=ShippingQuote)
def shipping_cost(
    country_code: Optional[str] = None,
    order_total: Optional[Decimal] = Query(None, ge=0),
):
    return ShippingQuote(
        country_code=country_code,
        shipping_cost=calculate_shipping_cost(country_code, order_total),
        free_shipping_threshold=settings.free_shipping_threshold,
        free_shipping=qualifies_for_free_shipping(order_total),
    )


@router.post("/checkout", response_model=CheckoutResponse)
def checkout(
    payload: CheckoutRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    """Price (or reuse) a pending order and open a hosted checkout for it."""
    order = create_order(
        session,
        user_id=current_user.id,
        kind=payload.kind,
        product_id=payload.book_id,
        shipping=payload.shipping,
    )
    return _open_checkout(session, order, current_user, gateway)


@router.post("/{order_id}/renew", response_model=CheckoutResponse)
def renew(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    order = create_renewal(session, order_id=order_id, user_id=current_user.id)
    return _open_checkout(session, order, current_user, gateway)


@router.get("/by-session", response_model=OrderRead)
def order_by_session(
    session_id: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = order_repository.find_by_checkout_ref(session, session_id)
    if not order or order.user_id != current_user.id:
        raise HTTPException(404, "Order not found")
    return to_order_read(session, order)


@router.get("/mine", response_model=List[OrderRead])
def my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    orders = order_repository.list_for_user(session, current_user.id)
    return [to_order_read(session, o) for o in orders]
