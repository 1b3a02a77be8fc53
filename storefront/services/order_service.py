import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from storefront.config import PriceList, settings
from storefront.constants.order_status import (
    ALLOWED_TRANSITIONS,
    FULFILLMENT_STATUSES,
    SETTLEMENT_STATUSES,
)
from storefront.errors import (
    ConflictError,
    InvalidOrderRequest,
    InvalidStatusTransition,
    OrderNotFound,
    ProductNotFound,
    UserNotFound,
)
from storefront.models.book import Book
from storefront.models.order import Order, OrderKind, OrderStatus, scope_for
from storefront.models.user import User
from storefront.notifications import OrderNotice, dispatch_order_event
from storefront.schemas.checkout_schemas import ShippingInfo
from storefront.services import order_repository
from storefront.services.access_window import access_window
from storefront.services.order_event_service import log_order_event
from storefront.services.pricing import price
from storefront.services.shipping_service import calculate_shipping_cost

logger = logging.getLogger(__name__)

STATUS_NOTICES = {
    OrderStatus.SHIPPED: OrderNotice.SHIPPED,
    OrderStatus.DELIVERED: OrderNotice.DELIVERED,
    OrderStatus.CANCELLED: OrderNotice.CANCELLED,
    OrderStatus.REFUNDED: OrderNotice.REFUNDED,
}


def _apply_shipping(order: Order, shipping: ShippingInfo):
    order.recipient_name = shipping.recipient_name
    order.address = shipping.address
    order.city = shipping.city
    order.postal_code = shipping.postal_code
    order.country = shipping.country
    order.phone = shipping.phone
    order.shipping_fee = calculate_shipping_cost(shipping.country, order.amount)


def create_order(
    session: Session,
    *,
    user_id: int,
    kind: OrderKind,
    product_id: Optional[int] = None,
    shipping: Optional[ShippingInfo] = None,
    prices: Optional[PriceList] = None,
    starts_on: Optional[date] = None,
) -> Order:
    """
    Create a pending order, or reuse the one already pending for the same
    (user, product, kind).

    The amount is priced once here and never recomputed. Access windows for
    licenses and subscriptions start on `starts_on` (today by default).
    """
    if kind.requires_product and product_id is None:
        raise InvalidOrderRequest(f"{kind.value} orders require a book")
    if kind.is_subscription and product_id is not None:
        raise InvalidOrderRequest(f"{kind.value} orders cover the whole store and take no book")
    if kind is OrderKind.PHYSICAL_COPY and shipping is None:
        raise InvalidOrderRequest("Shipping information is required for a physical copy")

    if session.get(User, user_id) is None:
        raise UserNotFound(user_id)

    book = None
    if product_id is not None:
        book = session.get(Book, product_id)
        if book is None:
            raise ProductNotFound(product_id)

    scope = scope_for(product_id)

    existing = order_repository.find_pending(session, user_id, scope, kind)
    if existing:
        if kind is OrderKind.PHYSICAL_COPY:
            _apply_shipping(existing, shipping)
            existing.updated_at = datetime.utcnow()
            session.add(existing)
            session.commit()
            session.refresh(existing)
        logger.info(f"Reusing pending order {existing.id} for user {user_id} ({kind.value}, {scope})")
        return existing

    amount = price(book, kind, prices or settings.price_list())
    window_start, window_end = access_window(kind, starts_on or date.today())

    order = Order(
        user_id=user_id,
        product_id=product_id,
        scope=scope,
        kind=kind,
        status=OrderStatus.PENDING,
        amount=amount,
        access_window_start=window_start,
        access_window_end=window_end,
    )
    if kind is OrderKind.PHYSICAL_COPY:
        _apply_shipping(order, shipping)

    session.add(order)
    try:
        session.flush()
    except IntegrityError:
        # a concurrent checkout for the same triple won the insert
        session.rollback()
        existing = order_repository.find_pending(session, user_id, scope, kind)
        if existing is None:
            raise ConflictError(f"Could not create {kind.value} order for user {user_id}")
        logger.info(f"Pending order {existing.id} created concurrently, reusing it")
        return existing

    log_order_event(
        session,
        order.id,
        "order_created",
        "Order placed",
        created_by=f"user:{user_id}",
        meta={"kind": kind.value, "amount": str(amount)},
    )
    session.commit()
    session.refresh(order)

    logger.info(f"Created order {order.id} for user {user_id}: {kind.value} {scope} amount={amount}")

    dispatch_order_event(notice=OrderNotice.ORDER_PLACED, order=order, session=session)
    return order


def create_renewal(
    session: Session,
    *,
    order_id: int,
    user_id: int,
    prices: Optional[PriceList] = None,
    today: Optional[date] = None,
) -> Order:
    """New order extending a paid license or subscription from where it ends."""
    previous = order_repository.get_order(session, order_id)
    if previous is None or previous.user_id != user_id:
        raise OrderNotFound(order_id)
    if not previous.kind.is_time_bound:
        raise InvalidOrderRequest(f"{previous.kind.value} orders cannot be renewed")
    if previous.status != OrderStatus.PAID:
        raise InvalidOrderRequest("Only paid orders can be renewed")

    today = today or date.today()
    starts_on = max(today, previous.access_window_end or today)

    return create_order(
        session,
        user_id=user_id,
        kind=previous.kind,
        product_id=previous.product_id,
        prices=prices,
        starts_on=starts_on,
    )


def attach_checkout_reference(session: Session, order_id: int, checkout_ref: str) -> Order:
    order = order_repository.get_order(session, order_id)
    if order is None:
        raise OrderNotFound(order_id)

    order.external_checkout_ref = checkout_ref
    order.updated_at = datetime.utcnow()
    session.add(order)
    log_order_event(
        session,
        order.id,
        "checkout_opened",
        "Checkout session opened",
        meta={"checkout_ref": checkout_ref},
    )
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError(f"Checkout reference {checkout_ref} is already attached to another order")

    session.refresh(order)
    logger.info(f"Attached checkout {checkout_ref} to order {order.id}")
    return order


def mark_paid(session: Session, checkout_ref: str, payment_ref: Optional[str]) -> Optional[Order]:
    """
    Settle the order behind `checkout_ref`.

    Idempotent: a redelivered confirmation re-records the payment reference
    and changes nothing else. Unknown references are logged and dropped,
    returning None.

    Only PENDING orders are settled. A confirmation for an order that has
    already moved past PAID (cancelled, refunded, in fulfillment) is
    logged and ignored, and the order is returned with its status intact;
    callers check `order.status` to tell whether the payment was applied.
    """
    order = order_repository.find_by_checkout_ref(session, checkout_ref, for_update=True)
    if order is None:
        logger.warning(f"No order for checkout {checkout_ref}, payment {payment_ref} not settled")
        session.rollback()
        return None

    if order.status == OrderStatus.PAID:
        logger.info(f"Order {order.id} already paid, confirmation for {checkout_ref} ignored")
        if payment_ref and order.external_payment_ref != payment_ref:
            order.external_payment_ref = payment_ref
            order.updated_at = datetime.utcnow()
            session.add(order)
            session.commit()
        else:
            # release the row lock taken by the lookup
            session.rollback()
        return order

    if order.status != OrderStatus.PENDING:
        logger.warning(
            f"Payment confirmation for order {order.id} in status {order.status.value} ignored"
        )
        session.rollback()
        return order

    order.status = OrderStatus.PAID
    order.external_payment_ref = payment_ref
    order.paid_at = datetime.utcnow()
    order.updated_at = order.paid_at
    session.add(order)
    log_order_event(
        session,
        order.id,
        "payment_success",
        "Payment confirmed",
        created_by="gateway",
        meta={"checkout_ref": checkout_ref, "payment_ref": payment_ref},
    )
    session.commit()
    session.refresh(order)

    logger.info(f"Order {order.id} settled by checkout {checkout_ref}")

    dispatch_order_event(notice=OrderNotice.PAYMENT_SUCCESS, order=order, session=session)
    return order


def update_status(
    session: Session,
    order_id: int,
    new_status: OrderStatus,
    *,
    actor: str = "admin",
) -> Order:
    order = order_repository.get_order(session, order_id, for_update=True)
    if order is None:
        raise OrderNotFound(order_id)

    current = order.status
    if new_status == current:
        session.rollback()
        return order

    if new_status in SETTLEMENT_STATUSES:
        raise InvalidStatusTransition(current, new_status, "payments settle through the gateway")
    if new_status in FULFILLMENT_STATUSES and order.kind is not OrderKind.PHYSICAL_COPY:
        raise InvalidStatusTransition(current, new_status, "only physical copies are shipped")
    if new_status not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransition(current, new_status)

    order.status = new_status
    order.updated_at = datetime.utcnow()
    session.add(order)
    log_order_event(
        session,
        order.id,
        f"status_{new_status.value.lower()}",
        f"Status changed from {current.value} to {new_status.value}",
        created_by=actor,
        meta={"from": current.value, "to": new_status.value},
    )
    session.commit()
    session.refresh(order)

    logger.info(f"Order {order.id} moved from {current.value} to {new_status.value} by {actor}")

    notice = STATUS_NOTICES.get(new_status)
    if notice:
        dispatch_order_event(
            notice=notice,
            order=order,
            session=session,
            extra={"user_content": _status_message(order, new_status)},
        )
    return order


def update_tracking(
    session: Session,
    order_id: int,
    tracking_number: str,
    carrier: Optional[str] = None,
    *,
    actor: str = "admin",
) -> Order:
    order = order_repository.get_order(session, order_id, for_update=True)
    if order is None:
        raise OrderNotFound(order_id)
    if order.kind is not OrderKind.PHYSICAL_COPY:
        raise InvalidOrderRequest("Tracking applies to physical copies only")

    order.tracking_number = tracking_number
    order.carrier = carrier
    order.updated_at = datetime.utcnow()
    session.add(order)
    log_order_event(
        session,
        order.id,
        "tracking_updated",
        "Tracking information updated",
        created_by=actor,
        meta={"tracking_number": tracking_number, "carrier": carrier},
    )
    session.commit()
    session.refresh(order)

    if order.status == OrderStatus.SHIPPED:
        dispatch_order_event(
            notice=OrderNotice.SHIPPED,
            order=order,
            session=session,
            extra={"user_content": _status_message(order, OrderStatus.SHIPPED)},
            notify_admin=False,
        )
    return order


def _status_message(order: Order, status: OrderStatus) -> str:
    if status == OrderStatus.SHIPPED and order.tracking_number:
        carrier = f" via {order.carrier}" if order.carrier else ""
        return f"Order #{order.id} has shipped{carrier}. Tracking number: {order.tracking_number}"
    return f"Order #{order.id} is now {status.value.lower()}"
