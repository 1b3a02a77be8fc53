from datetime import date
from typing import List, Optional, Tuple

from sqlmodel import Session, func, select

from storefront.models.order import (
    Order,
    OrderKind,
    OrderStatus,
    PURCHASE_KINDS,
    SUBSCRIPTION_KINDS,
)


def get_order(session: Session, order_id: int, *, for_update: bool = False) -> Optional[Order]:
    query = select(Order).where(Order.id == order_id)
    if for_update:
        query = query.with_for_update()
    return session.exec(query).first()


def find_by_checkout_ref(
    session: Session, checkout_ref: str, *, for_update: bool = False
) -> Optional[Order]:
    query = select(Order).where(Order.external_checkout_ref == checkout_ref)
    if for_update:
        query = query.with_for_update()
    return session.exec(query).first()


def find_pending(session: Session, user_id: int, scope: str, kind: OrderKind) -> Optional[Order]:
    """The pending order for (user, scope, kind), if one exists."""
    return session.exec(
        select(Order)
        .where(Order.user_id == user_id)
        .where(Order.scope == scope)
        .where(Order.kind == kind)
        .where(Order.status == OrderStatus.PENDING)
    ).first()


def list_for_user(session: Session, user_id: int) -> List[Order]:
    return session.exec(
        select(Order)
        .where(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
    ).all()


def list_orders(
    session: Session,
    *,
    status: Optional[OrderStatus] = None,
    kind: Optional[OrderKind] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[int, List[Order]]:
    query = select(Order)
    if status:
        query = query.where(Order.status == status)
    if kind:
        query = query.where(Order.kind == kind)

    total = session.exec(select(func.count()).select_from(query.subquery())).one()
    orders = session.exec(
        query.order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return total, orders


# ---------- entitlement queries ----------

def has_paid_purchase(session: Session, user_id: int, product_id: int) -> bool:
    """Paid physical or digital purchase of the book. Never expires."""
    return session.exec(
        select(Order.id)
        .where(Order.user_id == user_id)
        .where(Order.product_id == product_id)
        .where(Order.status == OrderStatus.PAID)
        .where(Order.kind.in_(list(PURCHASE_KINDS)))
        .limit(1)
    ).first() is not None


def has_active_license(session: Session, user_id: int, product_id: int, today: date) -> bool:
    return session.exec(
        select(Order.id)
        .where(Order.user_id == user_id)
        .where(Order.product_id == product_id)
        .where(Order.status == OrderStatus.PAID)
        .where(Order.kind == OrderKind.TIMED_BOOK_LICENSE)
        .where(Order.access_window_start <= today)
        .where(Order.access_window_end >= today)
        .limit(1)
    ).first() is not None


def has_active_subscription(session: Session, user_id: int, today: date) -> bool:
    """Paid store-wide subscription whose window covers `today`."""
    return session.exec(
        select(Order.id)
        .where(Order.user_id == user_id)
        .where(Order.product_id.is_(None))
        .where(Order.status == OrderStatus.PAID)
        .where(Order.kind.in_(list(SUBSCRIPTION_KINDS)))
        .where(Order.access_window_start <= today)
        .where(Order.access_window_end >= today)
        .limit(1)
    ).first() is not None
