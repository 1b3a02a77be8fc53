from sqlmodel import Session

from storefront.models.book import Book
from storefront.models.order import Order
from storefront.models.user import User
from storefront.schemas.orders_schemas import OrderAdminRead, OrderRead

_ORDER_FIELDS = (
    "id", "kind", "status", "amount", "shipping_fee", "tracking_number", "carrier",
    "recipient_name", "address", "city", "postal_code", "country", "phone",
    "access_window_start", "access_window_end", "paid_at", "created_at",
)


def _base_fields(session: Session, order: Order) -> dict:
    fields = {name: getattr(order, name) for name in _ORDER_FIELDS}
    fields["book_id"] = order.product_id
    if order.product_id is not None:
        book = session.get(Book, order.product_id)
        fields["book_title"] = book.title if book else None
    return fields


def to_order_read(session: Session, order: Order) -> OrderRead:
    return OrderRead(**_base_fields(session, order))


def to_order_admin_read(session: Session, order: Order) -> OrderAdminRead:
    fields = _base_fields(session, order)
    user = session.get(User, order.user_id)
    return OrderAdminRead(
        **fields,
        user_id=order.user_id,
        user_email=user.email if user else None,
        customer_name=f"{user.first_name} {user.last_name}" if user else None,
        external_checkout_ref=order.external_checkout_ref,
        external_payment_ref=order.external_payment_ref,
        updated_at=order.updated_at,
    )
