from datetime import date
from typing import Optional

from sqlmodel import Session

from storefront.models.book import Book
from storefront.services import order_repository


def has_access(
    session: Session,
    user_id: Optional[int],
    product_id: Optional[int],
    today: Optional[date] = None,
) -> bool:
    """
    Whether the user may read the book right now.

    Any of these grants access: a paid physical or digital purchase of the
    book, a paid one-year license for the book covering today, or a paid
    store-wide subscription covering today. Unknown users and books are
    denied. `today` is read on every call, so results must not be cached.
    """
    if user_id is None or product_id is None:
        return False
    if session.get(Book, product_id) is None:
        return False

    today = today or date.today()

    if order_repository.has_paid_purchase(session, user_id, product_id):
        return True

    if order_repository.has_active_license(session, user_id, product_id, today):
        return True

    return order_repository.has_active_subscription(session, user_id, today)
