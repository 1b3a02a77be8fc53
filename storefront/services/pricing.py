from decimal import Decimal
from typing import Optional

from storefront.config import PriceList
from storefront.errors import InvalidProductState
from storefront.models.book import Book
from storefront.models.order import OrderKind

CENTS = Decimal("0.01")

_FIXED_PRICES = {
    OrderKind.DIGITAL_DOWNLOAD: "digital_download",
    OrderKind.TIMED_BOOK_LICENSE: "timed_book_license",
    OrderKind.MONTHLY_SUBSCRIPTION: "monthly_subscription",
    OrderKind.ANNUAL_SUBSCRIPTION: "annual_subscription",
}


def price(product: Optional[Book], kind: OrderKind, prices: PriceList) -> Decimal:
    """
    Amount charged for one order of `kind`.

    Physical copies cost the book's list price (zero when the book has no
    price, so checkout is never blocked). Every other kind costs the fixed
    amount from `prices`.
    """
    if kind is OrderKind.PHYSICAL_COPY:
        if product is None:
            raise InvalidProductState("A physical copy cannot be priced without a book")
        if product.price is None:
            return Decimal("0.00")
        list_price = Decimal(product.price)
        if list_price < 0:
            raise InvalidProductState(f"Book {product.id} has a negative list price")
        return list_price.quantize(CENTS)

    return Decimal(getattr(prices, _FIXED_PRICES[kind])).quantize(CENTS)
