from decimal import Decimal
from typing import Optional

from storefront.config import settings

# flat rates by ISO 3166-1 alpha-2 code
SHIPPING_COSTS = {
    # Middle East
    "SA": Decimal("15.00"),
    "AE": Decimal("20.00"),
    "KW": Decimal("20.00"),
    "BH": Decimal("20.00"),
    "QA": Decimal("20.00"),
    "OM": Decimal("20.00"),
    "JO": Decimal("25.00"),
    "LB": Decimal("25.00"),
    "EG": Decimal("25.00"),
    "IQ": Decimal("30.00"),
    "YE": Decimal("30.00"),
    "SY": Decimal("30.00"),
    "PS": Decimal("30.00"),
    # North Africa
    "MA": Decimal("30.00"),
    "DZ": Decimal("30.00"),
    "TN": Decimal("30.00"),
    "LY": Decimal("30.00"),
    "SD": Decimal("30.00"),
    # Europe
    "FR": Decimal("35.00"),
    "DE": Decimal("35.00"),
    "GB": Decimal("35.00"),
    "ES": Decimal("35.00"),
    "IT": Decimal("35.00"),
    "NL": Decimal("35.00"),
    "BE": Decimal("35.00"),
    "CH": Decimal("40.00"),
    "AT": Decimal("35.00"),
    "SE": Decimal("40.00"),
    "TR": Decimal("30.00"),
    # Americas
    "US": Decimal("45.00"),
    "CA": Decimal("45.00"),
    # Asia
    "PK": Decimal("35.00"),
    "IN": Decimal("35.00"),
    "MY": Decimal("40.00"),
    "ID": Decimal("40.00"),
}


def qualifies_for_free_shipping(order_total: Optional[Decimal]) -> bool:
    return order_total is not None and order_total >= settings.free_shipping_threshold


def shipping_cost_for_country(country_code: Optional[str]) -> Decimal:
    if not country_code:
        return settings.default_shipping_cost
    return SHIPPING_COSTS.get(country_code.strip().upper(), settings.default_shipping_cost)


def calculate_shipping_cost(country_code: Optional[str], order_total: Optional[Decimal]) -> Decimal:
    """Shipping cost for a printed copy; zero above the free-shipping threshold."""
    if qualifies_for_free_shipping(order_total):
        return Decimal("0.00")
    return shipping_cost_for_country(country_code)
