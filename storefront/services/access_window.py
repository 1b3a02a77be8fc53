import calendar
from datetime import date
from typing import Optional, Tuple

from storefront.models.order import OrderKind

# months of access granted by each time-bound kind
ACCESS_MONTHS = {
    OrderKind.TIMED_BOOK_LICENSE: 12,
    OrderKind.MONTHLY_SUBSCRIPTION: 1,
    OrderKind.ANNUAL_SUBSCRIPTION: 12,
}


def add_months(start: date, months: int) -> date:
    """Calendar month arithmetic, clamping to the last day of shorter months."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def access_window(kind: OrderKind, starts_on: date) -> Tuple[Optional[date], Optional[date]]:
    """(start, end) of the entitlement window for `kind`, or (None, None) for purchases."""
    months = ACCESS_MONTHS.get(kind)
    if months is None:
        return None, None
    return starts_on, add_months(starts_on, months)
