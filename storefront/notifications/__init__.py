from .events import OrderNotice
from .dispatcher import dispatch_order_event

__all__ = [
    "OrderNotice",
    "dispatch_order_event",
]
