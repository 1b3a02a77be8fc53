from enum import Enum


class OrderNotice(str, Enum):
    ORDER_PLACED = "order_placed"
    PAYMENT_SUCCESS = "payment_success"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
