from storefront.notifications.events import OrderNotice
from storefront.notifications.channels import Channel


NOTIFICATION_RULES = {

    OrderNotice.ORDER_PLACED: {
        Channel.INAPP_ADMIN: True,
    },

    OrderNotice.PAYMENT_SUCCESS: {
        Channel.INAPP_USER: True,
        Channel.INAPP_ADMIN: True,
    },

    OrderNotice.SHIPPED: {
        Channel.INAPP_USER: True,
        Channel.INAPP_ADMIN: True,
    },

    OrderNotice.DELIVERED: {
        Channel.INAPP_USER: True,
    },

    OrderNotice.CANCELLED: {
        Channel.INAPP_USER: True,
        Channel.INAPP_ADMIN: True,
    },

    OrderNotice.REFUNDED: {
        Channel.INAPP_USER: True,
        Channel.INAPP_ADMIN: True,
    },

}


DEFAULT_TITLES = {
    OrderNotice.ORDER_PLACED: "New order",
    OrderNotice.PAYMENT_SUCCESS: "Payment received",
    OrderNotice.SHIPPED: "Order shipped",
    OrderNotice.DELIVERED: "Order delivered",
    OrderNotice.CANCELLED: "Order cancelled",
    OrderNotice.REFUNDED: "Order refunded",
}
