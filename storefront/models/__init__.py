from storefront.models.user import User
from storefront.models.book import Book
from storefront.models.order import Order, OrderKind, OrderStatus
from storefront.models.order_event import OrderEvent
from storefront.models.notifications import Notification

# add ALL models here
