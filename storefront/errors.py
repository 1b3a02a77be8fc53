"""Error taxonomy for the order settlement and entitlement engine."""


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    status_code = 500


class NotFoundError(StorefrontError):
    status_code = 404


class UserNotFound(NotFoundError):
    def __init__(self, user_id=None):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}" if user_id is not None else "User not found")


class ProductNotFound(NotFoundError):
    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"Book not found: {product_id}")


class OrderNotFound(NotFoundError):
    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class ConflictError(StorefrontError):
    """Raised when the store rejects a write on a uniqueness constraint."""

    status_code = 409


class InvalidStatusTransition(ConflictError):
    def __init__(self, current, requested, reason: str | None = None):
        self.current = current
        self.requested = requested
        msg = f"Cannot move order from {current.value} to {requested.value}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class InvalidOrderRequest(StorefrontError):
    status_code = 400


class InvalidSignature(StorefrontError):
    """Webhook payload failed authentication or could not be parsed."""

    status_code = 400


class GatewayError(StorefrontError):
    """The payment gateway was unreachable or refused the request. Retryable."""

    status_code = 502


class InvalidProductState(StorefrontError):
    status_code = 422
