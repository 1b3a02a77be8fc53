import json
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from decimal import Decimal
from typing import Callable, Optional, Sequence

import stripe
from sqlmodel import Session

from storefront.config import settings
from storefront.errors import GatewayError, InvalidSignature
from storefront.models.book import Book
from storefront.models.order import Order, OrderKind, OrderStatus
from storefront.services import order_service

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"

# Raw-text fallback patterns. The session id is anchored to the checkout
# session prefix so ids of other objects in the payload never match.
SESSION_ID_PATTERN = re.compile(r'"id"\s*:\s*"(cs_(?:test|live)_[A-Za-z0-9_]+)"')
PAYMENT_INTENT_PATTERN = re.compile(r'"payment_intent"\s*:\s*"(pi_[A-Za-z0-9_]+)"')


@dataclass(frozen=True)
class CheckoutSession:
    checkout_url: str
    checkout_ref: str


@dataclass(frozen=True)
class SettlementRef:
    checkout_ref: str
    payment_ref: Optional[str]


@dataclass(frozen=True)
class WebhookAck:
    event_id: Optional[str]
    event_type: Optional[str]
    settled: bool = False
    order_id: Optional[int] = None


def describe(order: Order, book: Optional[Book]) -> str:
    """Line item label shown on the gateway's checkout page."""
    title = book.title if book else ""
    descriptions = {
        OrderKind.PHYSICAL_COPY: f"Printed copy - {title}",
        OrderKind.DIGITAL_DOWNLOAD: f"PDF download - {title}",
        OrderKind.TIMED_BOOK_LICENSE: f"One year reading access - {title}",
        OrderKind.MONTHLY_SUBSCRIPTION: "Monthly subscription - all books",
        OrderKind.ANNUAL_SUBSCRIPTION: "Annual subscription - all books",
    }
    return descriptions[order.kind]


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1")))


# ---------- settlement extractors ----------

def _session_from_event_object(event, payload: str) -> Optional[SettlementRef]:
    data = event.get("data") or {}
    session_obj = data.get("object")
    if not session_obj:
        return None

    session_id = session_obj.get("id")
    if not session_id or not str(session_id).startswith("cs_"):
        return None

    payment_intent = session_obj.get("payment_intent")
    if isinstance(payment_intent, dict):
        payment_intent = payment_intent.get("id")
    return SettlementRef(checkout_ref=session_id, payment_ref=payment_intent)


def _session_from_raw_payload(event, payload: str) -> Optional[SettlementRef]:
    session_match = SESSION_ID_PATTERN.search(payload)
    if not session_match:
        return None
    intent_match = PAYMENT_INTENT_PATTERN.search(payload)
    logger.info(f"Recovered checkout session {session_match.group(1)} from raw webhook payload")
    return SettlementRef(
        checkout_ref=session_match.group(1),
        payment_ref=intent_match.group(1) if intent_match else None,
    )


SETTLEMENT_EXTRACTORS: Sequence[Callable] = (
    _session_from_event_object,
    _session_from_raw_payload,
)


def extract_settlement(event, payload: str) -> Optional[SettlementRef]:
    """First extractor that recovers a checkout session wins."""
    for extractor in SETTLEMENT_EXTRACTORS:
        ref = extractor(event, payload)
        if ref is not None:
            return ref
    return None


class StripeGateway:
    def __init__(
        self,
        secret_key: str,
        webhook_secret: str,
        *,
        currency: str = "eur",
        frontend_url: str = "http://localhost:5173",
        timeout: int = 10,
    ):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.currency = currency
        self.frontend_url = frontend_url.rstrip("/")
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @classmethod
    def from_settings(cls, config=settings) -> "StripeGateway":
        return cls(
            config.stripe_secret_key,
            config.stripe_webhook_secret,
            currency=config.stripe_currency,
            frontend_url=config.frontend_url,
            timeout=config.stripe_timeout_seconds,
        )

    def _line_item(self, name: str, amount: Decimal) -> dict:
        return {
            "price_data": {
                "currency": self.currency,
                "product_data": {"name": name},
                "unit_amount": to_minor_units(amount),
            },
            "quantity": 1,
        }

    def open_checkout(
        self,
        order: Order,
        book: Optional[Book] = None,
        customer_email: Optional[str] = None,
    ) -> CheckoutSession:
        """
        Create a hosted checkout session for the order.

        The order id travels as session metadata. Any gateway failure
        (network, auth, timeout) surfaces as GatewayError and the order is
        left pending.
        """
        line_items = [self._line_item(describe(order, book), order.amount)]
        if order.shipping_fee:
            line_items.append(self._line_item("Shipping", order.shipping_fee))

        if order.product_id is not None:
            cancel_url = f"{self.frontend_url}/books/{order.product_id}/order"
        else:
            cancel_url = f"{self.frontend_url}/subscriptions"

        params = {
            "mode": "payment",
            "line_items": line_items,
            "success_url": f"{self.frontend_url}/orders/success?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": cancel_url,
            "metadata": {"order_id": str(order.id)},
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            checkout_session = stripe.checkout.Session.create(api_key=self.secret_key, **params)
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating checkout session for order {order.id}: {e}")
            raise GatewayError(f"Payment gateway unavailable: {e.user_message or e}") from e

        return CheckoutSession(checkout_url=checkout_session.url, checkout_ref=checkout_session.id)

    def verify(self, payload: bytes, signature: Optional[str]):
        """Authenticate and parse a webhook body. Nothing is mutated on failure."""
        if not signature:
            raise InvalidSignature("Missing Stripe-Signature header")
        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Invalid Stripe webhook signature: {e}")
            raise InvalidSignature("Invalid signature") from e
        except ValueError as e:
            logger.warning(f"Malformed Stripe webhook payload: {e}")
            raise InvalidSignature("Malformed payload") from e

    def handle_webhook(self, session: Session, payload: bytes, signature: Optional[str]) -> WebhookAck:
        """
        Verify a webhook delivery and settle the order it confirms.

        Every authenticated event is acknowledged, including ones that
        cannot be acted on, so the gateway stops redelivering them.
        Extraction reads the verified body as plain JSON; SDK objects are
        not dicts on every stripe release.
        """
        self.verify(payload, signature)
        raw = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        event = json.loads(raw)
        event_id = event.get("id")
        event_type = event.get("type")
        logger.info(f"Webhook event {event_id} type: {event_type}")

        if event_type != CHECKOUT_COMPLETED:
            return WebhookAck(event_id=event_id, event_type=event_type)

        ref = extract_settlement(event, raw)
        if ref is None:
            logger.warning(f"Could not extract checkout session from event {event_id}")
            return WebhookAck(event_id=event_id, event_type=event_type)

        order = order_service.mark_paid(session, ref.checkout_ref, ref.payment_ref)
        return WebhookAck(
            event_id=event_id,
            event_type=event_type,
            settled=order is not None and order.status == OrderStatus.PAID,
            order_id=order.id if order else None,
        )


@lru_cache(maxsize=1)
def get_payment_gateway() -> StripeGateway:
    return StripeGateway.from_settings()
