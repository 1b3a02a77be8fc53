"""Tests for the Stripe checkout and webhook adapter."""

import json
from decimal import Decimal

import pytest
import stripe

from conftest import PRICES, checkout_completed_event, sign_payload
from storefront.errors import GatewayError, InvalidSignature
from storefront.models.order import Order, OrderKind, OrderStatus
from storefront.services import order_service
from storefront.services.payment_gateway import extract_settlement, to_minor_units


@pytest.fixture
def pending_order(session, user, book):
    order = order_service.create_order(
        session, user_id=user.id, kind=OrderKind.DIGITAL_DOWNLOAD, product_id=book.id, prices=PRICES
    )
    return order_service.attach_checkout_reference(session, order.id, "cs_test_1")


class TestOpenCheckout:
    def test_builds_line_item_from_order(self, gateway, stripe_checkout, session, pending_order, book):
        checkout = gateway.open_checkout(pending_order, book, customer_email="reader@example.com")

        assert checkout.checkout_ref == "cs_test_session_1"
        assert checkout.checkout_url.startswith("https://checkout.stripe.com/")

        params = stripe_checkout[0]
        assert params["mode"] == "payment"
        assert params["metadata"] == {"order_id": str(pending_order.id)}
        assert params["customer_email"] == "reader@example.com"
        assert params["api_key"] == "sk_test_dummy"
        [item] = params["line_items"]
        assert item["price_data"]["unit_amount"] == 1000
        assert item["price_data"]["currency"] == "eur"
        assert item["price_data"]["product_data"]["name"] == "PDF download - Test Book"
        assert params["cancel_url"] == f"https://shop.example.com/books/{book.id}/order"
        assert "{CHECKOUT_SESSION_ID}" in params["success_url"]

    def test_shipping_fee_is_a_separate_line(self, gateway, stripe_checkout, session, user, book, shipping):
        order = order_service.create_order(
            session, user_id=user.id, kind=OrderKind.PHYSICAL_COPY, product_id=book.id,
            shipping=shipping, prices=PRICES,
        )
        gateway.open_checkout(order, book)
        amounts = [i["price_data"]["unit_amount"] for i in stripe_checkout[0]["line_items"]]
        assert amounts == [2500, 3500]

    def test_subscription_description(self, gateway, stripe_checkout, session, user):
        order = order_service.create_order(
            session, user_id=user.id, kind=OrderKind.ANNUAL_SUBSCRIPTION, prices=PRICES
        )
        gateway.open_checkout(order)
        params = stripe_checkout[0]
        assert params["line_items"][0]["price_data"]["product_data"]["name"] == "Annual subscription - all books"
        assert params["cancel_url"] == "https://shop.example.com/subscriptions"

    def test_gateway_failure_leaves_order_pending(self, gateway, monkeypatch, session, pending_order):
        def fail(**params):
            raise stripe.APIConnectionError("connection timed out")

        monkeypatch.setattr(stripe.checkout.Session, "create", fail)

        with pytest.raises(GatewayError):
            gateway.open_checkout(pending_order)

        session.refresh(pending_order)
        assert pending_order.status == OrderStatus.PENDING

    def test_minor_units(self):
        assert to_minor_units(Decimal("10.00")) == 1000
        assert to_minor_units(Decimal("19.99")) == 1999


class TestHandleWebhook:
    def test_settles_order(self, gateway, session, pending_order):
        payload = checkout_completed_event("cs_test_1", "pi_test_1")
        ack = gateway.handle_webhook(session, payload.encode(), sign_payload(payload))

        assert ack.settled is True
        assert ack.order_id == pending_order.id
        session.refresh(pending_order)
        assert pending_order.status == OrderStatus.PAID
        assert pending_order.external_payment_ref == "pi_test_1"

    def test_redelivery_is_harmless(self, gateway, session, pending_order):
        payload = checkout_completed_event("cs_test_1", "pi_test_1")
        for _ in range(2):
            ack = gateway.handle_webhook(session, payload.encode(), sign_payload(payload))
            assert ack.settled is True

        session.refresh(pending_order)
        assert pending_order.status == OrderStatus.PAID
        assert pending_order.external_payment_ref == "pi_test_1"

    def test_settles_when_sdk_event_is_not_a_dict(self, gateway, session, pending_order, monkeypatch):
        class OpaqueEvent:
            """Stands in for SDK event objects without dict methods."""

        verified = []

        def construct_event(payload, signature, secret):
            verified.append(signature)
            return OpaqueEvent()

        monkeypatch.setattr(stripe.Webhook, "construct_event", construct_event)

        payload = checkout_completed_event("cs_test_1", "pi_test_1")
        ack = gateway.handle_webhook(session, payload.encode(), sign_payload(payload))

        assert verified
        assert ack.event_id == "evt_test_1"
        assert ack.settled is True
        session.refresh(pending_order)
        assert pending_order.status == OrderStatus.PAID

    def test_extractors_receive_plain_json(self, gateway, session, pending_order, monkeypatch):
        from storefront.services import payment_gateway

        seen = []
        real_extract = payment_gateway.extract_settlement

        def recording_extract(event, raw):
            seen.append(event)
            return real_extract(event, raw)

        monkeypatch.setattr(payment_gateway, "extract_settlement", recording_extract)

        payload = checkout_completed_event("cs_test_1", "pi_test_1")
        gateway.handle_webhook(session, payload.encode(), sign_payload(payload))

        assert type(seen[0]) is dict
        assert seen[0]["data"]["object"]["id"] == "cs_test_1"

    def test_expanded_payment_intent_settles(self, gateway, session, pending_order):
        payload = json.dumps({
            "id": "evt_test_expanded",
            "object": "event",
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": "cs_test_1",
                    "object": "checkout.session",
                    "payment_intent": {"id": "pi_expanded", "object": "payment_intent"},
                }
            },
        })
        ack = gateway.handle_webhook(session, payload.encode(), sign_payload(payload))

        assert ack.settled is True
        session.refresh(pending_order)
        assert pending_order.external_payment_ref == "pi_expanded"

    def test_bad_signature_never_mutates(self, gateway, session, pending_order):
        payload = checkout_completed_event("cs_test_1", "pi_test_1")
        with pytest.raises(InvalidSignature):
            gateway.handle_webhook(session, payload.encode(), sign_payload(payload, secret="whsec_wrong"))

        session.refresh(pending_order)
        assert pending_order.status == OrderStatus.PENDING
        assert pending_order.external_payment_ref is None

    def test_tampered_payload_rejected(self, gateway, session, pending_order):
        signed = checkout_completed_event("cs_test_other", "pi_test_1")
        sent = checkout_completed_event("cs_test_1", "pi_test_1")
        with pytest.raises(InvalidSignature):
            gateway.handle_webhook(session, sent.encode(), sign_payload(signed))

        session.refresh(pending_order)
        assert pending_order.status == OrderStatus.PENDING

    def test_missing_signature_rejected(self, gateway, session, pending_order):
        payload = checkout_completed_event("cs_test_1")
        with pytest.raises(InvalidSignature):
            gateway.handle_webhook(session, payload.encode(), None)

    def test_malformed_payload_rejected(self, gateway, session):
        payload = "{not json"
        with pytest.raises(InvalidSignature):
            gateway.handle_webhook(session, payload.encode(), sign_payload(payload))

    def test_other_event_types_acknowledged_without_settlement(self, gateway, session, pending_order):
        payload = json.dumps({
            "id": "evt_test_2",
            "object": "event",
            "type": "payment_intent.created",
            "data": {"object": {"id": "pi_test_1", "object": "payment_intent"}},
        })
        ack = gateway.handle_webhook(session, payload.encode(), sign_payload(payload))
        assert ack.settled is False
        assert ack.event_type == "payment_intent.created"

        session.refresh(pending_order)
        assert pending_order.status == OrderStatus.PENDING

    def test_unknown_session_acknowledged(self, gateway, session, pending_order):
        payload = checkout_completed_event("cs_test_unrelated")
        ack = gateway.handle_webhook(session, payload.encode(), sign_payload(payload))
        assert ack.settled is False

        session.refresh(pending_order)
        assert pending_order.status == OrderStatus.PENDING

    def test_event_without_session_acknowledged(self, gateway, session, pending_order):
        payload = json.dumps({
            "id": "evt_test_3",
            "object": "event",
            "type": "checkout.session.completed",
            "data": {"object": {}},
        })
        ack = gateway.handle_webhook(session, payload.encode(), sign_payload(payload))
        assert ack.settled is False


class TestExtractSettlement:
    def test_structured_object_wins(self):
        event = {"data": {"object": {"id": "cs_test_abc", "payment_intent": "pi_abc"}}}
        ref = extract_settlement(event, "")
        assert ref.checkout_ref == "cs_test_abc"
        assert ref.payment_ref == "pi_abc"

    def test_expanded_payment_intent(self):
        event = {"data": {"object": {"id": "cs_live_abc", "payment_intent": {"id": "pi_abc"}}}}
        assert extract_settlement(event, "").payment_ref == "pi_abc"

    def test_falls_back_to_raw_payload(self):
        raw = '{"id": "evt_1", "data": {"object": {"id": "cs_live_a1B2", "payment_intent": "pi_9Z"}}}'
        ref = extract_settlement({"data": {"object": None}}, raw)
        assert ref.checkout_ref == "cs_live_a1B2"
        assert ref.payment_ref == "pi_9Z"

    def test_raw_fallback_ignores_unrelated_ids(self):
        raw = '{"id": "evt_1", "data": {"object": {"id": "pi_123", "customer": "cus_1", "ref": "cs_test_not_an_id"}}}'
        assert extract_settlement({"data": {}}, raw) is None

    def test_structured_object_that_is_not_a_session(self):
        event = {"data": {"object": {"id": "pi_123"}}}
        assert extract_settlement(event, '{"id": "pi_123"}') is None

    def test_raw_fallback_without_payment_intent(self):
        raw = '{"data": {"object": {"id":"cs_test_x"}}}'
        ref = extract_settlement({}, raw)
        assert ref.checkout_ref == "cs_test_x"
        assert ref.payment_ref is None
