"""Pytest fixtures for storefront tests."""

import hashlib
import hmac
import json
import os
import time
from decimal import Decimal

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("ENV", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from storefront import models  # noqa: F401
from storefront.config import PriceList
from storefront.models.book import Book
from storefront.models.user import User

WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]

PRICES = PriceList(
    digital_download=Decimal("10.00"),
    timed_book_license=Decimal("5.00"),
    monthly_subscription=Decimal("30.00"),
    annual_subscription=Decimal("50.00"),
)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def user(session):
    user = User(first_name="Test", last_name="User", email="reader@example.com")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def other_user(session):
    user = User(first_name="Other", last_name="Reader", email="other@example.com")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def admin(session):
    admin = User(first_name="Ada", last_name="Admin", email="admin@example.com", role="admin")
    session.add(admin)
    session.commit()
    session.refresh(admin)
    return admin


@pytest.fixture
def book(session):
    book = Book(title="Test Book", author="A. Writer", price=Decimal("25.00"))
    session.add(book)
    session.commit()
    session.refresh(book)
    return book


@pytest.fixture
def unpriced_book(session):
    book = Book(title="Free Pamphlet")
    session.add(book)
    session.commit()
    session.refresh(book)
    return book


@pytest.fixture
def shipping():
    from storefront.schemas.checkout_schemas import ShippingInfo

    return ShippingInfo(
        recipient_name="Test User",
        address="123 Test Street",
        city="Paris",
        postal_code="75001",
        country="FR",
        phone="+33123456789",
    )


def auth_headers(user):
    from storefront.utils.token import create_access_token

    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Stripe-Signature header for `payload`, using the gateway's signing scheme."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def checkout_completed_event(
    session_id: str = "cs_test_1",
    payment_intent: str | None = "pi_test_1",
    event_id: str = "evt_test_1",
) -> str:
    return json.dumps({
        "id": event_id,
        "object": "event",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "payment_intent": payment_intent,
                "metadata": {"order_id": "1"},
            }
        },
    })


class FakeCheckoutSession:
    def __init__(self, id, url):
        self.id = id
        self.url = url


@pytest.fixture
def stripe_checkout(monkeypatch):
    """Replace the gateway's checkout-session API with a recorder."""
    import stripe

    calls = []

    def create(**params):
        calls.append(params)
        n = len(calls)
        return FakeCheckoutSession(f"cs_test_session_{n}", f"https://checkout.stripe.com/c/pay/cs_test_session_{n}")

    monkeypatch.setattr(stripe.checkout.Session, "create", create)
    return calls


@pytest.fixture
def gateway():
    from storefront.services.payment_gateway import StripeGateway

    return StripeGateway("sk_test_dummy", WEBHOOK_SECRET, frontend_url="https://shop.example.com")


@pytest.fixture
def client(engine, session, gateway):
    from storefront.database import get_session
    from storefront.main import app
    from storefront.services.payment_gateway import get_payment_gateway

    def _get_session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
