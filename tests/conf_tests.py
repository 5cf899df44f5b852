import json
import os
from dataclasses import replace
from datetime import date, timedelta
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.main import app
from app.db import Base, get_db
from app.errors import PaymentProviderError, WebhookSignatureError
from app.models.booking import Booking
from app.models.room import Room
from app.models.status import BookingStatus
from app.services.payment_provider import (
    CHECKOUT_EVENT_KINDS,
    CheckoutSession,
    PaymentDetails,
    PaymentEvent,
    PaymentProvider,
    ProviderRefund,
    get_payment_provider,
)
from app.utils.auth import create_access_token
from app.utils.pricing import to_cents

# Test database setup
if not os.path.exists("./out"):
    os.makedirs("./out")

SQLALCHEMY_DATABASE_URL = "sqlite:///./out/tests.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create test tables
Base.metadata.drop_all(bind=engine)
Base.metadata.create_all(bind=engine)

VALID_SIGNATURE = "t=1,v1=valid"


class FakePaymentProvider(PaymentProvider):
    """In-memory stand-in for Stripe."""

    def __init__(self):
        self.reset()

    def reset(self):
        self.sessions = {}
        self.refunds = []
        self.fail_refunds = False
        self.fail_details = False
        self._counter = 0

    def _next_id(self, prefix):
        self._counter += 1
        return f"{prefix}_test_{self._counter}"

    def create_checkout_session(self, booking):
        session = CheckoutSession(
            id=self._next_id("cs"),
            url="https://checkout.example.com/pay",
            status="open",
            payment_status="unpaid",
            amount_total=to_cents(booking.total_price),
            currency="eur",
            payment_intent=f"pi_test_{booking.id}",
            payment_method="card",
            client_reference_id=str(booking.id),
        )
        self.sessions[session.id] = session
        return replace(session)

    def mark_paid(self, session_id):
        session = self.sessions[session_id]
        session.status = "complete"
        session.payment_status = "paid"
        return replace(session)

    def get_session(self, session_id):
        if session_id not in self.sessions:
            raise PaymentProviderError("Failed to retrieve checkout session")
        return replace(self.sessions[session_id])

    def get_payment_details(self, payment_ref):
        if self.fail_details:
            raise PaymentProviderError("Failed to retrieve payment intent")
        return PaymentDetails(
            charge_id=f"ch_for_{payment_ref}",
            payment_method="card",
            card_last4="4242",
            card_brand="visa",
            receipt_url=f"https://pay.example.com/receipts/{payment_ref}",
        )

    def create_refund(self, payment_ref, amount, reason):
        if self.fail_refunds:
            raise PaymentProviderError("Failed to create refund")
        refund = ProviderRefund(id=self._next_id("re"), amount_cents=to_cents(amount))
        self.refunds.append((payment_ref, amount, reason))
        return refund

    def construct_event(self, payload, signature):
        if signature != VALID_SIGNATURE:
            raise WebhookSignatureError()
        event = json.loads(payload)
        obj = event["data"]["object"]
        session = None
        if event["type"] in CHECKOUT_EVENT_KINDS:
            session = CheckoutSession(
                id=obj["id"],
                status=obj.get("status"),
                payment_status=obj.get("payment_status"),
                amount_total=obj.get("amount_total"),
                currency=obj.get("currency"),
                payment_intent=obj.get("payment_intent"),
                client_reference_id=obj.get("client_reference_id"),
            )
        return PaymentEvent(id=event["id"], kind=event["type"], object_id=obj.get("id"), session=session)


payment_provider = FakePaymentProvider()


# Dependency override
def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


def override_get_payment_provider():
    return payment_provider


app.dependency_overrides[get_db] = override_get_db
app.dependency_overrides[get_payment_provider] = override_get_payment_provider

client = TestClient(app)


# Fixtures
@pytest.fixture(autouse=True)
def clear_db():
    """Clear all data from all tables after each test"""
    yield
    payment_provider.reset()
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def test_db():
    """Provide a database session for testing"""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def auth_headers_for(user_id, role="user"):
    token = create_access_token(user_id, role=role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """Headers for a regular user"""
    return auth_headers_for("user_1")


@pytest.fixture
def other_headers():
    """Headers for a second regular user"""
    return auth_headers_for("user_2")


@pytest.fixture
def admin_headers():
    return auth_headers_for("admin_1", role="admin")


@pytest.fixture
def test_room(test_db):
    room = Room(
        name="Conference Room A",
        description="Second floor",
        capacity=10,
        price_per_hour=50,
        equipment=["projector", "whiteboard"],
        is_active=True,
    )
    test_db.add(room)
    test_db.commit()
    test_db.refresh(room)
    return room


def future_day(days=5):
    return date.today() + timedelta(days=days)


def add_booking(db, room, day, start, end, status=BookingStatus.CONFIRMED, user_id="user_1", **extra):
    """Insert a booking row directly, bypassing the service"""
    booking = Booking(
        room_id=room.id,
        user_id=user_id,
        date=day,
        start_time=start,
        end_time=end,
        customer_name="Ada Lovelace",
        customer_email="ada@example.com",
        number_of_people=4,
        total_price=(int(end[:2]) - int(start[:2])) * room.price_per_hour,
        status=status,
        **extra,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking
