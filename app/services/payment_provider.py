"""Payment provider contract and its Stripe implementation."""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import stripe
from fastapi import Request

from app.config import settings
from app.errors import PaymentProviderError, WebhookSignatureError
from app.utils.pricing import to_cents

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
CHECKOUT_EXPIRED = "checkout.session.expired"
PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"
CHARGE_REFUNDED = "charge.refunded"

CHECKOUT_EVENT_KINDS = {CHECKOUT_COMPLETED, CHECKOUT_EXPIRED}


@dataclass
class CheckoutSession:
    id: str
    url: Optional[str] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None
    amount_total: Optional[int] = None  # cents
    currency: Optional[str] = None
    payment_intent: Optional[str] = None
    payment_method: Optional[str] = None
    client_reference_id: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.status == "complete" and self.payment_status == "paid"


@dataclass
class ProviderRefund:
    id: str
    amount_cents: int
    status: Optional[str] = None


@dataclass
class PaymentDetails:
    """Charge metadata of a settled payment intent."""

    charge_id: Optional[str] = None
    payment_method: Optional[str] = None
    card_last4: Optional[str] = None
    card_brand: Optional[str] = None
    receipt_url: Optional[str] = None


@dataclass
class PaymentEvent:
    id: str
    kind: str
    object_id: Optional[str] = None
    session: Optional[CheckoutSession] = None


class PaymentProvider(ABC):
    @abstractmethod
    def create_checkout_session(self, booking) -> CheckoutSession:
        """Open a hosted checkout for the booking's total price."""

    @abstractmethod
    def get_session(self, session_id: str) -> CheckoutSession:
        """Fetch the current state of a checkout session."""

    @abstractmethod
    def get_payment_details(self, payment_ref: str) -> PaymentDetails:
        """Look up the charge behind a payment intent."""

    @abstractmethod
    def create_refund(self, payment_ref: str, amount: float, reason: str) -> ProviderRefund:
        """Refund ``amount`` of the payment identified by ``payment_ref``."""

    @abstractmethod
    def construct_event(self, payload: bytes, signature: Optional[str]) -> PaymentEvent:
        """Verify a webhook payload and decode it. Raises WebhookSignatureError."""


def _reference_id(value: Any) -> Optional[str]:
    # expandable fields come back either as an id or as the expanded object
    if value is None or isinstance(value, str):
        return value
    return getattr(value, "id", None)


def _session_from_stripe(obj: Any) -> CheckoutSession:
    methods = getattr(obj, "payment_method_types", None) or []
    return CheckoutSession(
        id=obj.id,
        url=getattr(obj, "url", None),
        status=getattr(obj, "status", None),
        payment_status=getattr(obj, "payment_status", None),
        amount_total=getattr(obj, "amount_total", None),
        currency=getattr(obj, "currency", None),
        payment_intent=_reference_id(getattr(obj, "payment_intent", None)),
        payment_method=methods[0] if methods else None,
        client_reference_id=getattr(obj, "client_reference_id", None),
    )


class StripePaymentProvider(PaymentProvider):
    def __init__(
        self,
        api_key: Optional[str],
        webhook_secret: Optional[str],
        frontend_url: str,
        currency: str = "eur",
        session_ttl_minutes: int = 30,
    ):
        stripe.api_key = api_key
        self.webhook_secret = webhook_secret
        self.frontend_url = frontend_url.rstrip("/")
        self.currency = currency
        self.session_ttl_minutes = session_ttl_minutes

    def _require_key(self):
        if not stripe.api_key:
            raise PaymentProviderError("Stripe secret key missing (STRIPE_SECRET_KEY)")

    def create_checkout_session(self, booking) -> CheckoutSession:
        self._require_key()
        room_name = booking.room.name if booking.room else f"Room #{booking.room_id}"
        try:
            session = stripe.checkout.Session.create(
                mode="payment",
                payment_method_types=["card"],
                line_items=[{
                    "price_data": {
                        "currency": self.currency,
                        "unit_amount": to_cents(booking.total_price),
                        "product_data": {
                            "name": f"Booking - {room_name}",
                            "description": (
                                f"{booking.date.isoformat()} from {booking.start_time} to "
                                f"{booking.end_time} ({booking.number_of_people} people)"
                            ),
                        },
                    },
                    "quantity": 1,
                }],
                customer_email=booking.customer_email,
                client_reference_id=str(booking.id),
                metadata={
                    "booking_id": str(booking.id),
                    "user_id": str(booking.user_id),
                    "room_id": str(booking.room_id),
                },
                success_url=f"{self.frontend_url}/booking-success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{self.frontend_url}/booking-cancelled?booking_id={booking.id}",
                expires_at=int(time.time()) + self.session_ttl_minutes * 60,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout creation failed for booking {booking.id}: {e}")
            raise PaymentProviderError("Failed to create checkout session") from e
        return _session_from_stripe(session)

    def get_session(self, session_id: str) -> CheckoutSession:
        self._require_key()
        try:
            session = stripe.checkout.Session.retrieve(session_id)
        except stripe.StripeError as e:
            logger.error(f"Stripe session retrieval failed for {session_id}: {e}")
            raise PaymentProviderError("Failed to retrieve checkout session") from e
        return _session_from_stripe(session)

    def get_payment_details(self, payment_ref: str) -> PaymentDetails:
        self._require_key()
        try:
            intent = stripe.PaymentIntent.retrieve(payment_ref, expand=["latest_charge"])
        except stripe.StripeError as e:
            logger.error(f"Stripe payment intent retrieval failed for {payment_ref}: {e}")
            raise PaymentProviderError("Failed to retrieve payment intent") from e

        charge = getattr(intent, "latest_charge", None)
        if charge is None or isinstance(charge, str):
            return PaymentDetails(charge_id=charge)
        method = getattr(charge, "payment_method_details", None)
        card = getattr(method, "card", None) if method else None
        return PaymentDetails(
            charge_id=charge.id,
            payment_method=getattr(method, "type", None) if method else None,
            card_last4=getattr(card, "last4", None) if card else None,
            card_brand=getattr(card, "brand", None) if card else None,
            receipt_url=getattr(charge, "receipt_url", None),
        )

    def create_refund(self, payment_ref: str, amount: float, reason: str) -> ProviderRefund:
        self._require_key()
        try:
            refund = stripe.Refund.create(
                payment_intent=payment_ref,
                amount=to_cents(amount),
                reason="requested_by_customer",
                metadata={"refund_reason": reason},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe refund failed for payment {payment_ref}: {e}")
            raise PaymentProviderError("Failed to create refund") from e
        return ProviderRefund(
            id=refund.id,
            amount_cents=getattr(refund, "amount", to_cents(amount)),
            status=getattr(refund, "status", None),
        )

    def construct_event(self, payload: bytes, signature: Optional[str]) -> PaymentEvent:
        if not self.webhook_secret:
            raise PaymentProviderError("Webhook secret not configured")
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning(f"Webhook signature verification failed: {e}")
            raise WebhookSignatureError() from e

        obj = event.data.object
        session = _session_from_stripe(obj) if event.type in CHECKOUT_EVENT_KINDS else None
        return PaymentEvent(
            id=event.id,
            kind=event.type,
            object_id=getattr(obj, "id", None),
            session=session,
        )


def init_payment_provider() -> PaymentProvider:
    """Build the process-wide provider. Called once at startup."""
    if not settings.STRIPE_SECRET_KEY:
        logger.warning("STRIPE_SECRET_KEY is not set; payment endpoints will fail")
    return StripePaymentProvider(
        api_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        frontend_url=settings.FRONTEND_URL,
        currency=settings.CURRENCY,
        session_ttl_minutes=settings.CHECKOUT_SESSION_TTL_MINUTES,
    )


def get_payment_provider(request: Request) -> PaymentProvider:
    """Provide the provider created at startup."""
    return request.app.state.payment_provider
