"""Dispatch of verified payment provider events to booking state changes."""

import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from app.errors import ConflictError
from app.services.booking_service import BookingService
from app.services.payment_provider import (
    CHARGE_REFUNDED,
    CHECKOUT_COMPLETED,
    CHECKOUT_EXPIRED,
    PAYMENT_FAILED,
    PAYMENT_SUCCEEDED,
    PaymentEvent,
)

logger = logging.getLogger(__name__)


def _checkout_completed(service: BookingService, event: PaymentEvent, now: datetime):
    if event.session is None:
        logger.error(f"Event {event.id} carries no checkout session")
        return
    if event.session.payment_status not in (None, "paid"):
        # async payment methods complete the session before the money arrives
        logger.info(f"Checkout {event.session.id} completed but not paid yet")
        return
    try:
        service.confirm_payment(event.session, now)
    except ConflictError as e:
        # already refunded; a retry would change nothing
        logger.warning(f"Checkout {event.session.id} settled by refund: {e.message}")


def _checkout_expired(service: BookingService, event: PaymentEvent, now: datetime):
    if event.session is None:
        logger.error(f"Event {event.id} carries no checkout session")
        return
    service.expire_checkout(event.session, now)


def _payment_succeeded(service: BookingService, event: PaymentEvent, now: datetime):
    # bookings are confirmed from the checkout session event
    logger.info(f"Payment intent succeeded: {event.object_id}")


def _payment_failed(service: BookingService, event: PaymentEvent, now: datetime):
    logger.warning(f"Payment intent failed: {event.object_id}")


def _charge_refunded(service: BookingService, event: PaymentEvent, now: datetime):
    # refunds are recorded when they are requested
    logger.info(f"Refund processed for charge: {event.object_id}")


HANDLERS: Dict[str, Callable[[BookingService, PaymentEvent, datetime], None]] = {
    CHECKOUT_COMPLETED: _checkout_completed,
    CHECKOUT_EXPIRED: _checkout_expired,
    PAYMENT_SUCCEEDED: _payment_succeeded,
    PAYMENT_FAILED: _payment_failed,
    CHARGE_REFUNDED: _charge_refunded,
}


def dispatch_event(
    service: BookingService, event: PaymentEvent, now: Optional[datetime] = None
) -> bool:
    """Apply an event. Returns False for kinds that are not handled."""
    handler = HANDLERS.get(event.kind)
    if handler is None:
        logger.debug(f"Unhandled event type: {event.kind}")
        return False
    handler(service, event, now or datetime.now())
    return True
