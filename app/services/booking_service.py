"""Booking operations: create, modify, cancel, pay, refund."""

import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import (
    ConflictError,
    ForbiddenError,
    NoPaymentError,
    NoRefundAvailableError,
    NotFoundError,
    PaymentProviderError,
    ValidationError,
)
from app.models.booking import Booking
from app.models.payment import Payment
from app.models.refund import Refund
from app.models.room import Room
from app.models.status import (
    ADMIN_OVERRIDE_STATUSES,
    CANCELLED_STATUSES,
    BookingStatus,
    PaymentStatus,
    RefundStatus,
    ensure_cancellable,
    ensure_mutable,
    ensure_refundable,
    is_holding,
)
from app.models.timeslot import TimeSlot
from app.schemas.auth import Actor
from app.schemas.booking import BookingCreate, BookingUpdate
from app.services.payment_provider import CheckoutSession, PaymentDetails, PaymentProvider
from app.utils.locks import SlotLocks, slot_locks
from app.utils.pricing import compute_total_price, to_cents
from app.utils.refund_policy import RefundQuote, calculate_refund
from app.utils.scheduler import find_conflict

logger = logging.getLogger(__name__)

DEFAULT_REFUND_REASON = "CANCELLED_BY_USER"
LATE_PAYMENT_REFUND_REASON = "SLOT_NO_LONGER_AVAILABLE"


class BookingService:
    def __init__(
        self,
        db: Session,
        payment_provider: Optional[PaymentProvider] = None,
        locks: SlotLocks = slot_locks,
    ):
        self.db = db
        self.payment_provider = payment_provider
        self.locks = locks

    # ---------- lookups ----------

    def _get_room(self, room_id: int, lock: bool = False) -> Room:
        query = self.db.query(Room).filter(Room.id == room_id)
        if lock:
            # row lock on databases that support it; no-op on SQLite
            query = query.with_for_update()
        room = query.first()
        if not room or not room.is_active:
            raise NotFoundError(
                "The requested room does not exist or is not available",
                code="ROOM_NOT_FOUND",
            )
        return room

    def _load_booking(self, booking_id: int, lock: bool = False) -> Booking:
        query = self.db.query(Booking).filter(Booking.id == booking_id)
        if lock:
            query = query.with_for_update().populate_existing()
        booking = query.first()
        if not booking:
            raise NotFoundError("Booking not found", code="BOOKING_NOT_FOUND")
        return booking

    def get_booking(self, booking_id: int, actor: Actor) -> Booking:
        booking = self._load_booking(booking_id)
        # other users' bookings are reported as missing, not forbidden
        if not (actor.is_admin or actor.owns(booking)):
            raise NotFoundError("Booking not found", code="BOOKING_NOT_FOUND")
        return booking

    def list_user_bookings(self, actor: Actor) -> List[Booking]:
        return (
            self.db.query(Booking)
            .filter(Booking.user_id == actor.user_id)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .all()
        )

    def list_bookings(
        self,
        status: Optional[BookingStatus] = None,
        room_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Booking]:
        query = self.db.query(Booking)
        if status is not None:
            query = query.filter(Booking.status == status)
        if room_id is not None:
            query = query.filter(Booking.room_id == room_id)
        if start_date is not None:
            query = query.filter(Booking.date >= start_date)
        if end_date is not None:
            query = query.filter(Booking.date <= end_date)
        return query.order_by(Booking.date.desc(), Booking.start_time.desc()).all()

    # ---------- slot changes ----------

    def _ensure_free(self, room_id: int, slot: TimeSlot, exclude_booking_id: Optional[int] = None):
        conflict = find_conflict(self.db, room_id, slot, exclude_booking_id)
        if conflict:
            logger.error(
                f"Overlapping booking {conflict.id} found for room_id: {room_id}, slot: {slot}"
            )
            raise ConflictError()

    def create_booking(self, actor: Actor, data: BookingCreate, now: datetime) -> Booking:
        logger.debug(f"Creating booking for user: {actor.user_id}, room_id: {data.room_id}")
        slot = TimeSlot.parse(data.date, data.start_time, data.end_time)

        with self.locks.hold(data.room_id, slot.date):
            try:
                room = self._get_room(data.room_id, lock=True)
                if data.number_of_people > room.capacity:
                    raise ValidationError(
                        f"Room capacity insufficient: {room.capacity} < {data.number_of_people}",
                        code="CAPACITY_EXCEEDED",
                    )
                self._ensure_free(room.id, slot)

                booking = Booking(
                    room_id=room.id,
                    user_id=actor.user_id,
                    date=slot.date,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    customer_name=data.customer_name,
                    customer_email=data.customer_email,
                    customer_phone=data.customer_phone or None,
                    number_of_people=data.number_of_people,
                    total_price=compute_total_price(slot, room.price_per_hour),
                    status=BookingStatus.PENDING_PAYMENT,
                    created_at=now,
                    updated_at=now,
                )
                self.db.add(booking)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(booking)
        logger.info(f"Created booking {booking.id} for room {room.id} at {slot}")
        return booking

    def update_booking(
        self, booking_id: int, actor: Actor, changes: BookingUpdate, now: datetime
    ) -> Booking:
        booking = self.get_booking(booking_id, actor)
        ensure_mutable(booking.status)

        slot = TimeSlot.parse(
            changes.date or booking.date,
            changes.start_time or booking.start_time,
            changes.end_time or booking.end_time,
        )

        with self.locks.hold(booking.room_id, slot.date):
            try:
                booking = self._load_booking(booking_id, lock=True)
                # status may have moved while waiting for the lock
                ensure_mutable(booking.status)
                room = self.db.query(Room).filter(Room.id == booking.room_id).first()
                if room is None:
                    raise NotFoundError("Room not found", code="ROOM_NOT_FOUND")

                number_of_people = changes.number_of_people or booking.number_of_people
                if number_of_people > room.capacity:
                    raise ValidationError(
                        f"Room capacity insufficient: {room.capacity} < {number_of_people}",
                        code="CAPACITY_EXCEEDED",
                    )
                if changes.changes_slot:
                    self._ensure_free(booking.room_id, slot, exclude_booking_id=booking.id)

                booking.date = slot.date
                booking.start_time = slot.start_time
                booking.end_time = slot.end_time
                booking.number_of_people = number_of_people
                booking.total_price = compute_total_price(slot, room.price_per_hour)
                booking.status = BookingStatus.MODIFIED
                booking.updated_at = now
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(booking)
        logger.info(f"Updated booking {booking.id}: {slot}, total {booking.total_price}")
        return booking

    def cancel_booking(self, booking_id: int, actor: Actor, now: datetime) -> Booking:
        booking = self.get_booking(booking_id, actor)
        ensure_cancellable(booking.status)

        try:
            booking.status = (
                BookingStatus.CANCELLED_BY_ADMIN if actor.is_admin else BookingStatus.CANCELLED_BY_USER
            )
            booking.cancelled_at = now
            booking.updated_at = now
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(f"Booking {booking.id} cancelled by {actor.role} {actor.user_id}")
        return booking

    def set_status(self, booking_id: int, status: BookingStatus, now: datetime) -> Booking:
        """Administrative override; ignores the transition table."""
        status = BookingStatus(status)
        if status not in ADMIN_OVERRIDE_STATUSES:
            raise ValidationError(
                f"Status {status.value} cannot be set directly", code="INVALID_STATUS"
            )

        booking = self._load_booking(booking_id)
        with self.locks.hold(booking.room_id, booking.date):
            try:
                booking = self._load_booking(booking_id, lock=True)
                if is_holding(status) and not is_holding(booking.status):
                    # re-occupying a released slot must not double-book it
                    self._ensure_free(booking.room_id, booking.slot, exclude_booking_id=booking.id)
                previous = booking.status
                booking.status = status
                if status in CANCELLED_STATUSES and booking.cancelled_at is None:
                    booking.cancelled_at = now
                booking.updated_at = now
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(booking)
        logger.info(f"Admin set booking {booking.id} status {previous.value} -> {status.value}")
        return booking

    # ---------- payments ----------

    def _provider(self) -> PaymentProvider:
        if self.payment_provider is None:
            raise RuntimeError("BookingService was created without a payment provider")
        return self.payment_provider

    def start_checkout(self, booking_id: int, actor: Actor) -> CheckoutSession:
        booking = self.get_booking(booking_id, actor)
        if not booking.awaiting_payment:
            raise ValidationError(
                f"Booking is not awaiting payment (status {booking.status.value})",
                code="BOOKING_NOT_PAYABLE",
            )

        session = self._provider().create_checkout_session(booking)
        booking.stripe_session_id = session.id
        self.db.commit()
        logger.info(f"Checkout session {session.id} opened for booking {booking.id}")
        return session

    def find_by_session(self, session: CheckoutSession) -> Optional[Booking]:
        booking = (
            self.db.query(Booking).filter(Booking.stripe_session_id == session.id).first()
        )
        if booking is None and session.client_reference_id:
            try:
                booking = self.db.get(Booking, int(session.client_reference_id))
            except ValueError:
                booking = None
        return booking

    def _payment_details(self, payment_ref: Optional[str]) -> PaymentDetails:
        if not payment_ref:
            return PaymentDetails()
        try:
            return self._provider().get_payment_details(payment_ref)
        except PaymentProviderError as e:
            # the payment itself is settled; card metadata is optional
            logger.warning(f"Recording payment {payment_ref} without charge details: {e.message}")
            return PaymentDetails()

    def _add_payment(
        self, booking: Booking, session: CheckoutSession, now: datetime, status: PaymentStatus
    ) -> Payment:
        amount_cents = session.amount_total
        if amount_cents is None:
            amount_cents = to_cents(booking.total_price)
        details = self._payment_details(session.payment_intent)
        payment = Payment(
            booking_id=booking.id,
            amount=amount_cents / 100,
            amount_cents=amount_cents,
            currency=session.currency or "eur",
            stripe_payment_intent_id=session.payment_intent,
            stripe_charge_id=details.charge_id,
            payment_method=details.payment_method or session.payment_method,
            card_last4=details.card_last4,
            card_brand=details.card_brand,
            receipt_url=details.receipt_url,
            status=status,
            created_at=now,
        )
        self.db.add(payment)
        if booking.stripe_payment_id is None:
            booking.stripe_payment_id = session.payment_intent
        if booking.payment_date is None:
            booking.payment_date = now
        return payment

    def _settle_released_booking(self, booking: Booking, session: CheckoutSession, now: datetime):
        """
        Money arrived for a booking that no longer holds its slot. Take the
        slot back if it is still free; otherwise refund the payment in full
        and raise ConflictError.
        """
        if find_conflict(self.db, booking.room_id, booking.slot, booking.id) is None:
            logger.warning(
                f"Payment {session.id} arrived for released booking {booking.id} "
                f"({booking.status.value}); reinstating it"
            )
            booking.status = BookingStatus.PENDING_PAYMENT
            booking.cancelled_at = None
            return

        payment = self._add_payment(booking, session, now, PaymentStatus.REFUNDED)
        provider_refund = self._provider().create_refund(
            session.payment_intent, payment.amount, LATE_PAYMENT_REFUND_REASON
        )
        self.db.add(Refund(
            booking_id=booking.id,
            amount=payment.amount,
            amount_cents=payment.amount_cents,
            stripe_refund_id=provider_refund.id,
            reason=LATE_PAYMENT_REFUND_REASON,
            status=RefundStatus.SUCCEEDED,
            processed_at=now,
            created_at=now,
        ))
        booking.status = BookingStatus.REFUNDED
        booking.stripe_refund_id = provider_refund.id
        booking.updated_at = now
        self.db.commit()
        logger.error(
            f"Slot of booking {booking.id} was taken before payment {session.id} arrived; "
            f"refunded {payment.amount} as {provider_refund.id}"
        )
        raise ConflictError(
            "The time slot was released before the payment arrived; the payment has been refunded",
            code="SLOT_RELEASED_PAYMENT_REFUNDED",
        )

    def confirm_payment(self, session: CheckoutSession, now: datetime) -> Booking:
        """
        Record a successful checkout. Safe to call any number of times for the
        same session: at most one Payment row is created and the booking is
        confirmed once. A booking released in the meantime is reinstated when
        its slot is free and refunded when it is not.
        """
        booking = self.find_by_session(session)
        if booking is None:
            raise NotFoundError("Booking not found", code="BOOKING_NOT_FOUND")

        with self.locks.hold(booking.room_id, booking.date):
            try:
                booking = self._load_booking(booking.id, lock=True)
                if booking.payment is None:
                    if not is_holding(booking.status):
                        self._settle_released_booking(booking, session, now)
                    awaiting = booking.awaiting_payment
                    self._add_payment(booking, session, now, PaymentStatus.SUCCEEDED)
                    if awaiting:
                        booking.status = BookingStatus.CONFIRMED
                        booking.updated_at = now

                if booking.stripe_session_id is None:
                    booking.stripe_session_id = session.id
                self.db.commit()
            except IntegrityError:
                # another process inserted the payment first
                self.db.rollback()
                logger.info(f"Duplicate payment confirmation absorbed for booking {booking.id}")
                booking = self._load_booking(booking.id)
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(booking)
        logger.info(f"Payment confirmed for booking {booking.id} (session {session.id})")
        return booking

    def verify_payment(self, session_id: str, now: datetime):
        """Poll the provider for a session and confirm the booking if it is paid."""
        session = self._provider().get_session(session_id)
        booking = self.find_by_session(session)
        if booking is None:
            raise NotFoundError("Booking not found", code="BOOKING_NOT_FOUND")
        if session.is_paid:
            booking = self.confirm_payment(session, now)
        return booking, session

    def expire_checkout(self, session: CheckoutSession, now: datetime) -> Optional[Booking]:
        booking = self.find_by_session(session)
        if booking is None:
            logger.warning(f"Expired checkout session {session.id} has no booking")
            return None
        if booking.stripe_session_id and booking.stripe_session_id != session.id:
            # a newer checkout replaced this one and may still be paid
            logger.info(
                f"Ignoring expiry of superseded session {session.id} for booking {booking.id}"
            )
            return booking
        if booking.awaiting_payment:
            try:
                booking.status = BookingStatus.CANCELLED_NO_PAYMENT
                booking.cancelled_at = now
                booking.updated_at = now
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
            logger.info(f"Payment expired for booking {booking.id}")
        return booking

    # ---------- refunds ----------

    def preview_refund(self, booking_id: int, now: datetime) -> RefundQuote:
        booking = self._load_booking(booking_id)
        return calculate_refund(booking.date, booking.start_time, booking.total_price, now)

    def process_refund(
        self, booking_id: int, actor: Actor, reason: Optional[str], now: datetime
    ) -> tuple:
        booking = self._load_booking(booking_id)
        if not (actor.is_admin or actor.owns(booking)):
            raise ForbiddenError("You can only refund your own bookings")
        reason = reason or DEFAULT_REFUND_REASON

        with self.locks.hold(booking.room_id, booking.date):
            provider_refund = None
            try:
                booking = self._load_booking(booking_id, lock=True)
                if not booking.stripe_payment_id:
                    raise NoPaymentError()
                ensure_refundable(booking.status)

                quote = calculate_refund(booking.date, booking.start_time, booking.total_price, now)
                if not quote.can_refund:
                    raise NoRefundAvailableError()

                # nothing is written locally unless the provider accepted the refund
                provider_refund = self._provider().create_refund(
                    booking.stripe_payment_id, quote.refund_amount, reason
                )
                refund = Refund(
                    booking_id=booking.id,
                    amount=quote.refund_amount,
                    amount_cents=to_cents(quote.refund_amount),
                    stripe_refund_id=provider_refund.id,
                    reason=reason,
                    status=RefundStatus.SUCCEEDED,
                    processed_at=now,
                    created_at=now,
                )
                self.db.add(refund)
                booking.status = BookingStatus.REFUNDED
                booking.stripe_refund_id = provider_refund.id
                booking.cancelled_at = now
                booking.updated_at = now
                if booking.payment is not None:
                    booking.payment.status = (
                        PaymentStatus.REFUNDED if quote.is_full else PaymentStatus.PARTIALLY_REFUNDED
                    )
                self.db.commit()
            except Exception:
                self.db.rollback()
                if provider_refund is not None:
                    logger.exception(
                        f"Refund {provider_refund.id} accepted by provider but not recorded "
                        f"for booking {booking.id}"
                    )
                raise

        self.db.refresh(refund)
        logger.info(
            f"Refunded {quote.refund_amount} ({quote.refund_percentage}%) for booking {booking.id}"
        )
        return refund, quote
