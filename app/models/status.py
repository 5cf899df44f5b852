"""Booking lifecycle: statuses, the transition table and the checks built on it."""

import enum

from app.errors import (
    AlreadyCancelledError,
    ImmutableStateError,
    TerminalStateError,
)


class BookingStatus(str, enum.Enum):
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    CONFIRMED = "CONFIRMED"
    MODIFIED = "MODIFIED"
    CHECKED_IN = "CHECKED_IN"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED_BY_USER = "CANCELLED_BY_USER"
    CANCELLED_BY_ADMIN = "CANCELLED_BY_ADMIN"
    CANCELLED_NO_PAYMENT = "CANCELLED_NO_PAYMENT"
    NO_SHOW = "NO_SHOW"
    REFUNDED = "REFUNDED"


class PaymentStatus(str, enum.Enum):
    SUCCEEDED = "SUCCEEDED"
    REFUNDED = "REFUNDED"
    PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"


class RefundStatus(str, enum.Enum):
    SUCCEEDED = "SUCCEEDED"


# Statuses in which a booking occupies its room. Every status must be in
# exactly one of HOLDING_STATUSES or RELEASED_STATUSES.
HOLDING_STATUSES = frozenset({
    BookingStatus.PENDING_PAYMENT,
    BookingStatus.PAYMENT_RECEIVED,
    BookingStatus.CONFIRMED,
    BookingStatus.MODIFIED,
    BookingStatus.CHECKED_IN,
    BookingStatus.IN_PROGRESS,
})

RELEASED_STATUSES = frozenset(BookingStatus) - HOLDING_STATUSES

CANCELLED_STATUSES = frozenset({
    BookingStatus.CANCELLED_BY_USER,
    BookingStatus.CANCELLED_BY_ADMIN,
    BookingStatus.CANCELLED_NO_PAYMENT,
})

TERMINAL_STATUSES = CANCELLED_STATUSES | {
    BookingStatus.COMPLETED,
    BookingStatus.NO_SHOW,
    BookingStatus.REFUNDED,
}

# Statuses an administrator may set directly, bypassing TRANSITIONS.
ADMIN_OVERRIDE_STATUSES = frozenset({
    BookingStatus.CONFIRMED,
    BookingStatus.CANCELLED_BY_ADMIN,
    BookingStatus.COMPLETED,
    BookingStatus.CHECKED_IN,
    BookingStatus.IN_PROGRESS,
    BookingStatus.NO_SHOW,
})

_CANCEL_TARGETS = {
    BookingStatus.CANCELLED_BY_USER,
    BookingStatus.CANCELLED_BY_ADMIN,
    BookingStatus.REFUNDED,
}

TRANSITIONS = {
    BookingStatus.PENDING_PAYMENT: {
        BookingStatus.PAYMENT_RECEIVED,
        BookingStatus.CONFIRMED,
        BookingStatus.MODIFIED,
        BookingStatus.CANCELLED_NO_PAYMENT,
    } | _CANCEL_TARGETS,
    BookingStatus.PAYMENT_RECEIVED: {
        BookingStatus.CONFIRMED,
        BookingStatus.MODIFIED,
    } | _CANCEL_TARGETS,
    BookingStatus.CONFIRMED: {
        BookingStatus.MODIFIED,
        BookingStatus.CHECKED_IN,
        BookingStatus.NO_SHOW,
    } | _CANCEL_TARGETS,
    BookingStatus.MODIFIED: {
        BookingStatus.CONFIRMED,
        BookingStatus.MODIFIED,
        BookingStatus.CANCELLED_NO_PAYMENT,
        BookingStatus.CHECKED_IN,
        BookingStatus.NO_SHOW,
    } | _CANCEL_TARGETS,
    BookingStatus.CHECKED_IN: {
        BookingStatus.IN_PROGRESS,
        BookingStatus.MODIFIED,
    } | _CANCEL_TARGETS,
    BookingStatus.IN_PROGRESS: {
        BookingStatus.COMPLETED,
        BookingStatus.MODIFIED,
    } | _CANCEL_TARGETS,
}
for _terminal in TERMINAL_STATUSES:
    TRANSITIONS[_terminal] = set()


def is_holding(status: BookingStatus) -> bool:
    return BookingStatus(status) in HOLDING_STATUSES


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return BookingStatus(target) in TRANSITIONS[BookingStatus(current)]


def ensure_mutable(current: BookingStatus) -> None:
    """Raise unless the booking's date, time or headcount may still change."""
    if not can_transition(current, BookingStatus.MODIFIED):
        raise ImmutableStateError(
            f"A booking in status {BookingStatus(current).value} can no longer be modified"
        )


def ensure_cancellable(current: BookingStatus) -> None:
    current = BookingStatus(current)
    if current in CANCELLED_STATUSES:
        raise AlreadyCancelledError()
    if current == BookingStatus.COMPLETED:
        raise TerminalStateError(
            "A completed booking cannot be cancelled", code="BOOKING_COMPLETED"
        )
    if current in TERMINAL_STATUSES:
        raise TerminalStateError(
            f"A booking in status {current.value} cannot be cancelled"
        )


def ensure_refundable(current: BookingStatus) -> None:
    current = BookingStatus(current)
    if not can_transition(current, BookingStatus.REFUNDED):
        raise TerminalStateError(
            f"A booking in status {current.value} cannot be refunded"
        )
