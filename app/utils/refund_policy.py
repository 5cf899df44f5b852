"""Time-based cancellation refund policy."""

import math
from dataclasses import dataclass
from datetime import date, datetime, time

from app.models.timeslot import parse_time_of_day

FULL_REFUND_HOURS = 48
HALF_REFUND_HOURS = 24


@dataclass(frozen=True)
class RefundQuote:
    total_price: float
    refund_amount: float
    refund_percentage: int
    hours_until_booking: float

    @property
    def can_refund(self) -> bool:
        return self.refund_amount > 0

    @property
    def is_full(self) -> bool:
        return self.refund_amount == self.total_price


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_refund(
    booking_date: date, start_time: str, total_price: float, now: datetime
) -> RefundQuote:
    """Refund owed if the booking is cancelled at ``now``.

    48h or more before the start: full refund. Between 24h and 48h: half.
    Less than 24h (or already started): nothing.
    """
    minutes = parse_time_of_day(start_time)
    starts_at = datetime.combine(booking_date, time(minutes // 60, minutes % 60))
    hours_until_booking = (starts_at - now).total_seconds() / 3600

    if hours_until_booking >= FULL_REFUND_HOURS:
        refund_amount = total_price
    elif hours_until_booking >= HALF_REFUND_HOURS:
        refund_amount = total_price * 0.5
    else:
        refund_amount = 0.0

    if total_price:
        refund_percentage = _round_half_up(refund_amount / total_price * 100)
    else:
        refund_percentage = 0

    return RefundQuote(
        total_price=total_price,
        refund_amount=refund_amount,
        refund_percentage=refund_percentage,
        hours_until_booking=hours_until_booking,
    )
