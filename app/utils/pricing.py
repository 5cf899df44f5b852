from app.models.timeslot import TimeSlot


def compute_total_price(slot: TimeSlot, price_per_hour: float) -> float:
    """
    Price a slot as ``(end_hour - start_hour) * price_per_hour``.

    Only the hour component of each bound is used and minutes are ignored:
    09:30-10:30 and 09:30-10:00 are both billed as one hour.
    """
    hours = slot.end_hour - slot.start_hour
    return float(hours * price_per_hour)


def to_cents(amount: float) -> int:
    return int(round(amount * 100))
