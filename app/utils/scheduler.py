from datetime import date, timedelta
from typing import List, Optional
from sqlalchemy.orm import Session
from app.models.booking import Booking
from app.models.status import HOLDING_STATUSES
from app.models.timeslot import TimeSlot

# Hourly start times offered on the room availability grid.
OPENING_HOURS = [9, 10, 11, 12, 14, 15, 16, 17]


def holding_bookings(
    db: Session, room_id: int, day: date, exclude_booking_id: Optional[int] = None
) -> List[Booking]:
    """Bookings that occupy the room on the given date."""
    query = db.query(Booking).filter(
        Booking.room_id == room_id,
        Booking.date == day,
        Booking.status.in_(HOLDING_STATUSES),
    )
    if exclude_booking_id is not None:
        query = query.filter(Booking.id != exclude_booking_id)
    return query.order_by(Booking.start_time).all()


def find_conflict(
    db: Session, room_id: int, slot: TimeSlot, exclude_booking_id: Optional[int] = None
) -> Optional[Booking]:
    """
    Return the first slot-holding booking of the room that overlaps ``slot``.

    ``exclude_booking_id`` skips a booking being moved in place.
    """
    for booking in holding_bookings(db, room_id, slot.date, exclude_booking_id):
        if booking.slot.overlaps(slot):
            return booking
    return None


def has_conflict(
    db: Session, room_id: int, slot: TimeSlot, exclude_booking_id: Optional[int] = None
) -> bool:
    return find_conflict(db, room_id, slot, exclude_booking_id) is not None


def available_slots(db: Session, room_id: int, start_date: date, days: int = 7):
    """
    List the free hourly start times of a room for ``days`` days from ``start_date``.

    Days without a free hour are left out.
    """
    result = []
    for offset in range(days):
        day = start_date + timedelta(days=offset)
        taken = [b.slot for b in holding_bookings(db, room_id, day)]
        free = []
        for hour in OPENING_HOURS:
            candidate = TimeSlot(day, hour * 60, (hour + 1) * 60)
            if not any(candidate.overlaps(slot) for slot in taken):
                free.append(candidate.start_time)
        if free:
            result.append({"date": day, "slots": free})
    return result
