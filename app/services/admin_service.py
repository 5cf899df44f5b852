import logging
from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.errors import NotFoundError, RoomInUseError
from app.models.booking import Booking
from app.models.room import Room
from app.models.status import HOLDING_STATUSES, BookingStatus
from app.schemas.room import RoomCreate, RoomUpdate

logger = logging.getLogger(__name__)

REVENUE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.COMPLETED)


def list_active_rooms(db: Session):
    return db.query(Room).filter(Room.is_active.is_(True)).order_by(Room.name).all()


def get_room(db: Session, room_id: int, include_inactive: bool = False) -> Room:
    room = db.get(Room, room_id)
    if not room or not (room.is_active or include_inactive):
        raise NotFoundError("Room not found", code="ROOM_NOT_FOUND")
    return room


def create_room(db: Session, data: RoomCreate) -> Room:
    room = Room(**data.model_dump(), is_active=True)
    db.add(room)
    db.commit()
    db.refresh(room)
    logger.info(f"Created room {room.id} ({room.name})")
    return room


def update_room(db: Session, room_id: int, data: RoomUpdate) -> Room:
    room = get_room(db, room_id, include_inactive=True)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(room, key, value)
    db.commit()
    db.refresh(room)
    return room


def deactivate_room(db: Session, room_id: int, today: date) -> Room:
    """Soft delete; refused while upcoming bookings still hold the room."""
    room = get_room(db, room_id, include_inactive=True)
    future_bookings = (
        db.query(Booking)
        .filter(
            Booking.room_id == room.id,
            Booking.status.in_(HOLDING_STATUSES),
            Booking.date >= today,
        )
        .count()
    )
    if future_bookings > 0:
        raise RoomInUseError(
            f"Cannot delete: {future_bookings} future booking(s) exist for this room"
        )
    room.is_active = False
    db.commit()
    db.refresh(room)
    logger.info(f"Deactivated room {room.id}")
    return room


def purge_room(db: Session, room_id: int) -> None:
    """Hard delete, only for an inactive room that was never booked."""
    room = get_room(db, room_id, include_inactive=True)
    if room.is_active:
        raise RoomInUseError("Deactivate the room before deleting it", code="ROOM_ACTIVE")
    booking_count = db.query(Booking).filter(Booking.room_id == room.id).count()
    if booking_count:
        raise RoomInUseError(
            f"Cannot delete: the room has {booking_count} booking(s)", code="ROOM_HAS_BOOKINGS"
        )
    db.delete(room)
    db.commit()
    logger.info(f"Deleted room {room_id}")


def get_statistics(db: Session, today: date) -> dict:
    total_rooms = db.query(Room).filter(Room.is_active.is_(True)).count()
    total_bookings = db.query(Booking).count()
    confirmed_bookings = (
        db.query(Booking).filter(Booking.status == BookingStatus.CONFIRMED).count()
    )
    future_bookings = (
        db.query(Booking)
        .filter(Booking.status == BookingStatus.CONFIRMED, Booking.date >= today)
        .count()
    )
    total_revenue = (
        db.query(func.coalesce(func.sum(Booking.total_price), 0))
        .filter(Booking.status.in_(REVENUE_STATUSES))
        .scalar()
    )

    most_booked_room: Optional[dict] = None
    top = (
        db.query(Booking.room_id, func.count(Booking.id).label("booking_count"))
        .filter(Booking.status.in_(REVENUE_STATUSES))
        .group_by(Booking.room_id)
        .order_by(func.count(Booking.id).desc())
        .first()
    )
    if top:
        room = db.get(Room, top.room_id)
        most_booked_room = {
            "id": top.room_id,
            "name": room.name if room else "Unknown room",
            "booking_count": top.booking_count,
        }

    return {
        "total_rooms": total_rooms,
        "total_bookings": total_bookings,
        "confirmed_bookings": confirmed_bookings,
        "future_bookings": future_bookings,
        "total_revenue": float(total_revenue or 0),
        "most_booked_room": most_booked_room,
    }
