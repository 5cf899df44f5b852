import logging
from datetime import date, datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app.db import get_db
from app.models.status import BookingStatus
from app.schemas.admin import StatisticsResponse
from app.schemas.auth import Actor
from app.schemas.booking import BookingResponse, BookingStatusUpdate
from app.schemas.common import ApiResponse
from app.schemas.room import RoomCreate, RoomResponse, RoomUpdate
from app.services import admin_service
from app.services.booking_service import BookingService
from app.services.dependencies import get_booking_service
from app.utils.auth import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@router.post("/rooms", response_model=ApiResponse[RoomResponse], status_code=status.HTTP_201_CREATED)
def create_room(room: RoomCreate, db: Session = Depends(get_db)):
    """
    Create a new meeting room.
    """
    db_room = admin_service.create_room(db, room)
    return {"data": RoomResponse.model_validate(db_room)}


@router.put("/rooms/{room_id}", response_model=ApiResponse[RoomResponse])
def update_room(room_id: int, room_update: RoomUpdate, db: Session = Depends(get_db)):
    """
    Update a meeting room's details. Only the fields sent are changed.
    """
    db_room = admin_service.update_room(db, room_id, room_update)
    return {"data": RoomResponse.model_validate(db_room)}


@router.delete("/rooms/{room_id}", response_model=ApiResponse[RoomResponse])
def delete_room(room_id: int, db: Session = Depends(get_db)):
    """
    Deactivate a meeting room. Refused while future bookings hold it.
    """
    db_room = admin_service.deactivate_room(db, room_id, date.today())
    return {"data": RoomResponse.model_validate(db_room), "message": "Room deactivated"}


@router.delete("/rooms/{room_id}/purge", status_code=status.HTTP_204_NO_CONTENT)
def purge_room(room_id: int, db: Session = Depends(get_db)):
    """
    Permanently delete an inactive room that has never been booked.
    """
    admin_service.purge_room(db, room_id)
    return None


@router.get("/bookings", response_model=ApiResponse[List[BookingResponse]])
def list_bookings(
    status: Optional[BookingStatus] = None,
    room_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    service: BookingService = Depends(get_booking_service),
):
    """
    List all bookings, optionally filtered by status, room and date range.
    """
    bookings = service.list_bookings(status, room_id, start_date, end_date)
    return {
        "data": [BookingResponse.model_validate(b) for b in bookings],
        "meta": {"total": len(bookings)},
    }


@router.patch("/bookings/{booking_id}/status", response_model=ApiResponse[BookingResponse])
def set_booking_status(
    booking_id: int,
    update: BookingStatusUpdate,
    service: BookingService = Depends(get_booking_service),
):
    """
    Set a booking's status directly, bypassing the normal lifecycle.

    Allowed values: CONFIRMED, CANCELLED_BY_ADMIN, COMPLETED, CHECKED_IN,
    IN_PROGRESS, NO_SHOW.
    """
    booking = service.set_status(booking_id, update.status, datetime.now())
    return {"data": BookingResponse.model_validate(booking)}


@router.delete("/bookings/{booking_id}", response_model=ApiResponse[BookingResponse])
def cancel_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
    admin: Actor = Depends(require_admin),
):
    """
    Cancel any booking on behalf of the venue (CANCELLED_BY_ADMIN).
    """
    booking = service.cancel_booking(booking_id, admin, datetime.now())
    return {"data": BookingResponse.model_validate(booking), "message": "Booking cancelled"}


@router.get("/statistics", response_model=ApiResponse[StatisticsResponse])
def get_statistics(db: Session = Depends(get_db)):
    stats = admin_service.get_statistics(db, date.today())
    return {"data": StatisticsResponse(**stats)}
