from datetime import datetime
from typing import List
from fastapi import APIRouter, Depends, status
from app.schemas.auth import Actor
from app.schemas.booking import BookingCreate, BookingUpdate, BookingResponse
from app.schemas.common import ApiResponse
from app.services.booking_service import BookingService
from app.services.dependencies import get_booking_service
from app.utils.auth import get_current_actor
import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/bookings",
    tags=["bookings"],
)


@router.post(
    "/",
    response_model=ApiResponse[BookingResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a new booking",
    description="Book a room for a time range on a given date. The booking awaits payment. Requires authentication."
)
def create_booking(
    booking: BookingCreate,
    service: BookingService = Depends(get_booking_service),
    actor: Actor = Depends(get_current_actor),
):
    """
    Create a new booking in status PENDING_PAYMENT.
    Requires authentication.

    - **room_id**: ID of the room to book.
    - **date**: Day of the booking (e.g., 2025-05-04).
    - **start_time** / **end_time**: Time range as HH:MM, end exclusive.
    - **customer_name**, **customer_email**, **customer_phone**: Contact details.
    - **number_of_people**: Attendee count, at most the room capacity.

    Returns the created booking with its computed total price.
    """
    db_booking = service.create_booking(actor, booking, datetime.now())
    return {
        "data": BookingResponse.model_validate(db_booking),
        "message": "Booking created",
    }


@router.get(
    "/me",
    response_model=ApiResponse[List[BookingResponse]],
    summary="List my bookings",
    description="Retrieve the bookings of the authenticated user, newest first."
)
def get_my_bookings(
    service: BookingService = Depends(get_booking_service),
    actor: Actor = Depends(get_current_actor),
):
    bookings = service.list_user_bookings(actor)
    logger.debug(f"Retrieved {len(bookings)} bookings for user {actor.user_id}")
    return {
        "data": [BookingResponse.model_validate(b) for b in bookings],
        "meta": {"total": len(bookings)},
    }


@router.get(
    "/{booking_id}",
    response_model=ApiResponse[BookingResponse],
    summary="Get a booking by ID",
    description="Retrieve one of your bookings by its ID."
)
def get_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
    actor: Actor = Depends(get_current_actor),
):
    booking = service.get_booking(booking_id, actor)
    return {"data": BookingResponse.model_validate(booking)}


@router.put(
    "/{booking_id}",
    response_model=ApiResponse[BookingResponse],
    summary="Update a booking",
    description="Change the date, time range or headcount of a booking. Requires authentication and ownership."
)
def update_booking(
    booking_id: int,
    booking_update: BookingUpdate,
    service: BookingService = Depends(get_booking_service),
    actor: Actor = Depends(get_current_actor),
):
    """
    Update a booking's slot or headcount.
    Requires authentication and ownership.

    - **booking_id**: ID of the booking to update.
    - **date**: (Optional) New date.
    - **start_time** / **end_time**: (Optional) New time range.
    - **number_of_people**: (Optional) New headcount.

    The price is recomputed and the booking moves to MODIFIED.
    """
    db_booking = service.update_booking(booking_id, actor, booking_update, datetime.now())
    return {
        "data": BookingResponse.model_validate(db_booking),
        "message": "Booking updated",
    }


@router.delete(
    "/{booking_id}",
    response_model=ApiResponse[BookingResponse],
    summary="Cancel a booking",
    description="Cancel a booking. Requires authentication and ownership."
)
def cancel_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
    actor: Actor = Depends(get_current_actor),
):
    db_booking = service.cancel_booking(booking_id, actor, datetime.now())
    return {
        "data": BookingResponse.model_validate(db_booking),
        "message": "Booking cancelled",
    }
