from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from app.db import get_db
from app.schemas.common import ApiResponse
from app.schemas.room import RoomDetailResponse, RoomResponse
from app.services import admin_service
from app.utils.scheduler import available_slots


router = APIRouter(
    prefix="/rooms",
    tags=["rooms"],
)


@router.get("/", response_model=ApiResponse[List[RoomResponse]])
def get_rooms(db: Session = Depends(get_db)):
    """
    Retrieve all active meeting rooms, ordered by name.
    """
    rooms = admin_service.list_active_rooms(db)
    return {
        "data": [RoomResponse.model_validate(room) for room in rooms],
        "meta": {"total": len(rooms)},
    }


@router.get("/{room_id}", response_model=ApiResponse[RoomDetailResponse])
def get_room(room_id: int, db: Session = Depends(get_db)):
    """
    Retrieve an active meeting room with its free hourly slots for the next 7 days.
    """
    room = admin_service.get_room(db, room_id)
    detail = RoomDetailResponse(
        **RoomResponse.model_validate(room).model_dump(),
        available_slots=available_slots(db, room.id, date.today()),
    )
    return {"data": detail}
