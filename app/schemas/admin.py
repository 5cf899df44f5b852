from typing import Optional
from pydantic import BaseModel


class MostBookedRoom(BaseModel):
    id: int
    name: str
    booking_count: int


class StatisticsResponse(BaseModel):
    total_rooms: int
    total_bookings: int
    confirmed_bookings: int
    future_bookings: int
    total_revenue: float
    most_booked_room: Optional[MostBookedRoom] = None
