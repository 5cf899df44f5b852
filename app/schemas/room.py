import datetime as dt
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class RoomBase(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    capacity: int = Field(ge=1)
    price_per_hour: float = Field(ge=0)
    equipment: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None


class RoomCreate(RoomBase):
    pass


class RoomUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    price_per_hour: Optional[float] = Field(default=None, ge=0)
    equipment: Optional[List[str]] = None
    image_url: Optional[str] = None
    is_active: Optional[bool] = None


class RoomResponse(RoomBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    is_active: bool


class DayAvailability(BaseModel):
    date: dt.date
    slots: List[str]


class RoomDetailResponse(RoomResponse):
    available_slots: List[DayAvailability] = Field(default_factory=list)
