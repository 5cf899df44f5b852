import datetime as dt
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from app.models.status import BookingStatus
from app.utils.validation_helpers import validate_email, validate_time_of_day


class BookingCreate(BaseModel):
    room_id: int
    date: dt.date
    start_time: str
    end_time: str
    customer_name: str = Field(min_length=1)
    customer_email: str
    customer_phone: Optional[str] = None
    number_of_people: int = Field(default=1, ge=1)

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, value):
        return validate_time_of_day(value)

    @field_validator("customer_email")
    @classmethod
    def check_email(cls, value):
        return validate_email(value)

    @model_validator(mode="after")
    def check_order(self):
        if self.start_time >= self.end_time:
            raise ValueError("End time must be after start time")
        return self


class BookingUpdate(BaseModel):
    date: Optional[dt.date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    number_of_people: Optional[int] = Field(default=None, ge=1)

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, value):
        return validate_time_of_day(value)

    @property
    def changes_slot(self) -> bool:
        return any(v is not None for v in (self.date, self.start_time, self.end_time))


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    room_id: int
    user_id: str
    date: dt.date
    start_time: str
    end_time: str
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    number_of_people: int
    total_price: float
    status: BookingStatus
    created_at: dt.datetime
    cancelled_at: Optional[dt.datetime] = None
    payment_date: Optional[dt.datetime] = None


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
