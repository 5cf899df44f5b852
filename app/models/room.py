from datetime import datetime
from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import relationship
from app.db import Base


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=False, default="")
    capacity = Column(Integer, nullable=False)
    price_per_hour = Column(Float, nullable=False, default=0)
    equipment = Column(JSON, nullable=False, default=list)
    image_url = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    bookings = relationship("Booking", back_populates="room")
