from datetime import datetime
from sqlalchemy import Column, Date, DateTime, Enum, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
from app.db import Base
from app.models.status import BookingStatus
from app.models.timeslot import TimeSlot


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    # identity provider subject, not a local user row
    user_id = Column(String, nullable=False, index=True)

    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # "HH:MM", zero-padded
    end_time = Column(String(5), nullable=False)

    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False)
    customer_phone = Column(String, nullable=True)
    number_of_people = Column(Integer, nullable=False, default=1)

    total_price = Column(Float, nullable=False, default=0)
    status = Column(
        Enum(BookingStatus, native_enum=False, length=32),
        nullable=False,
        default=BookingStatus.PENDING_PAYMENT,
        index=True,
    )

    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)
    cancelled_at = Column(DateTime, nullable=True)
    payment_date = Column(DateTime, nullable=True)

    stripe_session_id = Column(String, nullable=True, unique=True)
    stripe_payment_id = Column(String, nullable=True)
    stripe_refund_id = Column(String, nullable=True)

    room = relationship("Room", back_populates="bookings")
    payment = relationship("Payment", back_populates="booking", uselist=False)
    refund = relationship("Refund", back_populates="booking", uselist=False)

    __table_args__ = (
        Index("ix_bookings_room_date", "room_id", "date"),
    )

    @property
    def slot(self) -> TimeSlot:
        return TimeSlot.parse(self.date, self.start_time, self.end_time)

    @property
    def awaiting_payment(self) -> bool:
        """Unpaid and still holding its slot; changes before checkout keep it payable."""
        if self.payment_date is not None:
            return False
        return self.status in (BookingStatus.PENDING_PAYMENT, BookingStatus.MODIFIED)
