from datetime import datetime
from sqlalchemy import Column, DateTime, Enum, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from app.db import Base
from app.models.status import RefundStatus


class Refund(Base):
    __tablename__ = "refunds"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)

    amount = Column(Float, nullable=False)
    amount_cents = Column(Integer, nullable=False)
    stripe_refund_id = Column(String, nullable=False, unique=True)
    reason = Column(String, nullable=False)
    status = Column(
        Enum(RefundStatus, native_enum=False, length=32),
        nullable=False,
        default=RefundStatus.SUCCEEDED,
    )

    processed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    booking = relationship("Booking", back_populates="refund")
