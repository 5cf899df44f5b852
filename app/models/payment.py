from datetime import datetime
from sqlalchemy import Column, DateTime, Enum, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from app.db import Base
from app.models.status import PaymentStatus


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    # one payment per booking; also absorbs duplicate confirmations
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, unique=True)

    amount = Column(Float, nullable=False)
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String(10), nullable=False)

    stripe_payment_intent_id = Column(String, nullable=True, index=True)
    stripe_charge_id = Column(String, nullable=True)
    payment_method = Column(String, nullable=True)
    card_last4 = Column(String(4), nullable=True)
    card_brand = Column(String, nullable=True)
    receipt_url = Column(String, nullable=True)

    status = Column(
        Enum(PaymentStatus, native_enum=False, length=32),
        nullable=False,
        default=PaymentStatus.SUCCEEDED,
    )
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    booking = relationship("Booking", back_populates="payment")
