from fastapi import Depends
from sqlalchemy.orm import Session
from app.db import get_db
from app.services.booking_service import BookingService
from app.services.payment_provider import PaymentProvider, get_payment_provider
from app.utils.locks import slot_locks


def get_booking_service(
    db: Session = Depends(get_db),
    payment_provider: PaymentProvider = Depends(get_payment_provider),
) -> BookingService:
    return BookingService(db, payment_provider, slot_locks)
