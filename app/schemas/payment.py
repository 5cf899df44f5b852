from typing import Optional
from pydantic import BaseModel
from app.schemas.booking import BookingResponse


class CheckoutRequest(BaseModel):
    booking_id: int


class CheckoutResponse(BaseModel):
    booking_id: int
    session_id: str
    session_url: Optional[str] = None


class SessionState(BaseModel):
    id: str
    status: Optional[str] = None
    payment_status: Optional[str] = None


class VerifyResponse(BaseModel):
    booking: BookingResponse
    session: SessionState


class RefundRequest(BaseModel):
    booking_id: int
    reason: Optional[str] = None


class RefundPreviewRequest(BaseModel):
    booking_id: int


class RefundResponse(BaseModel):
    refund_id: str
    refund_amount: float
    refund_percentage: int


class RefundPreview(BaseModel):
    total_price: float
    refund_amount: float
    refund_percentage: int
    can_refund: bool
