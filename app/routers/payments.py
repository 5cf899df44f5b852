import logging
from datetime import datetime
from fastapi import APIRouter, Depends
from app.schemas.auth import Actor
from app.schemas.booking import BookingResponse
from app.schemas.common import ApiResponse
from app.schemas.payment import (
    CheckoutRequest,
    CheckoutResponse,
    RefundPreview,
    RefundPreviewRequest,
    RefundRequest,
    RefundResponse,
    SessionState,
    VerifyResponse,
)
from app.services.booking_service import BookingService
from app.services.dependencies import get_booking_service
from app.utils.auth import get_current_actor, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/payments",
    tags=["payments"],
)


@router.post(
    "/checkout",
    response_model=ApiResponse[CheckoutResponse],
    summary="Start payment for a booking",
)
def create_checkout(
    request: CheckoutRequest,
    service: BookingService = Depends(get_booking_service),
    actor: Actor = Depends(get_current_actor),
):
    """
    Open a hosted checkout session for a booking awaiting payment.

    - **booking_id**: ID of a PENDING_PAYMENT booking owned by the caller.

    Returns the session ID and the URL to redirect the customer to.
    """
    session = service.start_checkout(request.booking_id, actor)
    return {
        "data": CheckoutResponse(
            booking_id=request.booking_id, session_id=session.id, session_url=session.url
        )
    }


@router.get(
    "/verify/{session_id}",
    response_model=ApiResponse[VerifyResponse],
    summary="Verify a checkout session",
)
def verify_payment(
    session_id: str,
    service: BookingService = Depends(get_booking_service),
):
    """
    Check a checkout session with the provider after the customer returns.
    Confirms the booking if the session is paid; safe to call repeatedly.
    """
    logger.debug(f"Verifying payment for session: {session_id}")
    booking, session = service.verify_payment(session_id, datetime.now())
    return {
        "data": VerifyResponse(
            booking=BookingResponse.model_validate(booking),
            session=SessionState(
                id=session.id, status=session.status, payment_status=session.payment_status
            ),
        )
    }


@router.post(
    "/refund",
    response_model=ApiResponse[RefundResponse],
    summary="Refund a paid booking",
)
def request_refund(
    request: RefundRequest,
    service: BookingService = Depends(get_booking_service),
    actor: Actor = Depends(get_current_actor),
):
    """
    Refund a booking according to the cancellation policy:
    100% at least 48h ahead, 50% between 24h and 48h, nothing under 24h.
    """
    refund, quote = service.process_refund(
        request.booking_id, actor, request.reason, datetime.now()
    )
    return {
        "data": RefundResponse(
            refund_id=refund.stripe_refund_id,
            refund_amount=quote.refund_amount,
            refund_percentage=quote.refund_percentage,
        )
    }


@router.post(
    "/calculate-refund",
    response_model=ApiResponse[RefundPreview],
    summary="Preview the refundable amount (admin)",
)
def calculate_refund(
    request: RefundPreviewRequest,
    service: BookingService = Depends(get_booking_service),
    _admin: Actor = Depends(require_admin),
):
    quote = service.preview_refund(request.booking_id, datetime.now())
    return {
        "data": RefundPreview(
            total_price=quote.total_price,
            refund_amount=quote.refund_amount,
            refund_percentage=quote.refund_percentage,
            can_refund=quote.can_refund,
        )
    }
