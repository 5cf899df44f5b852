import logging
from datetime import datetime
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from app.errors import error_body
from app.services.booking_service import BookingService
from app.services.dependencies import get_booking_service
from app.services.webhooks import dispatch_event

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/webhooks",
    tags=["webhooks"],
)


@router.post("/stripe", summary="Receive Stripe events")
async def stripe_webhook(
    request: Request,
    service: BookingService = Depends(get_booking_service),
):
    """
    Verify the Stripe signature, then apply the event to the matching booking.
    Unknown event types are acknowledged and ignored.
    """
    payload = await request.body()
    signature = request.headers.get("Stripe-Signature")

    # raises WebhookSignatureError (400) before any booking is touched
    event = service.payment_provider.construct_event(payload, signature)
    logger.debug(f"Received webhook event {event.id} ({event.kind})")

    try:
        handled = await run_in_threadpool(dispatch_event, service, event, datetime.now())
    except Exception:
        logger.exception(f"Error handling webhook event {event.id} ({event.kind})")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("WEBHOOK_PROCESSING_FAILED", "Webhook processing failed"),
        )
    return {"success": True, "data": {"received": True, "handled": handled}}
