import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"
    message = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        details: Optional[Any] = None,
    ):
        self.message = message or self.message
        if code:
            self.code = code
        self.details = details
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    message = "Invalid input"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    message = "Authentication required"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    message = "Not allowed to perform this action"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    message = "Resource not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "TIME_CONFLICT"
    message = "This time slot is already booked"


class ImmutableStateError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BOOKING_NOT_MODIFIABLE"
    message = "This booking can no longer be modified"


class TerminalStateError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BOOKING_TERMINAL"
    message = "This booking is in a final state"


class AlreadyCancelledError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BOOKING_ALREADY_CANCELLED"
    message = "This booking is already cancelled"


class NoPaymentError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "NO_PAYMENT"
    message = "No payment found for this booking"


class NoRefundAvailableError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "NO_REFUND_AVAILABLE"
    message = "No refund available. Cancellation is less than 24 hours before the booking."


class RoomInUseError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "HAS_FUTURE_BOOKINGS"
    message = "The room still has bookings"


class PaymentProviderError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "PAYMENT_PROVIDER_ERROR"
    message = "The payment provider request failed"


class WebhookSignatureError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_SIGNATURE"
    message = "Webhook signature verification failed"


class InternalError(AppError):
    pass


def error_body(code: str, message: str, details: Optional[Any] = None) -> dict:
    error = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {"success": False, "error": error}


def _status_code_name(status_code: int) -> str:
    mapping = {
        400: "BAD_REQUEST",
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
    }
    return mapping.get(status_code, "SERVER_ERROR")


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        message = exc.message
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
            if settings.is_production:
                message = AppError.message
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(error_body(exc.code, message, exc.details)),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(_status_code_name(exc.status_code), str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        message = details[0]["message"] if details else ValidationError.message
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=jsonable_encoder(error_body(ValidationError.code, message, details)),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        message = AppError.message if settings.is_production else str(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(InternalError.code, message),
        )
