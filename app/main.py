import logging
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI
from app.config import settings
from app.db import init_database
from app.errors import register_error_handlers
from app.routers import admin, bookings, payments, rooms, webhooks
from app.services.payment_provider import init_payment_provider

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    "lifespan for initing database and the payment provider"
    init_database()
    app.state.payment_provider = init_payment_provider()
    logger.info(f"Room booking API started ({settings.ENVIRONMENT})")
    yield


app = FastAPI(
    lifespan=lifespan,
    title="Room booker",
    description="Meeting-room booking backend with online payment.",
    version="0.1.0",
    license_info={
        "name": "MIT",
        "url": "https://opensource.org/licenses/MIT",
    },
)

register_error_handlers(app)


@app.get("/health", tags=["health"])
def health():
    return {
        "status": "ok",
        "timestamp": datetime.now().isoformat(),
        "environment": settings.ENVIRONMENT,
    }


app.include_router(rooms.router)
app.include_router(bookings.router)
app.include_router(payments.router)
app.include_router(webhooks.router)
app.include_router(admin.router)
