from typing import AsyncGenerator

from fastapi import Depends

from flynest.bookings.booking_service import BookingService
from flynest.bookings.http_store import BookingApiClient, HttpBookingStore, HttpPaymentOracle
from flynest.bookings.notices import NoticeBoard, SqlKeyValueStore
from flynest.bookings.payments import SqlPaymentOracle
from flynest.bookings.store import SqlBookingStore
from flynest.config import Settings, get_settings
from flynest.database import AdminSessionLocal, SessionLocal

async def get_booking_service(
    settings: Settings = Depends(get_settings)
) -> AsyncGenerator[BookingService, None]:
    """Booking service wired to the configured booking store backend"""

    notices = NoticeBoard(SqlKeyValueStore(SessionLocal))

    if settings.BOOKING_STORE_BACKEND == "http":
        client = BookingApiClient(settings)
        try:
            yield BookingService(
                HttpBookingStore(client),
                HttpPaymentOracle(client),
                notices=notices,
                settings=settings
            )
        finally:
            await client.aclose()
        return

    yield BookingService(
        SqlBookingStore(SessionLocal, AdminSessionLocal),
        SqlPaymentOracle(SessionLocal),
        notices=notices,
        settings=settings
    )
