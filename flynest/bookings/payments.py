import logging
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from flynest.bookings.schemas import PaymentOutcome
from flynest.models import Payment

logger = logging.getLogger(__name__)

class PaymentOracle(Protocol):
    """Source of truth for whether a booking has been paid."""

    async def check(self, booking_id: str) -> PaymentOutcome: ...

class SqlPaymentOracle:
    """Reads the latest payment record written by the payment processor"""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def check(self, booking_id: str) -> PaymentOutcome:
        """Get the outcome of the most recent payment for a booking"""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Payment.status)
                .where(Payment.booking_id == int(booking_id))
                .order_by(Payment.id.desc())
                .limit(1)
            )
            raw = result.scalar_one_or_none()

        if raw is None:
            return PaymentOutcome.PENDING

        try:
            return PaymentOutcome(raw)
        except ValueError:
            logger.warning(f"Unknown payment status {raw!r} for booking {booking_id}")
            return PaymentOutcome.PENDING
