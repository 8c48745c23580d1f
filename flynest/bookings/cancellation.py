"""
Cancellation eligibility and the two-phase cancel flow.

A booking can be cancelled while more than ``min_days`` whole days remain
before its flight. Confirming a cancellation first tries to delete the booking
outright; if the store refuses, the booking is soft-cancelled through the
status chain instead.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional, Union

from flynest.bookings.exceptions import BookingNotFound, NotEligible, SoftCancelFailed
from flynest.bookings.schemas import (
    Booking, BookingStatus, CancellationDecision, CancellationOutcome
)
from flynest.bookings.status_chain import StatusUpdateChain
from flynest.bookings.store import BookingStore

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)
DEFAULT_MIN_DAYS = 2

Moment = Union[datetime, date]

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def _as_utc(moment: Moment) -> datetime:
    if isinstance(moment, datetime):
        if moment.tzinfo is None:
            return moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(timezone.utc)
    return datetime.combine(moment, time.min, tzinfo=timezone.utc)

def days_until_flight(flight_date: date, now: Optional[Moment] = None) -> int:
    """Whole days until the flight, rounded up (negative once it has passed).

    The flight date counts from midnight UTC of that day; a naive ``now`` is
    taken as UTC.
    """
    delta = _as_utc(flight_date) - _as_utc(now if now is not None else utc_now())
    # ceil(delta / 1 day) in exact timedelta arithmetic
    return -((-delta) // ONE_DAY)

def can_cancel(booking: Booking, now: Optional[Moment] = None, min_days: int = DEFAULT_MIN_DAYS) -> bool:
    """Whether a booking may be cancelled at `now`"""
    if booking.status == BookingStatus.CANCELLED:
        return False
    return days_until_flight(booking.flight_date, now) > min_days

def refund_notice(refund_days: str) -> str:
    return f"Refund will be processed within {refund_days} business days."

class CancellationFlow:
    """Request / confirm cancellation with delete-then-soft-cancel fallback"""

    def __init__(
        self,
        store: BookingStore,
        chain: StatusUpdateChain,
        min_days: int = DEFAULT_MIN_DAYS,
        refund_days: str = "5-6",
        clock: Callable[[], datetime] = utc_now
    ):
        self.store = store
        self.chain = chain
        self.min_days = min_days
        self.refund_days = refund_days
        self.clock = clock

    async def request(self, booking_id: str) -> CancellationDecision:
        """First phase: check eligibility without changing anything"""
        booking = await self._get_booking(booking_id)
        now = self.clock()
        days = days_until_flight(booking.flight_date, now)

        if booking.status == BookingStatus.CANCELLED:
            return CancellationDecision(
                booking_id=booking_id,
                eligible=False,
                days_until_flight=days,
                message="This booking is already cancelled."
            )

        if not can_cancel(booking, now, self.min_days):
            return CancellationDecision(
                booking_id=booking_id,
                eligible=False,
                days_until_flight=days,
                message=NotEligible(booking_id, days, self.min_days).message
            )

        return CancellationDecision(
            booking_id=booking_id,
            eligible=True,
            days_until_flight=days,
            message=(
                f"Cancel booking for flight {booking.flight_number} "
                f"({booking.departure_city} → {booking.arrival_city})? "
                f"{refund_notice(self.refund_days)}"
            )
        )

    async def confirm(self, booking_id: str) -> CancellationOutcome:
        """Second phase: hard delete, falling back to a soft cancel.

        Raises NotEligible if the booking left the cancellation window since
        the request, and SoftCancelFailed when both paths failed (the booking
        then keeps its previous status).
        """
        booking = await self._get_booking(booking_id)
        now = self.clock()

        if not can_cancel(booking, now, self.min_days):
            raise NotEligible(booking_id, days_until_flight(booking.flight_date, now), self.min_days)

        # Phase 2a: hard delete
        try:
            await self.store.delete(booking_id)
        except BookingNotFound:
            raise
        except Exception as e:
            logger.warning(f"Delete failed for booking {booking_id}, falling back to soft cancel: {e}")
        else:
            logger.info(f"Booking {booking_id} deleted by user {booking.user_id}")
            return CancellationOutcome(
                booking_id=booking_id,
                method="deleted",
                message=(
                    "Your booking has been deleted successfully. "
                    f"{refund_notice(self.refund_days)}"
                )
            )

        # Phase 2b: soft cancel through the status chain
        result = await self.chain.apply_status(booking_id, BookingStatus.CANCELLED)
        if not result.succeeded:
            logger.error(f"Both delete and cancel failed for booking {booking_id}: {result.last_error}")
            raise SoftCancelFailed(booking_id, result.last_error)

        cancelled = await self.store.get(booking_id)
        logger.info(f"Booking {booking_id} soft-cancelled by user {booking.user_id}")
        return CancellationOutcome(
            booking_id=booking_id,
            method="cancelled",
            booking=cancelled or booking.model_copy(update={"status": BookingStatus.CANCELLED}),
            message=(
                "Your booking has been cancelled successfully. "
                f"{refund_notice(self.refund_days)}"
            )
        )

    async def _get_booking(self, booking_id: str) -> Booking:
        booking = await self.store.get(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)
        return booking
