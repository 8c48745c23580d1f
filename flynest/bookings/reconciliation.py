import asyncio
import logging
from typing import List, Optional, Tuple

from flynest.bookings.exceptions import ReconciliationCheckFailed
from flynest.bookings.payments import PaymentOracle
from flynest.bookings.schemas import Booking, BookingStatus, PaymentOutcome, ReconciliationReport
from flynest.bookings.status_chain import StatusUpdateChain

logger = logging.getLogger(__name__)

CONFIRMED = "confirmed"
FAILED = "failed"

class ReconciliationScanner:
    """Re-derives Pending bookings' status from the payment oracle.

    Checks for different bookings run concurrently and are isolated from each
    other: a failure only leaves that booking Pending. The scanner only ever
    confirms bookings; an unpaid or failed payment never cancels one.
    """

    def __init__(self, chain: StatusUpdateChain, oracle: PaymentOracle):
        self.chain = chain
        self.oracle = oracle

    async def reconcile(self, bookings: List[Booking]) -> ReconciliationReport:
        """Reconcile every Pending booking in the list, preserving order"""
        results = await asyncio.gather(*(self._reconcile_one(booking) for booking in bookings))

        report = ReconciliationReport(bookings=[booking for booking, _ in results])
        for booking, outcome in results:
            if outcome == CONFIRMED:
                report.confirmed_ids.append(booking.booking_id)
            elif outcome == FAILED:
                report.failed_ids.append(booking.booking_id)

        if report.confirmed_ids or report.failed_ids:
            logger.info(
                f"Reconciled {len(bookings)} bookings: "
                f"{len(report.confirmed_ids)} confirmed, {len(report.failed_ids)} unreconciled"
            )
        return report

    async def reconcile_booking(self, booking: Booking) -> Booking:
        """Reconcile a single booking (manual refresh)"""
        reconciled, _ = await self._reconcile_one(booking)
        return reconciled

    async def _reconcile_one(self, booking: Booking) -> Tuple[Booking, Optional[str]]:
        if booking.status != BookingStatus.PENDING:
            return booking, None

        try:
            outcome = await self.oracle.check(booking.booking_id)
            if outcome != PaymentOutcome.SUCCESS:
                return booking, None

            result = await self.chain.apply_status(booking.booking_id, BookingStatus.CONFIRMED)
            if not result.succeeded:
                raise ReconciliationCheckFailed(
                    booking.booking_id, f"status update failed: {result.last_error}"
                )
        except ReconciliationCheckFailed as e:
            logger.warning(e.message)
            return booking, FAILED
        except Exception as e:
            failure = ReconciliationCheckFailed(booking.booking_id, f"{type(e).__name__}: {e}")
            logger.warning(failure.message, exc_info=e)
            return booking, FAILED

        return booking.model_copy(update={"status": BookingStatus.CONFIRMED}), CONFIRMED
