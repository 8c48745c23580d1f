import logging
from datetime import datetime
from typing import Callable, List, Optional

from flynest.bookings.cancellation import CancellationFlow, can_cancel, days_until_flight, utc_now
from flynest.bookings.exceptions import BookingNotFound, TransitionRejected
from flynest.bookings.notices import NoticeBoard
from flynest.bookings.payments import PaymentOracle
from flynest.bookings.reconciliation import ReconciliationScanner
from flynest.bookings.schemas import (
    Booking, BookingCreate, BookingCreateRequest, BookingList, BookingListFilters,
    BookingStatus, BookingView, CancellationDecision, CancellationOutcome,
    PaymentCompletion, PaymentOutcome, StatusUpdateResult
)
from flynest.bookings.state_machine import StatusLike
from flynest.bookings.status_chain import StatusUpdateChain
from flynest.bookings.store import BookingStore
from flynest.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

class BookingService:
    """Service for managing flight bookings after passenger submission"""

    def __init__(
        self,
        store: BookingStore,
        oracle: PaymentOracle,
        notices: Optional[NoticeBoard] = None,
        chain: Optional[StatusUpdateChain] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.store = store
        self.settings = settings or default_settings
        self.clock = clock
        self.notices = notices
        self.chain = chain or StatusUpdateChain(store)
        self.scanner = ReconciliationScanner(self.chain, oracle)
        self.cancellation = CancellationFlow(
            store,
            self.chain,
            min_days=self.settings.CANCELLATION_MIN_DAYS,
            refund_days=self.settings.REFUND_PROCESSING_DAYS,
            clock=clock
        )

    async def create_booking(self, request: BookingCreateRequest) -> Booking:
        """Create a Pending booking from a passenger-info submission"""

        flight = await self.store.get_flight(request.flight_id)
        if not flight:
            raise ValueError("Flight not found")

        # Amount is fixed here: per-seat price x passenger count
        data = BookingCreate(
            user_id=request.user_id,
            flight=flight,
            passengers=request.passengers
        )
        return await self.store.create(data)

    async def get_booking(self, booking_id: str) -> Booking:
        """Get booking by ID"""
        booking = await self.store.get(booking_id)
        if not booking:
            raise BookingNotFound(booking_id)
        return booking

    async def get_bookings_for_user(
        self,
        user_id: int,
        filters: Optional[BookingListFilters] = None
    ) -> BookingList:
        """Load a user's bookings, reconciling Pending ones against payments"""

        bookings = await self.store.list_by_user(user_id)
        report = await self.scanner.reconcile(bookings)

        now = self.clock()
        views = [
            BookingView(
                booking=booking,
                days_until_flight=days_until_flight(booking.flight_date, now),
                can_cancel=can_cancel(booking, now, self.settings.CANCELLATION_MIN_DAYS)
            )
            for booking in report.bookings
        ]

        if filters:
            views = self._apply_booking_filters(views, filters)

        notice = await self.notices.take(user_id) if self.notices else None

        return BookingList(
            user_id=user_id,
            bookings=views,
            total_bookings=len(views),
            reconciled_count=len(report.confirmed_ids),
            unreconciled_count=len(report.failed_ids),
            notice=notice
        )

    async def refresh_booking(self, booking_id: str) -> Booking:
        """Force a status refresh for one booking"""
        booking = await self.get_booking(booking_id)
        await self.scanner.reconcile_booking(booking)
        # Report what the store now holds, not what we think we wrote
        return await self.get_booking(booking_id)

    async def update_status(self, booking_id: str, status: StatusLike) -> StatusUpdateResult:
        """Manually move a booking to a new status (e.g. "Mark as Confirmed")"""
        return await self.chain.apply_status_or_raise(booking_id, status)

    async def on_payment_result(self, booking_id: str, outcome: PaymentOutcome) -> PaymentCompletion:
        """Record the payment processor's verdict for a booking"""

        if outcome != PaymentOutcome.SUCCESS:
            booking = await self.get_booking(booking_id)
            logger.info(f"Payment for booking {booking_id} reported {outcome.value}; status left {booking.status.value}")
            return PaymentCompletion(
                booking_id=booking_id,
                payment_succeeded=False,
                status_recorded=False,
                booking_status=booking.status,
                title="Payment Failed",
                message="Payment was not completed. Please try again."
            )

        result: Optional[StatusUpdateResult] = None
        current_status = BookingStatus.PENDING
        try:
            result = await self.chain.apply_status(booking_id, BookingStatus.CONFIRMED)
        except BookingNotFound:
            raise
        except TransitionRejected as e:
            current_status = BookingStatus(e.details["current"])
            logger.warning(f"Paid booking {booking_id} is {current_status.value}; not confirming: {e.message}")
        except Exception as e:
            # The charge went through whatever happens to the status write
            logger.exception(f"Could not record confirmation for paid booking {booking_id}: {e}")

        if result is not None and result.succeeded:
            return PaymentCompletion(
                booking_id=booking_id,
                payment_succeeded=True,
                status_recorded=True,
                booking_status=BookingStatus.CONFIRMED,
                title="Booking Complete!",
                message="Your flight booking has been confirmed and payment processed successfully!",
                status_update=result
            )

        return PaymentCompletion(
            booking_id=booking_id,
            payment_succeeded=True,
            status_recorded=False,
            booking_status=current_status,
            title="Payment Successful",
            message=(
                "Payment processed successfully! Your booking may show as pending - "
                "please contact support if needed."
            ),
            status_update=result
        )

    async def request_cancellation(self, booking_id: str) -> CancellationDecision:
        return await self.cancellation.request(booking_id)

    async def confirm_cancellation(self, booking_id: str) -> CancellationOutcome:
        return await self.cancellation.confirm(booking_id)

    def _apply_booking_filters(
        self,
        views: List[BookingView],
        filters: BookingListFilters
    ) -> List[BookingView]:
        """Apply search term and status filter to a booking list"""

        if filters.search:
            term = filters.search.strip().lower()
            views = [
                v for v in views
                if term in v.booking.flight_number.lower()
                or term in v.booking.departure_city.lower()
                or term in v.booking.arrival_city.lower()
                or term in v.booking.booking_id
            ]

        if filters.status != "all":
            views = [v for v in views if v.booking.status.value == filters.status]

        return views
