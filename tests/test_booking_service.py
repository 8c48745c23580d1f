from datetime import timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from conftest import TODAY, FlakyStore, StubOracle, fixed_clock
from flynest.bookings.booking_service import BookingService
from flynest.bookings.exceptions import BookingNotFound, TransitionRejected, UpdateChannelExhausted
from flynest.bookings.notices import STATUS_UPDATES_NOTICE
from flynest.bookings.schemas import (
    BookingCreateRequest, BookingListFilters, BookingStatus, PassengerInfo, PaymentOutcome
)

ALL_UPDATES = {"update_status_primary", "update_status_alternative", "update_status_privileged"}


def passenger(name="Asha Rao", **overrides):
    data = dict(full_name=name, gender="female", age=34, passport_number="P1234567")
    data.update(overrides)
    return PassengerInfo(**data)


@pytest.fixture
def service(store, oracle, notices, settings):
    return BookingService(store, oracle, notices=notices, settings=settings, clock=fixed_clock)


class TestCreateBooking:
    async def test_amount_is_price_times_passengers(self, service, store, seed):
        flight_id = await seed.flight(price="5000.00")

        booking = await service.create_booking(BookingCreateRequest(
            user_id=1, flight_id=flight_id, passengers=[passenger(), passenger("Vikram Rao", gender="male")]
        ))

        assert booking.status == BookingStatus.PENDING
        assert booking.passenger_count == 2
        assert booking.amount == Decimal("10000.00")
        assert booking.flight_number == "6E-204"
        assert await store.get(booking.booking_id) == booking

    async def test_unknown_flight(self, service):
        with pytest.raises(ValueError, match="Flight not found"):
            await service.create_booking(BookingCreateRequest(user_id=1, flight_id=99, passengers=[passenger()]))

    def test_passenger_details_are_validated(self):
        with pytest.raises(ValidationError):
            passenger(full_name="  ")
        with pytest.raises(ValidationError):
            passenger(age=0)
        with pytest.raises(ValidationError):
            BookingCreateRequest(user_id=1, flight_id=1, passengers=[])

    async def test_created_booking_with_passengers_is_soft_cancelled(self, service, store, seed):
        flight_id = await seed.flight()
        booking = await service.create_booking(
            BookingCreateRequest(user_id=1, flight_id=flight_id, passengers=[passenger()])
        )

        outcome = await service.confirm_cancellation(booking.booking_id)

        assert outcome.method == "cancelled"
        assert (await store.get(booking.booking_id)).status == BookingStatus.CANCELLED


class TestBookingList:
    async def test_pending_paid_bookings_are_reconciled(self, service, seed):
        paid = await seed.booking()
        unpaid = await seed.booking()
        await seed.payment(paid)

        listing = await service.get_bookings_for_user(1)

        statuses = {v.booking.booking_id: v.booking.status for v in listing.bookings}
        assert statuses == {paid: BookingStatus.CONFIRMED, unpaid: BookingStatus.PENDING}
        assert listing.total_bookings == 2
        assert listing.reconciled_count == 1
        assert listing.unreconciled_count == 0

    async def test_views_carry_cancellation_window(self, service, seed):
        await seed.booking(flight_date=TODAY + timedelta(days=1))

        view = (await service.get_bookings_for_user(1)).bookings[0]

        assert view.days_until_flight == 1
        assert view.can_cancel is False

    async def test_failed_check_does_not_fail_the_list(self, store, notices, settings, seed):
        broken = await seed.booking()
        paid = await seed.booking()
        oracle = StubOracle(outcomes={paid: PaymentOutcome.SUCCESS}, errors={broken: TimeoutError("timed out")})
        service = BookingService(store, oracle, notices=notices, settings=settings, clock=fixed_clock)

        listing = await service.get_bookings_for_user(1)

        assert listing.unreconciled_count == 1
        assert {v.booking.booking_id: v.booking.status for v in listing.bookings}[broken] == BookingStatus.PENDING

    async def test_filters(self, service, seed):
        await seed.booking(flight_number="6E-204", departure_city="Delhi", arrival_city="Mumbai")
        goa = await seed.booking(flight_number="SG-101", departure_city="Chennai", arrival_city="Goa")
        await seed.booking(status="cancelled", flight_number="AI-865")

        by_city = await service.get_bookings_for_user(1, BookingListFilters(search="goa"))
        by_status = await service.get_bookings_for_user(1, BookingListFilters(status="Cancelled"))

        assert [v.booking.booking_id for v in by_city.bookings] == [goa]
        assert [v.booking.flight_number for v in by_status.bookings] == ["AI-865"]
        assert by_status.total_bookings == 1

    async def test_status_notice_is_shown_once(self, service, seed):
        await seed.booking()

        first = await service.get_bookings_for_user(1)
        second = await service.get_bookings_for_user(1)
        other_user = await service.get_bookings_for_user(2)

        assert first.notice == STATUS_UPDATES_NOTICE
        assert second.notice is None
        assert other_user.notice == STATUS_UPDATES_NOTICE


class TestPaymentResult:
    async def test_success_confirms_booking(self, service, store, seed):
        booking_id = await seed.booking()

        completion = await service.on_payment_result(booking_id, PaymentOutcome.SUCCESS)

        assert completion.title == "Booking Complete!"
        assert completion.status_recorded
        assert completion.booking_status == BookingStatus.CONFIRMED
        assert (await store.get(booking_id)).status == BookingStatus.CONFIRMED

    async def test_success_with_exhausted_chain_still_reports_payment(self, oracle, settings, store, seed):
        booking_id = await seed.booking()
        service = BookingService(FlakyStore(store, failing=ALL_UPDATES), oracle, settings=settings, clock=fixed_clock)

        completion = await service.on_payment_result(booking_id, PaymentOutcome.SUCCESS)

        assert completion.payment_succeeded
        assert not completion.status_recorded
        assert completion.title == "Payment Successful"
        assert completion.message == (
            "Payment processed successfully! Your booking may show as pending - "
            "please contact support if needed."
        )
        assert (await store.get(booking_id)).status == BookingStatus.PENDING

    async def test_success_for_cancelled_booking_does_not_raise(self, service, store, seed):
        booking_id = await seed.booking(status="cancelled")

        completion = await service.on_payment_result(booking_id, PaymentOutcome.SUCCESS)

        assert completion.payment_succeeded and not completion.status_recorded
        assert completion.booking_status == BookingStatus.CANCELLED
        assert (await store.get(booking_id)).status == BookingStatus.CANCELLED

    async def test_failed_payment_leaves_booking_pending(self, service, store, seed):
        booking_id = await seed.booking()

        completion = await service.on_payment_result(booking_id, PaymentOutcome.FAILURE)

        assert not completion.payment_succeeded
        assert completion.title == "Payment Failed"
        assert completion.booking_status == BookingStatus.PENDING
        assert (await store.get(booking_id)).status == BookingStatus.PENDING

    async def test_unknown_booking(self, service):
        with pytest.raises(BookingNotFound):
            await service.on_payment_result("12345", PaymentOutcome.SUCCESS)


class TestStatusOperations:
    async def test_refresh_confirms_paid_booking(self, service, seed):
        booking_id = await seed.booking()
        await seed.payment(booking_id)

        booking = await service.refresh_booking(booking_id)

        assert booking.status == BookingStatus.CONFIRMED

    async def test_refresh_unpaid_booking_stays_pending(self, service, seed):
        booking_id = await seed.booking()

        assert (await service.refresh_booking(booking_id)).status == BookingStatus.PENDING

    async def test_mark_as_confirmed(self, service, store, seed):
        booking_id = await seed.booking()

        result = await service.update_status(booking_id, "Confirmed")

        assert result.succeeded
        assert (await store.get(booking_id)).status == BookingStatus.CONFIRMED

    async def test_manual_update_out_of_cancelled_is_rejected(self, service, seed):
        booking_id = await seed.booking(status="cancelled")

        with pytest.raises(TransitionRejected):
            await service.update_status(booking_id, BookingStatus.CONFIRMED)

    async def test_manual_update_with_exhausted_chain(self, oracle, settings, store, seed):
        booking_id = await seed.booking()
        service = BookingService(FlakyStore(store, failing=ALL_UPDATES), oracle, settings=settings)

        with pytest.raises(UpdateChannelExhausted):
            await service.update_status(booking_id, BookingStatus.CONFIRMED)
