from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from conftest import NOW, TODAY, FlakyStore, fixed_clock
from flynest.bookings.cancellation import CancellationFlow, can_cancel, days_until_flight
from flynest.bookings.exceptions import BookingNotFound, NotEligible, SoftCancelFailed
from flynest.bookings.schemas import Booking, BookingStatus
from flynest.bookings.status_chain import StatusUpdateChain

ALL_UPDATES = {"update_status_primary", "update_status_alternative", "update_status_privileged"}


def make_booking(days_ahead: int, status: BookingStatus = BookingStatus.PENDING) -> Booking:
    return Booking(
        booking_id="7",
        user_id=1,
        flight_id=3,
        flight_number="AI-865",
        departure_city="Mumbai",
        arrival_city="Bengaluru",
        flight_date=TODAY + timedelta(days=days_ahead),
        passenger_count=1,
        amount=Decimal("4200.00"),
        status=status,
    )


def make_flow(store, min_days=2):
    return CancellationFlow(store, StatusUpdateChain(store), min_days=min_days, refund_days="5-6", clock=fixed_clock)


class TestDaysUntilFlight:
    @pytest.mark.parametrize("days_ahead,expected", [(10, 10), (3, 3), (2, 2), (1, 1), (0, 0), (-1, -1)])
    def test_partial_days_round_up(self, days_ahead, expected):
        assert days_until_flight(TODAY + timedelta(days=days_ahead), NOW) == expected

    def test_exact_midnight(self):
        midnight = datetime(2025, 3, 10, tzinfo=timezone.utc)
        assert days_until_flight(date(2025, 3, 13), midnight) == 3

    def test_naive_now_is_utc(self):
        assert days_until_flight(date(2025, 3, 13), NOW.replace(tzinfo=None)) == 3

    def test_offset_now_is_converted(self):
        # 23:30 on the 12th in UTC+5:30 is 18:00 UTC on the 12th
        ist = timezone(timedelta(hours=5, minutes=30))
        assert days_until_flight(date(2025, 3, 13), datetime(2025, 3, 12, 23, 30, tzinfo=ist)) == 1


class TestCanCancel:
    @pytest.mark.parametrize("days_ahead,allowed", [(10, True), (3, True), (2, False), (0, False), (-1, False)])
    def test_window(self, days_ahead, allowed):
        assert can_cancel(make_booking(days_ahead), NOW) is allowed

    def test_confirmed_bookings_follow_the_same_rule(self):
        assert can_cancel(make_booking(3, BookingStatus.CONFIRMED), NOW)
        assert not can_cancel(make_booking(2, BookingStatus.CONFIRMED), NOW)

    def test_cancelled_booking_is_never_eligible(self):
        assert not can_cancel(make_booking(30, BookingStatus.CANCELLED), NOW)

    def test_threshold_is_configurable(self):
        assert not can_cancel(make_booking(5), NOW, min_days=7)
        assert can_cancel(make_booking(8), NOW, min_days=7)


class TestCancellationRequest:
    async def test_eligible_booking(self, store, seed):
        booking_id = await seed.booking(flight_date=TODAY + timedelta(days=5))

        decision = await make_flow(store).request(booking_id)

        assert decision.eligible
        assert decision.days_until_flight == 5
        assert "6E-204" in decision.message
        assert "5-6 business days" in decision.message
        assert (await store.get(booking_id)).status == BookingStatus.PENDING

    async def test_ineligible_booking_reports_days(self, store, seed):
        booking_id = await seed.booking(flight_date=TODAY + timedelta(days=1))

        decision = await make_flow(store).request(booking_id)

        assert not decision.eligible
        assert decision.days_until_flight == 1
        assert decision.message == (
            "Bookings can only be cancelled at least 2 days before the flight. "
            "Your flight is in 1 days."
        )

    async def test_already_cancelled(self, store, seed):
        booking_id = await seed.booking(status="cancelled")

        decision = await make_flow(store).request(booking_id)

        assert not decision.eligible
        assert decision.message == "This booking is already cancelled."

    async def test_unknown_booking(self, store):
        with pytest.raises(BookingNotFound):
            await make_flow(store).request("404")


class TestCancellationConfirm:
    async def test_hard_delete_removes_booking(self, store, seed):
        booking_id = await seed.booking()
        await seed.payment(booking_id)

        outcome = await make_flow(store).confirm(booking_id)

        assert outcome.method == "deleted"
        assert outcome.completed_at.tzinfo is not None
        assert outcome.message == (
            "Your booking has been deleted successfully. "
            "Refund will be processed within 5-6 business days."
        )
        assert await store.get(booking_id) is None

    async def test_rejected_delete_falls_back_to_soft_cancel(self, store, seed):
        booking_id = await seed.booking(status="confirmed", with_passengers=True)
        flaky = FlakyStore(store)

        outcome = await make_flow(flaky).confirm(booking_id)

        assert outcome.method == "cancelled"
        assert outcome.booking.status == BookingStatus.CANCELLED
        assert outcome.message.startswith("Your booking has been cancelled successfully.")
        assert flaky.calls == ["delete", "update_status_primary"]
        assert (await store.get(booking_id)).status == BookingStatus.CANCELLED

    async def test_soft_cancel_uses_fallback_strategies(self, store, seed):
        booking_id = await seed.booking(with_passengers=True)
        flaky = FlakyStore(store, failing={"update_status_primary"})

        outcome = await make_flow(flaky).confirm(booking_id)

        assert outcome.method == "cancelled"
        assert flaky.calls == ["delete", "update_status_primary", "update_status_alternative"]

    async def test_both_paths_failing_keeps_prior_status(self, store, seed):
        booking_id = await seed.booking(status="confirmed", with_passengers=True)
        flaky = FlakyStore(store, failing=ALL_UPDATES)

        with pytest.raises(SoftCancelFailed) as exc_info:
            await make_flow(flaky).confirm(booking_id)

        assert exc_info.value.message == "Failed to delete/cancel booking. Please try again or contact support."
        assert (await store.get(booking_id)).status == BookingStatus.CONFIRMED

    async def test_ineligible_confirm_changes_nothing(self, store, seed):
        booking_id = await seed.booking(flight_date=TODAY + timedelta(days=2))
        flaky = FlakyStore(store)

        with pytest.raises(NotEligible) as exc_info:
            await make_flow(flaky).confirm(booking_id)

        assert exc_info.value.days_until_flight == 2
        assert flaky.calls == []
        assert (await store.get(booking_id)).status == BookingStatus.PENDING

    async def test_cancelled_booking_cannot_be_cancelled_again(self, store, seed):
        booking_id = await seed.booking(status="cancelled")

        with pytest.raises(NotEligible):
            await make_flow(store).confirm(booking_id)
