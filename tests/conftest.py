"""
Shared fixtures: a throwaway SQLite database per test, the booking store on
top of it, and small doubles for injecting store and oracle failures.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, Iterable, Optional

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from flynest.bookings.notices import NoticeBoard, SqlKeyValueStore
from flynest.bookings.payments import SqlPaymentOracle
from flynest.bookings.schemas import PaymentOutcome
from flynest.bookings.store import SqlBookingStore
from flynest.config import Settings
from flynest.database import build_session_factory, init_models
from flynest.models import Booking, Flight, Passenger, Payment

NOW = datetime(2025, 3, 10, 9, 30, tzinfo=timezone.utc)
TODAY = NOW.date()


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}")
    await init_models(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return SqlBookingStore(session_factory)


@pytest.fixture
def oracle(session_factory):
    return SqlPaymentOracle(session_factory)


@pytest.fixture
def notices(session_factory):
    return NoticeBoard(SqlKeyValueStore(session_factory))


@pytest.fixture
def settings():
    return Settings(CANCELLATION_MIN_DAYS=2, REFUND_PROCESSING_DAYS="5-6")


@pytest.fixture
def seed(session_factory):
    """Factory for rows in the test database."""

    class Seeder:
        async def flight(self, flight_date: date = TODAY + timedelta(days=10), price: str = "5000.00") -> int:
            async with session_factory() as session:
                async with session.begin():
                    row = Flight(
                        flight_number="6E-204",
                        departure_airport="Delhi",
                        arrival_airport="Mumbai",
                        flight_date=flight_date,
                        price=Decimal(price),
                    )
                    session.add(row)
                    await session.flush()
                    return row.id

        async def booking(
            self,
            status: str = "pending",
            flight_date: date = TODAY + timedelta(days=10),
            user_id: int = 1,
            passenger_count: int = 2,
            price: str = "5000.00",
            with_passengers: bool = False,
            flight_number: str = "6E-204",
            departure_city: str = "Delhi",
            arrival_city: str = "Mumbai",
        ) -> str:
            async with session_factory() as session:
                async with session.begin():
                    row = Booking(
                        user_id=user_id,
                        flight_id=1,
                        flight_number=flight_number,
                        departure_city=departure_city,
                        arrival_city=arrival_city,
                        flight_date=flight_date,
                        passenger_count=passenger_count,
                        amount=Decimal(price) * passenger_count,
                        status=status,
                    )
                    session.add(row)
                    await session.flush()
                    if with_passengers:
                        session.add(Passenger(
                            booking_id=row.id,
                            full_name="Asha Rao",
                            gender="female",
                            age=34,
                            passport_number="P1234567",
                        ))
                    return str(row.id)

        async def payment(self, booking_id: str, status: str = "paid", amount: str = "10000.00") -> None:
            async with session_factory() as session:
                async with session.begin():
                    session.add(Payment(booking_id=int(booking_id), amount=Decimal(amount), status=status))

    return Seeder()


class FlakyStore:
    """Wraps a booking store and makes chosen write operations fail."""

    def __init__(self, inner, failing: Iterable[str] = ()):
        self.inner = inner
        self.failing = set(failing)
        self.calls = []

    def __getattr__(self, name):
        attr = getattr(self.inner, name)
        if not (name.startswith("update_status_") or name == "delete"):
            return attr

        async def wrapper(*args, **kwargs):
            self.calls.append(name)
            if name in self.failing:
                raise RuntimeError(f"{name} unavailable")
            return await attr(*args, **kwargs)

        return wrapper


class StubOracle:
    """Payment oracle answering from a dict; errors are raised per booking."""

    def __init__(
        self,
        outcomes: Optional[Dict[str, PaymentOutcome]] = None,
        errors: Optional[Dict[str, Exception]] = None,
    ):
        self.outcomes = outcomes or {}
        self.errors = errors or {}
        self.checked = []

    async def check(self, booking_id: str) -> PaymentOutcome:
        self.checked.append(booking_id)
        if booking_id in self.errors:
            raise self.errors[booking_id]
        return self.outcomes.get(booking_id, PaymentOutcome.PENDING)
