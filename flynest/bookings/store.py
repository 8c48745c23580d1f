"""
Booking store contract and its SQLAlchemy implementation.

The store exposes three independently addressed status-update operations
(primary, alternative and privileged) so the status chain can fall back from
one to the next.
"""

import logging
from typing import List, Optional, Protocol

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from flynest.bookings.exceptions import BookingNotFound, DeleteFailed
from flynest.bookings.schemas import Booking, BookingCreate, BookingStatus, FlightSnapshot
from flynest.models import Booking as BookingRow, Flight, Passenger

logger = logging.getLogger(__name__)


class BookingStore(Protocol):
    """Booking store collaborator."""

    async def get(self, booking_id: str) -> Optional[Booking]: ...
    async def list_by_user(self, user_id: int) -> List[Booking]: ...
    async def get_flight(self, flight_id: int) -> Optional[FlightSnapshot]: ...
    async def create(self, data: BookingCreate) -> Booking: ...
    async def update_status_primary(self, booking_id: str, status: BookingStatus) -> None: ...
    async def update_status_alternative(self, booking_id: str, status: BookingStatus) -> None: ...
    async def update_status_privileged(self, booking_id: str, status: BookingStatus) -> None: ...
    async def delete(self, booking_id: str) -> None: ...


def _to_booking(row: BookingRow) -> Booking:
    return Booking(
        booking_id=str(row.id),
        user_id=row.user_id,
        flight_id=row.flight_id,
        flight_number=row.flight_number,
        departure_city=row.departure_city,
        arrival_city=row.arrival_city,
        flight_date=row.flight_date,
        passenger_count=row.passenger_count,
        amount=row.amount,
        status=BookingStatus(row.status),
    )


def _row_id(booking_id: str) -> int:
    try:
        return int(booking_id)
    except (TypeError, ValueError):
        raise BookingNotFound(str(booking_id))


class SqlBookingStore:
    """Booking store backed by the relational database.

    Every operation opens its own session, so concurrent callers never share
    one. Privileged updates go through a separate session factory bound to the
    admin engine.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        admin_session_factory: Optional[async_sessionmaker] = None,
    ):
        self.session_factory = session_factory
        self.admin_session_factory = admin_session_factory or session_factory

    async def get(self, booking_id: str) -> Optional[Booking]:
        """Get booking by ID"""
        try:
            row_id = _row_id(booking_id)
        except BookingNotFound:
            return None

        async with self.session_factory() as session:
            row = await session.get(BookingRow, row_id)
            return _to_booking(row) if row else None

    async def list_by_user(self, user_id: int) -> List[Booking]:
        """Get all bookings for a user, newest first"""
        async with self.session_factory() as session:
            result = await session.execute(
                select(BookingRow)
                .where(BookingRow.user_id == user_id)
                .order_by(BookingRow.id.desc())
            )
            return [_to_booking(row) for row in result.scalars().all()]

    async def get_flight(self, flight_id: int) -> Optional[FlightSnapshot]:
        """Get the bookable snapshot of a flight"""
        async with self.session_factory() as session:
            flight = await session.get(Flight, flight_id)
            if flight is None:
                return None
            return FlightSnapshot(
                flight_id=flight.id,
                flight_number=flight.flight_number,
                departure_city=flight.departure_airport,
                arrival_city=flight.arrival_airport,
                flight_date=flight.flight_date,
                price=flight.price,
            )

    async def create(self, data: BookingCreate) -> Booking:
        """Create a Pending booking with its passengers"""
        async with self.session_factory() as session:
            async with session.begin():
                row = BookingRow(
                    user_id=data.user_id,
                    flight_id=data.flight.flight_id,
                    flight_number=data.flight.flight_number,
                    departure_city=data.flight.departure_city,
                    arrival_city=data.flight.arrival_city,
                    flight_date=data.flight.flight_date,
                    passenger_count=data.passenger_count,
                    amount=data.amount,
                    status=BookingStatus.PENDING.value,
                )
                session.add(row)
                await session.flush()

                session.add_all([
                    Passenger(
                        booking_id=row.id,
                        full_name=passenger.full_name,
                        gender=passenger.gender,
                        age=passenger.age,
                        passport_number=passenger.passport_number,
                    )
                    for passenger in data.passengers
                ])

            logger.info(f"Created booking {row.id} for user {data.user_id} ({data.passenger_count} passengers)")
            return _to_booking(row)

    async def update_status_primary(self, booking_id: str, status: BookingStatus) -> None:
        """Load the booking through the ORM and change its status"""
        row_id = _row_id(booking_id)
        async with self.session_factory() as session:
            async with session.begin():
                row = await session.get(BookingRow, row_id)
                if row is None:
                    raise BookingNotFound(booking_id)
                row.status = status.value
                row.updated_by = "primary"

    async def update_status_alternative(self, booking_id: str, status: BookingStatus) -> None:
        """Issue a bulk UPDATE statement against the bookings table"""
        await self._execute_status_update(self.session_factory, booking_id, status, "alternative")

    async def update_status_privileged(self, booking_id: str, status: BookingStatus) -> None:
        """Same UPDATE, issued with the administrative connection"""
        await self._execute_status_update(self.admin_session_factory, booking_id, status, "admin")

    async def delete(self, booking_id: str) -> None:
        """Hard-delete a booking; dependent passenger rows make this fail"""
        row_id = _row_id(booking_id)
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(BookingRow).where(BookingRow.id == row_id)
                    )
                    if result.rowcount == 0:
                        raise BookingNotFound(booking_id)
        except IntegrityError as e:
            raise DeleteFailed(booking_id, str(e.orig)) from e
        except SQLAlchemyError as e:
            raise DeleteFailed(booking_id, str(e)) from e

    async def _execute_status_update(
        self,
        session_factory: async_sessionmaker,
        booking_id: str,
        status: BookingStatus,
        updated_by: str
    ) -> None:
        row_id = _row_id(booking_id)
        async with session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(BookingRow)
                    .where(BookingRow.id == row_id)
                    .values(status=status.value, updated_by=updated_by)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise BookingNotFound(booking_id)
