"""HTTP client for the remote booking API and its payment-status endpoint."""

import logging
from datetime import date, datetime
from typing import Any, List, Optional

import httpx

from flynest.bookings.exceptions import BookingNotFound, DeleteFailed
from flynest.bookings.schemas import (
    Booking,
    BookingCreate,
    BookingStatus,
    FlightSnapshot,
    PaymentOutcome,
)
from flynest.config import Settings

logger = logging.getLogger(__name__)

class BookingApiError(Exception):
    """Base error for booking API request failures."""

class BookingApiConnectionError(BookingApiError):
    """Raised when the booking API cannot be reached or times out."""

class BookingApiNotFoundError(BookingApiError):
    """Raised when the booking API answers 404."""

class BookingApiRequestError(BookingApiError):
    """Raised for any other non-success response."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code

def _pick(data: dict, *names: str, default: Any = None) -> Any:
    for name in names:
        if name in data and data[name] is not None:
            return data[name]
    return default

def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value)
    # The API sometimes serializes dates as midnight datetimes
    if "T" in text:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    return date.fromisoformat(text)

def booking_from_payload(data: dict) -> Booking:
    """Build a Booking from the API's camelCase or snake_case payload."""
    return Booking(
        booking_id=_pick(data, "bookingId", "booking_id", "id"),
        user_id=_pick(data, "userId", "user_id"),
        flight_id=_pick(data, "flightId", "flight_id"),
        flight_number=_pick(data, "flightNumber", "flight_number", default=""),
        departure_city=_pick(data, "departureCity", "departure_city", default=""),
        arrival_city=_pick(data, "arrivalCity", "arrival_city", default=""),
        flight_date=_parse_date(_pick(data, "flightDate", "flight_date")),
        passenger_count=_pick(data, "passengerCount", "passenger_count", default=1),
        amount=_pick(data, "amount", default=0),
        status=_pick(data, "status", default=BookingStatus.PENDING.value),
    )

class BookingApiClient:
    """Low-level HTTP access to the booking API."""

    def __init__(self, settings: Settings, http: Optional[httpx.AsyncClient] = None) -> None:
        self.settings = settings
        self.http = http or httpx.AsyncClient(
            base_url=settings.BOOKING_API_URL,
            timeout=httpx.Timeout(settings.HTTP_TIMEOUT_SECONDS),
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def call(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        admin: bool = False,
    ) -> Any:
        headers = {}
        token = self.settings.BOOKING_ADMIN_TOKEN if admin else self.settings.BOOKING_API_TOKEN
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self.http.request(method, path, json=json, headers=headers)
        except httpx.TimeoutException as exc:
            raise BookingApiConnectionError(f"booking_api_timeout: Request to {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise BookingApiConnectionError(f"booking_api_connection_failed: {exc}") from exc

        if response.status_code == 404:
            raise BookingApiNotFoundError(f"booking_api_not_found: {path}")
        if response.status_code >= 400:
            raise BookingApiRequestError(
                f"booking_api_error_{response.status_code}: {method} {path}",
                response.status_code,
            )

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return {"status_code": response.status_code, "text": response.text}

class HttpBookingStore:
    """Booking store backed by the remote booking API."""

    def __init__(self, client: BookingApiClient) -> None:
        self.client = client

    async def get(self, booking_id: str) -> Optional[Booking]:
        try:
            data = await self.client.call("GET", f"/Bookings/{booking_id}")
        except BookingApiNotFoundError:
            return None
        return booking_from_payload(data)

    async def list_by_user(self, user_id: int) -> List[Booking]:
        try:
            data = await self.client.call("GET", f"/Bookings/user/{user_id}")
        except BookingApiNotFoundError:
            return []
        return [booking_from_payload(item) for item in data or []]

    async def get_flight(self, flight_id: int) -> Optional[FlightSnapshot]:
        try:
            data = await self.client.call("GET", f"/Flights/{flight_id}")
        except BookingApiNotFoundError:
            return None
        return FlightSnapshot(
            flight_id=_pick(data, "id", "flightId"),
            flight_number=_pick(data, "flightNumber", "flight_number"),
            departure_city=_pick(data, "departureAirport", "departure_airport"),
            arrival_city=_pick(data, "arrivalAirport", "arrival_airport"),
            flight_date=_parse_date(_pick(data, "flightDate", "flight_date")),
            price=_pick(data, "price", default=0),
        )

    async def create(self, data: BookingCreate) -> Booking:
        payload = {
            "userId": data.user_id,
            "flightId": data.flight.flight_id,
            "flightNumber": data.flight.flight_number,
            "departureCity": data.flight.departure_city,
            "arrivalCity": data.flight.arrival_city,
            "flightDate": data.flight.flight_date.isoformat(),
            "passengerCount": data.passenger_count,
            "amount": str(data.amount),
            "status": BookingStatus.PENDING.wire_value,
        }
        created = await self.client.call("POST", "/Bookings", json=payload)
        booking = booking_from_payload({**payload, **(created or {})})

        for passenger in data.passengers:
            await self.client.call(
                "POST",
                "/Passengers",
                json={
                    "BookingId": booking.booking_id,
                    "FullName": passenger.full_name,
                    "Gender": passenger.gender,
                    "Age": passenger.age,
                    "PassportNumber": passenger.passport_number,
                },
            )
        return booking

    async def update_status_primary(self, booking_id: str, status: BookingStatus) -> None:
        await self._update_status("PUT", f"/Bookings/{booking_id}/status", status.wire_value, booking_id)

    async def update_status_alternative(self, booking_id: str, status: BookingStatus) -> None:
        await self._update_status(
            "PATCH", f"/Bookings/{booking_id}", {"status": status.wire_value}, booking_id
        )

    async def update_status_privileged(self, booking_id: str, status: BookingStatus) -> None:
        await self._update_status(
            "PUT", f"/admin/bookings/{booking_id}", {"status": status.wire_value}, booking_id, admin=True
        )

    async def delete(self, booking_id: str) -> None:
        try:
            await self.client.call("DELETE", f"/Bookings/{booking_id}")
        except BookingApiNotFoundError as exc:
            raise BookingNotFound(booking_id) from exc
        except BookingApiError as exc:
            raise DeleteFailed(booking_id, str(exc)) from exc

    async def _update_status(
        self, method: str, path: str, payload: Any, booking_id: str, admin: bool = False
    ) -> None:
        try:
            await self.client.call(method, path, json=payload, admin=admin)
        except BookingApiNotFoundError as exc:
            raise BookingNotFound(booking_id) from exc

class HttpPaymentOracle:
    """Payment-status oracle served by the booking API."""

    def __init__(self, client: BookingApiClient) -> None:
        self.client = client

    async def check(self, booking_id: str) -> PaymentOutcome:
        try:
            data = await self.client.call("GET", f"/Payments/booking/{booking_id}")
        except BookingApiNotFoundError:
            return PaymentOutcome.PENDING

        if isinstance(data, list):
            # Latest payment record wins
            data = data[-1] if data else {}
        raw = _pick(data or {}, "status", "paymentStatus", "payment_status", default="pending")
        try:
            return PaymentOutcome(raw)
        except ValueError:
            logger.warning(f"Unknown payment status {raw!r} for booking {booking_id}")
            return PaymentOutcome.PENDING
