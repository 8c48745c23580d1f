"""
Booking lifecycle exceptions.

Each error is scoped to a single booking operation. The API layer converts
them with ``to_http_exception``; none of them is fatal to the process.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class BookingError(Exception):
    """Base exception for booking lifecycle errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class BookingNotFound(BookingError):
    """Raised when the booking store has no record for an id."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, booking_id: str) -> None:
        super().__init__(
            f"Booking {booking_id} not found",
            details={"booking_id": booking_id},
        )


class TransitionRejected(BookingError):
    """Raised when a status change violates the booking state machine."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, booking_id: str, current: str, target: str) -> None:
        super().__init__(
            f"Booking {booking_id} cannot move from {current} to {target}",
            details={"booking_id": booking_id, "current": current, "target": target},
        )


class UpdateChannelExhausted(BookingError):
    """Raised when every status update strategy failed.

    The stored status is unchanged or unknown.
    """

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, booking_id: str, target: str, last_error: Optional[str]) -> None:
        super().__init__(
            "Failed to update booking status. Please try again.",
            details={"booking_id": booking_id, "target": target, "last_error": last_error},
        )


class NotEligible(BookingError):
    """Raised when cancellation is requested inside the no-cancel window."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, booking_id: str, days_until_flight: int, min_days: int = 2) -> None:
        self.days_until_flight = days_until_flight
        super().__init__(
            f"Bookings can only be cancelled at least {min_days} days before the flight. "
            f"Your flight is in {days_until_flight} days.",
            details={"booking_id": booking_id, "days_until_flight": days_until_flight},
        )


class DeleteFailed(BookingError):
    """Raised by a booking store when a hard delete is rejected."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, booking_id: str, reason: str) -> None:
        super().__init__(
            f"Booking {booking_id} could not be deleted: {reason}",
            details={"booking_id": booking_id, "reason": reason},
        )


class SoftCancelFailed(BookingError):
    """Raised when both the hard delete and the soft cancel failed."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, booking_id: str, last_error: Optional[str]) -> None:
        super().__init__(
            "Failed to delete/cancel booking. Please try again or contact support.",
            details={"booking_id": booking_id, "last_error": last_error},
        )


class ReconciliationCheckFailed(BookingError):
    """A payment-status check for one booking failed during a list scan.

    Never surfaced to users; the booking simply stays Pending.
    """

    def __init__(self, booking_id: str, reason: str) -> None:
        super().__init__(
            f"Payment status check failed for booking {booking_id}: {reason}",
            details={"booking_id": booking_id, "reason": reason},
        )
