from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import ValidationError
from typing import Optional

from flynest.bookings.booking_service import BookingService
from flynest.bookings.dependencies import get_booking_service
from flynest.bookings.exceptions import BookingError
from flynest.bookings.schemas import (
    Booking, BookingCreateRequest, BookingList, BookingListFilters,
    CancellationDecision, CancellationOutcome, PaymentCompletion,
    PaymentResultRequest, StatusUpdateRequest, StatusUpdateResult
)

router = APIRouter()

def _failure(action: str, e: Exception) -> HTTPException:
    if isinstance(e, BookingError):
        return e.to_http_exception()
    if isinstance(e, ValueError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {str(e)}"
    )

# Booking Management Endpoints
@router.post("/", response_model=Booking, status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: BookingCreateRequest,
    booking_service: BookingService = Depends(get_booking_service)
):
    """Create a Pending booking from passenger details"""

    try:
        return await booking_service.create_booking(request)
    except Exception as e:
        raise _failure("create booking", e)

@router.get("/user/{user_id}", response_model=BookingList)
async def get_user_bookings(
    user_id: int,
    search: Optional[str] = Query(None, description="Flight number, city or booking ID"),
    booking_status: Optional[str] = Query(
        None, alias="status", description="all, pending, confirmed or cancelled (any case)"
    ),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Get all bookings for a user, with Pending ones reconciled against payments"""

    try:
        filters = BookingListFilters(search=search, status=booking_status or "all")
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=e.errors(include_url=False, include_context=False)
        )

    try:
        return await booking_service.get_bookings_for_user(user_id, filters)
    except Exception as e:
        raise _failure("load bookings", e)

@router.get("/{booking_id}", response_model=Booking)
async def get_booking(
    booking_id: str,
    booking_service: BookingService = Depends(get_booking_service)
):
    """Get booking details by ID"""

    try:
        return await booking_service.get_booking(booking_id)
    except Exception as e:
        raise _failure("get booking", e)

@router.post("/{booking_id}/refresh", response_model=Booking)
async def refresh_booking_status(
    booking_id: str,
    booking_service: BookingService = Depends(get_booking_service)
):
    """Re-check a booking's payment and return its current status"""

    try:
        return await booking_service.refresh_booking(booking_id)
    except Exception as e:
        raise _failure("refresh booking", e)

@router.put("/{booking_id}/status", response_model=StatusUpdateResult)
async def update_booking_status(
    booking_id: str,
    request: StatusUpdateRequest,
    booking_service: BookingService = Depends(get_booking_service)
):
    """Manually change a booking's status"""

    try:
        return await booking_service.update_status(booking_id, request.status)
    except Exception as e:
        raise _failure("update booking status", e)

# Payment Completion
@router.post("/{booking_id}/payment-result", response_model=PaymentCompletion)
async def report_payment_result(
    booking_id: str,
    request: PaymentResultRequest,
    booking_service: BookingService = Depends(get_booking_service)
):
    """Payment processor callback: record the payment outcome"""

    try:
        return await booking_service.on_payment_result(booking_id, request.outcome)
    except Exception as e:
        raise _failure("record payment result", e)

# Cancellation Endpoints
@router.post("/{booking_id}/cancellation", response_model=CancellationDecision)
async def request_cancellation(
    booking_id: str,
    booking_service: BookingService = Depends(get_booking_service)
):
    """Check whether a booking can be cancelled"""

    try:
        return await booking_service.request_cancellation(booking_id)
    except Exception as e:
        raise _failure("check cancellation", e)

@router.post("/{booking_id}/cancellation/confirm", response_model=CancellationOutcome)
async def confirm_cancellation(
    booking_id: str,
    booking_service: BookingService = Depends(get_booking_service)
):
    """Cancel a booking: delete it, or mark it Cancelled if it cannot be deleted"""

    try:
        return await booking_service.confirm_cancellation(booking_id)
    except Exception as e:
        raise _failure("cancel booking", e)
