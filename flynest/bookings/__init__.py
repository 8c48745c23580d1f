"""
Booking Lifecycle Module

This module tracks flight bookings from passenger submission to confirmation
or cancellation for the Flynest booking service. It includes:

- Booking state machine (Pending, Confirmed, Cancelled)
- Status update fallback chain (primary, alternative, privileged)
- Reconciliation of Pending bookings against the payment processor
- Cancellation eligibility and delete-then-cancel flow
- One-time user notices kept in injected key-value state

Key Components:
- state_machine.py: Allowed status transitions
- status_chain.py: Ordered status update strategies
- reconciliation.py: Payment-status scan over a booking list
- cancellation.py: Eligibility window and two-phase cancellation
- store.py / http_store.py: Booking store backends (database, remote API)
- payments.py: Payment-status oracle
- booking_service.py: Service used by the API layer
- router.py: FastAPI endpoints
- schemas.py: Pydantic models
"""

from .router import router
from .booking_service import BookingService
from .status_chain import StatusUpdateChain
from .reconciliation import ReconciliationScanner
from .cancellation import CancellationFlow, can_cancel, days_until_flight
from .schemas import (
    Booking, BookingStatus, PaymentOutcome, StatusUpdateResult,
    CancellationDecision, CancellationOutcome, PaymentCompletion, BookingList
)

__all__ = [
    "router",
    "BookingService",
    "StatusUpdateChain",
    "ReconciliationScanner",
    "CancellationFlow",
    "can_cancel",
    "days_until_flight",
    "Booking",
    "BookingStatus",
    "PaymentOutcome",
    "StatusUpdateResult",
    "CancellationDecision",
    "CancellationOutcome",
    "PaymentCompletion",
    "BookingList"
]
