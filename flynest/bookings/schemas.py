from pydantic import BaseModel, Field, validator
from typing import List, Optional, Literal, Any
from datetime import datetime, date, timezone
from decimal import Decimal
from enum import Enum

class BookingStatus(str, Enum):
    """Booking status enumeration"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    @classmethod
    def _missing_(cls, value: Any):
        # Status values arrive as "Confirmed", "CONFIRMED", " confirmed " ...
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @property
    def wire_value(self) -> str:
        """Capitalized form used by the remote booking API"""
        return self.value.capitalize()

class PaymentOutcome(str, Enum):
    """Payment outcome reported by the payment processor"""
    SUCCESS = "success"
    FAILURE = "failure"
    PENDING = "pending"

    @classmethod
    def _missing_(cls, value: Any):
        if isinstance(value, str):
            normalized = value.strip().lower()
            aliases = {"paid": cls.SUCCESS, "succeeded": cls.SUCCESS, "failed": cls.FAILURE}
            if normalized in aliases:
                return aliases[normalized]
            for member in cls:
                if member.value == normalized:
                    return member
        return None

class StatusStrategy(str, Enum):
    """Status update strategies, in the order the chain tries them"""
    PRIMARY = "primary"
    ALTERNATIVE = "alternative"
    PRIVILEGED = "privileged"

# Booking Models
class Booking(BaseModel):
    """Booking record as held by the booking store"""
    booking_id: str
    user_id: int
    flight_id: int
    flight_number: str
    departure_city: str
    arrival_city: str
    flight_date: date
    passenger_count: int = Field(..., ge=1)
    amount: Decimal
    status: BookingStatus = BookingStatus.PENDING

    @validator('booking_id', pre=True)
    def coerce_booking_id(cls, v):
        return str(v)

    class Config:
        frozen = True

class PassengerInfo(BaseModel):
    """Individual passenger information"""
    full_name: str
    gender: str
    age: int
    passport_number: str

    @validator('full_name', 'gender', 'passport_number')
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('Passenger field must not be blank')
        return v.strip()

    @validator('age')
    def positive_age(cls, v):
        if v <= 0:
            raise ValueError('Passenger age must be positive')
        return v

class FlightSnapshot(BaseModel):
    """Flight details copied onto a booking at creation time"""
    flight_id: int
    flight_number: str
    departure_city: str
    arrival_city: str
    flight_date: date
    price: Decimal

class BookingCreate(BaseModel):
    """Data handed to the booking store to create a Pending booking"""
    user_id: int
    flight: FlightSnapshot
    passengers: List[PassengerInfo]

    @validator('passengers')
    def validate_passengers(cls, v):
        if not v or len(v) == 0:
            raise ValueError('At least one passenger is required')
        return v

    @property
    def passenger_count(self) -> int:
        return len(self.passengers)

    @property
    def amount(self) -> Decimal:
        return self.flight.price * self.passenger_count

# Request Models
class BookingCreateRequest(BaseModel):
    """Passenger-info submission for a selected flight"""
    user_id: int
    flight_id: int
    passengers: List[PassengerInfo]

    @validator('passengers')
    def validate_passengers(cls, v):
        if not v or len(v) == 0:
            raise ValueError('At least one passenger is required')
        return v

class StatusUpdateRequest(BaseModel):
    """Manual status change request"""
    status: BookingStatus

class PaymentResultRequest(BaseModel):
    """Payment processor callback payload"""
    outcome: PaymentOutcome

# Status Update Chain Models
class StatusUpdateAttempt(BaseModel):
    """One strategy attempt inside a status update"""
    strategy: StatusStrategy
    succeeded: bool
    error: Optional[str] = None

class StatusUpdateResult(BaseModel):
    """Outcome of applying a status through the fallback chain"""
    booking_id: str
    target_status: BookingStatus
    succeeded: bool
    attempts: List[StatusUpdateAttempt] = []
    already_applied: bool = False
    last_error: Optional[str] = None

    @property
    def strategy_used(self) -> Optional[StatusStrategy]:
        for attempt in self.attempts:
            if attempt.succeeded:
                return attempt.strategy
        return None

# Listing Models
class BookingView(BaseModel):
    """Booking as shown in a user's booking list"""
    booking: Booking
    days_until_flight: int
    can_cancel: bool

class BookingListFilters(BaseModel):
    """Filters applied to a reconciled booking list"""
    search: Optional[str] = None
    status: Literal["all", "pending", "confirmed", "cancelled"] = "all"

    @validator('status', pre=True)
    def normalize_status(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

class Notice(BaseModel):
    """One-time informational notice"""
    key: str
    title: str
    message: str

class BookingList(BaseModel):
    """Reconciled booking list for a user"""
    user_id: int
    bookings: List[BookingView]
    total_bookings: int
    reconciled_count: int = 0
    unreconciled_count: int = 0
    notice: Optional[Notice] = None

class ReconciliationReport(BaseModel):
    """Result of reconciling a batch of bookings"""
    bookings: List[Booking]
    confirmed_ids: List[str] = []
    failed_ids: List[str] = []

# Cancellation Models
class CancellationDecision(BaseModel):
    """Answer to a cancellation request (first phase)"""
    booking_id: str
    eligible: bool
    days_until_flight: int
    message: str

class CancellationOutcome(BaseModel):
    """Result of a confirmed cancellation (second phase)"""
    booking_id: str
    method: Literal["deleted", "cancelled"]
    message: str
    booking: Optional[Booking] = None
    completed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

# Payment Completion Models
class PaymentCompletion(BaseModel):
    """What the traveler is told once the payment processor reports back"""
    booking_id: str
    payment_succeeded: bool
    status_recorded: bool
    booking_status: BookingStatus
    title: str
    message: str
    status_update: Optional[StatusUpdateResult] = None
