from typing import Dict, FrozenSet, Union

from flynest.bookings.exceptions import TransitionRejected
from flynest.bookings.schemas import BookingStatus

# Cancelled is terminal: it has no outgoing transitions
TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
}

StatusLike = Union[BookingStatus, str]

def normalize_status(value: StatusLike) -> BookingStatus:
    """Canonicalize a status value given in any letter case"""
    if isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(value)
    except ValueError:
        raise ValueError(f"Unknown booking status: {value!r}")

def is_terminal(status: StatusLike) -> bool:
    return not TRANSITIONS[normalize_status(status)]

def can_transition(current: StatusLike, target: StatusLike) -> bool:
    """Whether moving from current to target is allowed (same state counts as allowed)"""
    current_status = normalize_status(current)
    target_status = normalize_status(target)
    if current_status == target_status:
        return True
    return target_status in TRANSITIONS[current_status]

def validate_transition(booking_id: str, current: StatusLike, target: StatusLike) -> bool:
    """Validate a status change.

    Returns True when the booking is already in the target state (nothing to
    write), False when a real transition is needed. Raises TransitionRejected
    for anything the state machine does not allow.
    """
    current_status = normalize_status(current)
    target_status = normalize_status(target)

    if current_status == target_status:
        return True

    if target_status not in TRANSITIONS[current_status]:
        raise TransitionRejected(booking_id, current_status.value, target_status.value)

    return False
