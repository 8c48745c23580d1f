"""
Status update fallback chain.

The booking store's status channel is not equally reliable on every route, so
a status change is tried through an ordered list of strategies until one of
them succeeds. Strategies run strictly one after another and each runs at most
once per call; the chain itself is never retried automatically.
"""

import logging
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence

from flynest.bookings.exceptions import BookingNotFound, UpdateChannelExhausted
from flynest.bookings.schemas import (
    BookingStatus, StatusStrategy, StatusUpdateAttempt, StatusUpdateResult
)
from flynest.bookings.state_machine import StatusLike, normalize_status, validate_transition
from flynest.bookings.store import BookingStore

logger = logging.getLogger(__name__)

class StatusUpdateStrategy(Protocol):
    """One way of writing a booking status."""

    name: StatusStrategy

    async def attempt(self, booking_id: str, status: BookingStatus) -> None: ...

class StoreStatusStrategy:
    """Strategy that delegates to one of the booking store's update operations"""

    def __init__(
        self,
        name: StatusStrategy,
        operation: Callable[[str, BookingStatus], Awaitable[None]]
    ):
        self.name = name
        self._operation = operation

    async def attempt(self, booking_id: str, status: BookingStatus) -> None:
        await self._operation(booking_id, status)

    def __repr__(self) -> str:
        return f"StoreStatusStrategy({self.name.value})"

def default_strategies(store: BookingStore) -> List[StatusUpdateStrategy]:
    """Primary, alternative and privileged updates, in that order"""
    return [
        StoreStatusStrategy(StatusStrategy.PRIMARY, store.update_status_primary),
        StoreStatusStrategy(StatusStrategy.ALTERNATIVE, store.update_status_alternative),
        StoreStatusStrategy(StatusStrategy.PRIVILEGED, store.update_status_privileged),
    ]

class StatusUpdateChain:
    """Applies booking status changes through an ordered strategy list"""

    def __init__(
        self,
        store: BookingStore,
        strategies: Optional[Sequence[StatusUpdateStrategy]] = None
    ):
        self.store = store
        self.strategies = list(strategies) if strategies is not None else default_strategies(store)

    async def apply_status(self, booking_id: str, target_status: StatusLike) -> StatusUpdateResult:
        """Drive a booking to target_status.

        Raises BookingNotFound for unknown bookings and TransitionRejected for
        changes the state machine forbids; in both cases no strategy runs.
        Strategy failures never raise: the returned result carries
        ``succeeded=False`` and the last error instead.
        """
        target = normalize_status(target_status)

        booking = await self.store.get(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)

        if validate_transition(booking_id, booking.status, target):
            logger.debug(f"Booking {booking_id} already {target.value}; nothing to apply")
            return StatusUpdateResult(
                booking_id=booking_id,
                target_status=target,
                succeeded=True,
                already_applied=True
            )

        attempts: List[StatusUpdateAttempt] = []
        last_error: Optional[str] = None

        for strategy in self.strategies:
            logger.info(f"Updating booking {booking_id} to {target.value} via {strategy.name.value} strategy")
            try:
                await strategy.attempt(booking_id, target)
            except Exception as e:
                last_error = f"{type(e).__name__}: {e}"
                attempts.append(StatusUpdateAttempt(strategy=strategy.name, succeeded=False, error=last_error))
                logger.warning(f"{strategy.name.value} status update failed for booking {booking_id}: {last_error}")
                continue

            attempts.append(StatusUpdateAttempt(strategy=strategy.name, succeeded=True))
            logger.info(f"Booking {booking_id} is now {target.value} ({strategy.name.value} strategy)")
            return StatusUpdateResult(
                booking_id=booking_id,
                target_status=target,
                succeeded=True,
                attempts=attempts
            )

        logger.error(f"All status update strategies failed for booking {booking_id} -> {target.value}: {last_error}")
        return StatusUpdateResult(
            booking_id=booking_id,
            target_status=target,
            succeeded=False,
            attempts=attempts,
            last_error=last_error
        )

    async def apply_status_or_raise(self, booking_id: str, target_status: StatusLike) -> StatusUpdateResult:
        """Same as apply_status but raises UpdateChannelExhausted on failure"""
        result = await self.apply_status(booking_id, target_status)
        if not result.succeeded:
            raise UpdateChannelExhausted(booking_id, result.target_status.value, result.last_error)
        return result
