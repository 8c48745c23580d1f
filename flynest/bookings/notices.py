import logging
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from flynest.bookings.schemas import Notice
from flynest.models import UserPreference

logger = logging.getLogger(__name__)

STATUS_UPDATES_NOTICE = Notice(
    key="booking_status_notification_shown",
    title="Automatic Status Updates",
    message=(
        "Your booking statuses are automatically checked and updated based on payment status. "
        "Use the Refresh button to manually update."
    ),
)

class KeyValueStore(Protocol):
    """Per-user persistent key-value state."""

    async def get(self, user_id: int, key: str) -> Optional[str]: ...
    async def set(self, user_id: int, key: str, value: str) -> None: ...

class SqlKeyValueStore:
    """Key-value state kept in the user_preferences table"""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get(self, user_id: int, key: str) -> Optional[str]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(UserPreference.value).where(
                    UserPreference.user_id == user_id,
                    UserPreference.key == key
                )
            )
            return result.scalar_one_or_none()

    async def set(self, user_id: int, key: str, value: str) -> None:
        async with self.session_factory() as session:
            try:
                async with session.begin():
                    result = await session.execute(
                        select(UserPreference).where(
                            UserPreference.user_id == user_id,
                            UserPreference.key == key
                        )
                    )
                    preference = result.scalar_one_or_none()
                    if preference is None:
                        session.add(UserPreference(user_id=user_id, key=key, value=value))
                    else:
                        preference.value = value
            except IntegrityError:
                # Written concurrently by another request; the value is already there
                logger.debug(f"Preference {key} for user {user_id} already written")

class NoticeBoard:
    """Hands out each one-time notice once per user"""

    def __init__(self, state: KeyValueStore):
        self.state = state

    async def take(self, user_id: int, notice: Notice = STATUS_UPDATES_NOTICE) -> Optional[Notice]:
        """Return the notice if the user has not seen it yet, and mark it seen.

        Unreadable or unwritable notice state yields no notice; it never fails
        the caller.
        """
        try:
            if await self.state.get(user_id, notice.key) == "true":
                return None
            await self.state.set(user_id, notice.key, "true")
        except Exception as e:
            logger.warning(f"Notice state unavailable for user {user_id} ({notice.key}): {e}")
            return None
        return notice
