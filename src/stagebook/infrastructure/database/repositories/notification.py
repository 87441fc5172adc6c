"""Booking notification repository and reminder ledger."""

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stagebook.domain.notifications.models import BookingDetails, BookingRecord, BookingState
from stagebook.infrastructure.database.models.notification import (
    BookingNotificationRecord,
    ReminderMarkerRecord,
)
from stagebook.infrastructure.database.repositories.base import BaseRepository
from stagebook.shared.clock import ensure_aware
from stagebook.shared.logging import get_logger

logger = get_logger(__name__)


def booking_from_record(record: BookingNotificationRecord) -> BookingRecord:
    return BookingRecord(
        details=BookingDetails(
            booking_id=record.booking_id,
            contract_id=record.contract_id,
            artist_name=record.artist_name,
            artist_email=record.artist_email,
            venue_name=record.venue_name,
            venue_email=record.venue_email,
            contract_title=record.contract_title,
            event_date=ensure_aware(record.event_date),
            event_venue=record.event_venue,
            artist_id=record.artist_id,
            venue_id=record.venue_id,
            performance_fee=record.performance_fee,
        ),
        state=BookingState(record.state),
        created_at=ensure_aware(record.created_at),
        updated_at=ensure_aware(record.updated_at),
        scheduled_reminders=list(record.scheduled_reminders or []),
        cancellation_reason=record.cancellation_reason,
    )


def apply_booking(record: BookingNotificationRecord, booking: BookingRecord) -> None:
    details = booking.details
    record.contract_id = details.contract_id
    record.artist_id = details.artist_id
    record.artist_name = details.artist_name
    record.artist_email = details.artist_email
    record.venue_id = details.venue_id
    record.venue_name = details.venue_name
    record.venue_email = details.venue_email
    record.contract_title = details.contract_title
    record.event_date = details.event_date
    record.event_venue = details.event_venue
    record.performance_fee = details.performance_fee
    record.state = booking.state.value
    record.scheduled_reminders = list(booking.scheduled_reminders)
    record.cancellation_reason = booking.cancellation_reason
    record.created_at = booking.created_at
    record.updated_at = booking.updated_at


class BookingNotificationRepository(BaseRepository[BookingNotificationRecord]):
    """Repository for booking notification records."""

    model_class = BookingNotificationRecord

    async def get(self, booking_id: str) -> BookingRecord | None:
        record = await self._get_record(booking_id)
        return booking_from_record(record) if record else None

    async def get_by_contract(self, contract_id: str) -> BookingRecord | None:
        query = (
            select(BookingNotificationRecord)
            .where(BookingNotificationRecord.contract_id == contract_id)
            .order_by(BookingNotificationRecord.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(query)
        record = result.scalar_one_or_none()
        return booking_from_record(record) if record else None

    async def save(self, booking: BookingRecord) -> None:
        record = await self._get_record(booking.booking_id)
        if record is None:
            record = BookingNotificationRecord(booking_id=booking.booking_id)
            self.session.add(record)
        apply_booking(record, booking)
        await self.session.flush()

    async def list_active_between(self, start: datetime, end: datetime) -> Sequence[BookingRecord]:
        query = (
            select(BookingNotificationRecord)
            .where(
                BookingNotificationRecord.state != BookingState.CANCELLED.value,
                BookingNotificationRecord.event_date > start,
                BookingNotificationRecord.event_date <= end,
            )
            .order_by(BookingNotificationRecord.event_date.asc())
        )
        result = await self.session.execute(query)
        return [booking_from_record(record) for record in result.scalars().all()]


class ReminderLedger:
    """Reminder markers committed in their own short transaction.

    A marker is durable before the reminder is sent, so a crash after the
    claim loses at most that one reminder instead of sending it twice.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def claim(self, contract_id: str, offset_days: int) -> bool:
        async with self.session_factory() as session:
            session.add(ReminderMarkerRecord(contract_id=contract_id, offset_days=offset_days))
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                logger.debug(
                    "reminder_already_claimed",
                    contract_id=contract_id,
                    offset_days=offset_days,
                )
                return False
        return True
