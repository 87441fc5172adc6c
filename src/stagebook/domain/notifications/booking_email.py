"""Booking email integration.

Entry point for booking lifecycle events. The handlers send the immediate
notifications and work out which reminders a booking needs. Sending those
reminders is left to ``send_upcoming_event_reminders``, which a scheduled
worker job calls once a day.

Booking email state machine::

    created -> confirmed
    created | confirmed -> cancelled   (supersedes pending reminders)
"""

from collections.abc import Sequence
from datetime import timedelta

from stagebook.domain.contracts.models import SETTLED_STATUSES, ContractStatus
from stagebook.domain.contracts.ports import ContractRepositoryPort
from stagebook.domain.notifications.contract_email import ContractEmailIntegration
from stagebook.domain.notifications.models import (
    BookingCancelledNotification,
    BookingDetails,
    BookingHandlerResult,
    BookingRecord,
    BookingState,
    ContractNotificationParams,
    ReminderRunResult,
    ReminderTarget,
    SignatureRequestNotification,
)
from stagebook.domain.notifications.ports import BookingRepositoryPort, ReminderLedgerPort
from stagebook.domain.notifications.reminders import (
    DEFAULT_REMINDER_OFFSETS,
    compute_reminder_schedule,
    due_offsets,
    reminder_status_for,
)
from stagebook.shared.clock import Clock, days_until, utc_now
from stagebook.shared.logging import get_logger

logger = get_logger(__name__)

_NO_REMINDER_STATUSES = SETTLED_STATUSES | {ContractStatus.EXPIRED}


class BookingEmailIntegration:
    """Reacts to booking events and drives the reminder workflow."""

    def __init__(
        self,
        contract_email: ContractEmailIntegration,
        bookings: BookingRepositoryPort,
        ledger: ReminderLedgerPort,
        contracts: ContractRepositoryPort,
        *,
        reminder_offsets: Sequence[int] = DEFAULT_REMINDER_OFFSETS,
        confirmation_deadline_days: int = 3,
        clock: Clock = utc_now,
    ) -> None:
        self.contract_email = contract_email
        self.bookings = bookings
        self.ledger = ledger
        self.contracts = contracts
        self.reminder_offsets = tuple(sorted(set(reminder_offsets), reverse=True))
        self.confirmation_deadline = timedelta(days=confirmation_deadline_days)
        self._clock = clock

    async def handle_booking_created(self, booking: BookingDetails) -> BookingHandlerResult:
        """Notify both parties and work out the reminder schedule.

        A failed notification never fails the booking.
        """
        try:
            existing = await self.bookings.get(booking.booking_id)
            if existing is not None and existing.state is BookingState.CANCELLED:
                return BookingHandlerResult(
                    success=False,
                    booking_id=booking.booking_id,
                    error="Booking has been cancelled",
                )

            now = self._clock()
            schedule = compute_reminder_schedule(booking.event_date, now, self.reminder_offsets)
            offsets = [reminder.offset_days for reminder in schedule]
            await self.bookings.save(
                BookingRecord(
                    details=booking,
                    state=BookingState.CREATED,
                    created_at=existing.created_at if existing else now,
                    updated_at=now,
                    scheduled_reminders=offsets,
                )
            )

            notification_sent = await self.contract_email.send_contract_created_notification(
                ContractNotificationParams.from_booking(booking)
            )
            if not notification_sent:
                logger.warning(
                    "booking_created_notification_failed",
                    booking_id=booking.booking_id,
                    contract_id=booking.contract_id,
                )

            logger.info(
                "booking_reminders_scheduled",
                booking_id=booking.booking_id,
                contract_id=booking.contract_id,
                offsets=offsets,
                send_on=[reminder.send_on.isoformat() for reminder in schedule],
            )
            return BookingHandlerResult(
                success=True,
                booking_id=booking.booking_id,
                notification_sent=notification_sent,
                scheduled_reminders=offsets,
            )
        except Exception as e:
            logger.exception("booking_created_handler_failed", booking_id=booking.booking_id)
            return BookingHandlerResult(success=False, booking_id=booking.booking_id, error=str(e))

    async def handle_booking_confirmed(self, booking: BookingDetails) -> BookingHandlerResult:
        """Ask the venue to sign within the confirmation deadline."""
        try:
            now = self._clock()
            record = await self.bookings.get(booking.booking_id)
            if record is not None and record.state is BookingState.CANCELLED:
                return BookingHandlerResult(
                    success=False,
                    booking_id=booking.booking_id,
                    error="Booking has been cancelled",
                )
            if record is None:
                schedule = compute_reminder_schedule(
                    booking.event_date, now, self.reminder_offsets
                )
                record = BookingRecord(
                    details=booking,
                    state=BookingState.CONFIRMED,
                    created_at=now,
                    updated_at=now,
                    scheduled_reminders=[reminder.offset_days for reminder in schedule],
                )
            record.details = booking
            record.state = BookingState.CONFIRMED
            record.updated_at = now
            await self.bookings.save(record)

            notification_sent = await self.contract_email.send_signature_request_notification(
                SignatureRequestNotification(
                    recipient_email=booking.venue_email,
                    recipient_name=booking.venue_name,
                    sender_name=booking.artist_name,
                    contract_title=booking.contract_title,
                    event_date=booking.event_date,
                    event_venue=booking.event_venue,
                    contract_id=booking.contract_id,
                    signing_deadline=now + self.confirmation_deadline,
                )
            )
            logger.info(
                "booking_confirmed",
                booking_id=booking.booking_id,
                notification_sent=notification_sent,
            )
            return BookingHandlerResult(
                success=True,
                booking_id=booking.booking_id,
                notification_sent=notification_sent,
                scheduled_reminders=list(record.scheduled_reminders),
            )
        except Exception as e:
            logger.exception("booking_confirmed_handler_failed", booking_id=booking.booking_id)
            return BookingHandlerResult(success=False, booking_id=booking.booking_id, error=str(e))

    async def handle_booking_cancelled(
        self, booking: BookingDetails, reason: str
    ) -> BookingHandlerResult:
        """Send the cancellation email to both parties and drop pending reminders.

        Cancelling an already cancelled booking sends nothing.
        """
        try:
            now = self._clock()
            record = await self.bookings.get(booking.booking_id)
            if record is not None and record.state is BookingState.CANCELLED:
                logger.info("booking_already_cancelled", booking_id=booking.booking_id)
                return BookingHandlerResult(success=True, booking_id=booking.booking_id)

            if record is None:
                record = BookingRecord(
                    details=booking,
                    state=BookingState.CANCELLED,
                    created_at=now,
                    updated_at=now,
                )
            record.state = BookingState.CANCELLED
            record.cancellation_reason = reason
            record.scheduled_reminders = []
            record.updated_at = now
            await self.bookings.save(record)

            results = [
                await self.contract_email.send_booking_cancelled_notification(
                    BookingCancelledNotification(
                        recipient_email=email,
                        recipient_name=name,
                        contract_title=booking.contract_title,
                        event_date=booking.event_date,
                        event_venue=booking.event_venue,
                        reason=reason,
                    )
                )
                for email, name in (
                    (booking.artist_email, booking.artist_name),
                    (booking.venue_email, booking.venue_name),
                )
            ]
            logger.info(
                "booking_cancelled",
                booking_id=booking.booking_id,
                contract_id=booking.contract_id,
                notifications_sent=sum(results),
            )
            return BookingHandlerResult(
                success=True,
                booking_id=booking.booking_id,
                notification_sent=all(results),
            )
        except Exception as e:
            logger.exception("booking_cancelled_handler_failed", booking_id=booking.booking_id)
            return BookingHandlerResult(success=False, booking_id=booking.booking_id, error=str(e))

    async def send_upcoming_event_reminders(self) -> ReminderRunResult:
        """Send every reminder that has come due.

        The nearest due (contract, offset) marker is claimed before sending,
        so running the job twice on the same day sends nothing the second
        time. When several offsets are due at once (a missed day) only the
        nearest one is sent and claimed; the larger ones are never sent.
        """
        run = ReminderRunResult()
        now = self._clock()
        horizon = now + timedelta(days=max(self.reminder_offsets))
        bookings = await self.bookings.list_active_between(now, horizon)
        targets: list[ReminderTarget] = []

        for record in bookings:
            run.bookings_checked += 1
            details = record.details
            remaining = days_until(details.event_date, now)
            due = due_offsets(record.scheduled_reminders, remaining)
            if not due:
                continue

            contract = await self.contracts.get(details.contract_id)
            if contract is not None and contract.status in _NO_REMINDER_STATUSES:
                run.skipped_settled += 1
                continue

            # Only the nearest due offset is sent and recorded
            offset = min(due)
            if not await self.ledger.claim(details.contract_id, offset):
                run.already_sent += 1
                continue
            logger.info(
                "contract_reminder_due",
                contract_id=details.contract_id,
                offset_days=offset,
                days_until_event=remaining,
            )

            signed_count = len(contract.signed_roles) if contract is not None else 0
            targets.append(
                ReminderTarget(
                    contract_id=details.contract_id,
                    artist_email=details.artist_email,
                    artist_name=details.artist_name,
                    venue_email=details.venue_email,
                    venue_name=details.venue_name,
                    contract_title=details.contract_title,
                    event_date=details.event_date,
                    event_venue=details.event_venue,
                    status=reminder_status_for(remaining, signed_count),
                )
            )

        if targets:
            batch = await self.contract_email.send_batch_contract_reminders(targets)
            run.success_count = batch.success_count
            run.failure_count = batch.failure_count
        run.contracts_reminded = len(targets)

        logger.info(
            "upcoming_event_reminders_completed",
            bookings_checked=run.bookings_checked,
            contracts_reminded=run.contracts_reminded,
            skipped_settled=run.skipped_settled,
            already_sent=run.already_sent,
            sent=run.success_count,
            failed=run.failure_count,
        )
        return run
