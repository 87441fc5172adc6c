"""Ports for notification delivery and booking/reminder state."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from stagebook.domain.notifications.models import BookingRecord


class EmailSenderPort(Protocol):
    """Email transport interface."""

    async def send_email(self, to: str, subject: str, html: str) -> None:
        """Deliver one email. Raises EmailDeliveryError on failure."""


class BookingRepositoryPort(Protocol):
    """Repository interface for booking notification records."""

    async def get(self, booking_id: str) -> BookingRecord | None:
        """Get a booking record by booking ID."""

    async def get_by_contract(self, contract_id: str) -> BookingRecord | None:
        """Get the booking record a contract belongs to."""

    async def save(self, booking: BookingRecord) -> None:
        """Insert or update a booking record."""

    async def list_active_between(self, start: datetime, end: datetime) -> Sequence[BookingRecord]:
        """List non-cancelled bookings with start < event_date <= end."""


class ReminderLedgerPort(Protocol):
    """Persisted "reminder sent" markers."""

    async def claim(self, contract_id: str, offset_days: int) -> bool:
        """Atomically mark a reminder as sent.

        Returns False if the marker already existed.
        """
