"""Notification domain models."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from stagebook.domain.notifications.templates import ReminderStatus
from stagebook.shared.clock import ensure_aware


class BookingState(str, Enum):
    """Email lifecycle state of a booking."""

    CREATED = "created"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


@dataclass
class BookingDetails:
    """Booking data handed over by the booking workflow."""

    booking_id: str
    contract_id: str
    artist_name: str
    artist_email: str
    venue_name: str
    venue_email: str
    contract_title: str
    event_date: datetime
    event_venue: str
    artist_id: str | None = None
    venue_id: str | None = None
    performance_fee: Decimal | None = None

    def __post_init__(self) -> None:
        self.event_date = ensure_aware(self.event_date)


@dataclass
class BookingRecord:
    """What the notification layer remembers about a booking."""

    details: BookingDetails
    state: BookingState
    created_at: datetime
    updated_at: datetime
    scheduled_reminders: list[int] = field(default_factory=list)
    cancellation_reason: str | None = None

    @property
    def booking_id(self) -> str:
        return self.details.booking_id


@dataclass
class ContractNotificationParams:
    artist_email: str
    artist_name: str
    venue_email: str
    venue_name: str
    contract_id: str
    contract_title: str
    event_date: datetime | str
    event_venue: str

    @classmethod
    def from_booking(cls, details: BookingDetails) -> "ContractNotificationParams":
        return cls(
            artist_email=details.artist_email,
            artist_name=details.artist_name,
            venue_email=details.venue_email,
            venue_name=details.venue_name,
            contract_id=details.contract_id,
            contract_title=details.contract_title,
            event_date=details.event_date,
            event_venue=details.event_venue,
        )


@dataclass
class SignatureRequestNotification:
    recipient_email: str
    recipient_name: str
    sender_name: str
    contract_title: str
    event_date: datetime | str
    event_venue: str
    contract_id: str
    signing_deadline: datetime | str | None = None


@dataclass
class SignatureCompletionNotification:
    recipient_email: str
    recipient_name: str
    signer_name: str
    contract_title: str
    event_date: datetime | str
    event_venue: str
    contract_id: str
    certificate_number: str | None


@dataclass
class ContractReminderNotification:
    recipient_email: str
    recipient_name: str
    other_party_name: str
    contract_title: str
    event_date: datetime | str
    event_venue: str
    contract_id: str
    days_until_event: int
    status: ReminderStatus


@dataclass
class BookingCancelledNotification:
    recipient_email: str
    recipient_name: str
    contract_title: str
    event_date: datetime | str
    event_venue: str
    reason: str


@dataclass
class ReminderTarget:
    """One contract in a batch reminder run."""

    contract_id: str
    artist_email: str
    artist_name: str
    venue_email: str
    venue_name: str
    contract_title: str
    event_date: datetime
    event_venue: str
    status: ReminderStatus

    def __post_init__(self) -> None:
        self.event_date = ensure_aware(self.event_date)


@dataclass
class BatchReminderResult:
    success_count: int = 0
    failure_count: int = 0

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count


@dataclass
class BookingHandlerResult:
    success: bool
    booking_id: str
    notification_sent: bool = False
    scheduled_reminders: list[int] = field(default_factory=list)
    error: str | None = None


@dataclass
class ReminderRunResult:
    """Summary of one run of the periodic reminder job."""

    bookings_checked: int = 0
    contracts_reminded: int = 0
    skipped_settled: int = 0
    already_sent: int = 0
    success_count: int = 0
    failure_count: int = 0
