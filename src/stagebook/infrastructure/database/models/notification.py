"""Booking notification state and the reminder ledger."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from stagebook.infrastructure.database.models.base import Base, JSONType, TimestampMixin


class BookingNotificationRecord(Base, TimestampMixin):
    """Booking snapshot used by the reminder job."""

    __tablename__ = "booking_notifications"

    booking_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    contract_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    artist_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    artist_name: Mapped[str] = mapped_column(String(255), nullable=False)
    artist_email: Mapped[str] = mapped_column(String(320), nullable=False)
    venue_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    venue_name: Mapped[str] = mapped_column(String(255), nullable=False)
    venue_email: Mapped[str] = mapped_column(String(320), nullable=False)

    contract_title: Mapped[str] = mapped_column(String(255), nullable=False)
    event_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    event_venue: Mapped[str] = mapped_column(String(255), nullable=False)
    performance_fee: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    state: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    scheduled_reminders: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)


class ReminderMarkerRecord(Base):
    """One row per reminder sent. The unique key makes claiming atomic."""

    __tablename__ = "contract_reminders"
    __table_args__ = (
        UniqueConstraint("contract_id", "offset_days", name="uq_contract_reminders_offset"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    contract_id: Mapped[str] = mapped_column(String(64), nullable=False)
    offset_days: Mapped[int] = mapped_column(Integer, nullable=False)
    claimed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
