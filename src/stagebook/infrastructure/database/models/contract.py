"""Contract model."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stagebook.infrastructure.database.models.base import Base, JSONType, TimestampMixin


class ContractRecord(Base, TimestampMixin):
    """A performance contract between an artist and a venue."""

    __tablename__ = "contracts"

    contract_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    booking_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    artist_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    venue_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    event_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    event_venue: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    performance_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_terms: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Known fields by name plus an "extra" map
    performance_details: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    technical_requirements: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    status: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    signed_roles: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    def __repr__(self) -> str:
        return f"<ContractRecord {self.contract_id} ({self.status})>"
