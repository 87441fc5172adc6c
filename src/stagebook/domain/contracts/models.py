"""Contract domain models."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel, to_snake

from stagebook.domain.signatures.models import SignerRole
from stagebook.shared.logging import get_logger
from stagebook.shared.validation import FieldError

logger = get_logger(__name__)


class ContractStatus(str, Enum):
    """Status of a performance contract."""

    DRAFT = "draft"
    PENDING_SIGNATURES = "pending_signatures"
    SIGNED = "signed"
    EXECUTED = "executed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


# Forward order of the signing path. Cancelled/expired sit outside it.
STATUS_RANK: dict[ContractStatus, int] = {
    ContractStatus.DRAFT: 0,
    ContractStatus.PENDING_SIGNATURES: 1,
    ContractStatus.SIGNED: 2,
    ContractStatus.EXECUTED: 3,
}
TERMINAL_STATUSES = frozenset(
    {ContractStatus.EXECUTED, ContractStatus.CANCELLED, ContractStatus.EXPIRED}
)
# Statuses for which a passed event date no longer matters
SETTLED_STATUSES = frozenset(
    {ContractStatus.SIGNED, ContractStatus.EXECUTED, ContractStatus.CANCELLED}
)


class StructuredRecord(BaseModel):
    """Known fields plus an explicit ``extra`` map for anything else.

    Keys are accepted in snake_case or camelCase. Unknown keys are kept in
    ``extra`` and logged instead of being dropped.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    extra: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> Self:
        if not data:
            return cls()
        known_fields = set(cls.model_fields) - {"extra"}
        known: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            name = to_snake(key)
            if name in known_fields:
                known[name] = value
            else:
                extra[key] = value
        if extra:
            logger.warning(
                "unknown_record_fields",
                record=cls.__name__,
                fields=sorted(extra),
            )
        return cls(**known, extra=extra)

    def to_mapping(self) -> dict[str, Any]:
        """Flatten back to a plain dict (known fields first, then extras)."""
        data = self.model_dump(exclude_none=True, exclude={"extra"})
        data.update(self.extra)
        return data


class PerformanceDetails(StructuredRecord):
    duration: str | None = None
    set_length_minutes: int | None = None
    intermission_minutes: int | None = None
    setlist: str | None = None
    sound_check: str | None = None
    encore_policy: str | None = None
    dress_code: str | None = None
    backing_tracks: str | None = None


class TechnicalRequirements(StructuredRecord):
    stage: str | None = None
    stage_dimensions: str | None = None
    lighting: str | None = None
    sound: str | None = None
    pa_system: str | None = None
    microphone_count: int | None = None
    monitor_count: int | None = None
    mixer_type: str | None = None
    power_outlets: str | None = None
    wifi_access: str | None = None


@dataclass
class ContractData:
    """Contract input as submitted from booking data. Every field may be incomplete."""

    title: str
    artist_id: str
    venue_id: str
    event_date: datetime | None
    event_venue: str
    performance_fee: Decimal | int | float | str | None
    payment_terms: str
    performance_details: Mapping[str, Any] | None = None
    technical_requirements: Mapping[str, Any] | None = None
    booking_id: str | None = None


@dataclass
class Contract:
    contract_id: str
    title: str
    artist_id: str
    venue_id: str
    event_date: datetime | None
    event_venue: str
    performance_fee: Decimal
    payment_terms: str
    performance_details: PerformanceDetails
    technical_requirements: TechnicalRequirements
    status: ContractStatus
    created_at: datetime
    updated_at: datetime
    signed_roles: set[SignerRole] = field(default_factory=set)
    booking_id: str | None = None

    @property
    def has_signatures(self) -> bool:
        return bool(self.signed_roles)

    @property
    def fully_signed(self) -> bool:
        return self.signed_roles >= set(SignerRole)

    def is_signed_by(self, role: SignerRole) -> bool:
        return role in self.signed_roles


@dataclass
class ContractResult:
    """Outcome of ``generate_contract``. A contract is stored even when ``errors`` is non-empty."""

    contract_id: str
    contract: Contract
    errors: list[FieldError] = field(default_factory=list)
