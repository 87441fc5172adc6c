"""In-memory repositories for tests and local development.

Each repository hands out copies so callers cannot change stored state
without going through ``save``, matching the database-backed versions.
"""

from collections.abc import Collection, Sequence
from copy import deepcopy
from datetime import datetime

from stagebook.domain.contracts.models import Contract, ContractStatus
from stagebook.domain.notifications.models import BookingRecord, BookingState
from stagebook.domain.signatures.models import (
    AuditTrailEntry,
    SignatureCertificate,
    SignerRole,
)
from stagebook.shared.exceptions import ConflictError, NotFoundError


class InMemoryCertificateRepository:
    def __init__(self) -> None:
        self._certificates: dict[str, SignatureCertificate] = {}
        self._audit: dict[str, list[AuditTrailEntry]] = {}

    async def get(self, certificate_number: str) -> SignatureCertificate | None:
        certificate = self._certificates.get(certificate_number)
        return deepcopy(certificate) if certificate else None

    async def get_active_for_signer(
        self, contract_id: str, signer_role: SignerRole
    ) -> SignatureCertificate | None:
        for certificate in self._certificates.values():
            if (
                certificate.contract_id == contract_id
                and certificate.signer_role is signer_role
                and not certificate.is_revoked
            ):
                return deepcopy(certificate)
        return None

    async def exists(self, certificate_number: str) -> bool:
        return certificate_number in self._certificates

    async def add(self, certificate: SignatureCertificate) -> None:
        if certificate.certificate_number in self._certificates:
            raise ConflictError(
                "Certificate number already issued",
                details={"certificate_number": certificate.certificate_number},
            )
        self._certificates[certificate.certificate_number] = deepcopy(certificate)

    async def save(self, certificate: SignatureCertificate) -> None:
        if certificate.certificate_number not in self._certificates:
            raise NotFoundError("Certificate", certificate.certificate_number)
        self._certificates[certificate.certificate_number] = deepcopy(certificate)

    async def append_audit(self, entry: AuditTrailEntry) -> None:
        self._audit.setdefault(entry.certificate_number, []).append(deepcopy(entry))

    async def list_audit(self, certificate_number: str) -> Sequence[AuditTrailEntry]:
        return deepcopy(self._audit.get(certificate_number, []))


class InMemoryContractRepository:
    def __init__(self) -> None:
        self._contracts: dict[str, Contract] = {}

    async def get(self, contract_id: str) -> Contract | None:
        contract = self._contracts.get(contract_id)
        return deepcopy(contract) if contract else None

    async def add(self, contract: Contract) -> None:
        if contract.contract_id in self._contracts:
            raise ConflictError(
                "Contract already exists", details={"contract_id": contract.contract_id}
            )
        self._contracts[contract.contract_id] = deepcopy(contract)

    async def save(self, contract: Contract) -> None:
        if contract.contract_id not in self._contracts:
            raise NotFoundError("Contract", contract.contract_id)
        self._contracts[contract.contract_id] = deepcopy(contract)

    async def get_all(
        self,
        *,
        statuses: Collection[ContractStatus] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[Contract]:
        contracts = [
            contract
            for contract in self._contracts.values()
            if statuses is None or contract.status in statuses
        ]
        contracts.sort(key=lambda c: (c.event_date is None, c.event_date or c.created_at))
        return deepcopy(contracts[offset : offset + limit])


class InMemoryBookingRepository:
    def __init__(self) -> None:
        self._bookings: dict[str, BookingRecord] = {}

    async def get(self, booking_id: str) -> BookingRecord | None:
        booking = self._bookings.get(booking_id)
        return deepcopy(booking) if booking else None

    async def get_by_contract(self, contract_id: str) -> BookingRecord | None:
        for booking in self._bookings.values():
            if booking.details.contract_id == contract_id:
                return deepcopy(booking)
        return None

    async def save(self, booking: BookingRecord) -> None:
        self._bookings[booking.booking_id] = deepcopy(booking)

    async def list_active_between(self, start: datetime, end: datetime) -> Sequence[BookingRecord]:
        bookings = [
            booking
            for booking in self._bookings.values()
            if booking.state is not BookingState.CANCELLED
            and start < booking.details.event_date <= end
        ]
        bookings.sort(key=lambda b: b.details.event_date)
        return deepcopy(bookings)


class InMemoryReminderLedger:
    def __init__(self) -> None:
        self._sent: set[tuple[str, int]] = set()

    async def claim(self, contract_id: str, offset_days: int) -> bool:
        key = (contract_id, offset_days)
        if key in self._sent:
            return False
        self._sent.add(key)
        return True
