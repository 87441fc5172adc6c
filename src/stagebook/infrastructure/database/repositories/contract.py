"""Contract repository."""

from collections.abc import Collection, Sequence

from sqlalchemy import select

from stagebook.domain.contracts.models import (
    Contract,
    ContractStatus,
    PerformanceDetails,
    TechnicalRequirements,
)
from stagebook.domain.signatures.models import SignerRole
from stagebook.infrastructure.database.models.contract import ContractRecord
from stagebook.infrastructure.database.repositories.base import BaseRepository
from stagebook.shared.clock import ensure_aware
from stagebook.shared.exceptions import NotFoundError


def contract_from_record(record: ContractRecord) -> Contract:
    return Contract(
        contract_id=record.contract_id,
        title=record.title,
        artist_id=record.artist_id,
        venue_id=record.venue_id,
        event_date=ensure_aware(record.event_date) if record.event_date else None,
        event_venue=record.event_venue,
        performance_fee=record.performance_fee,
        payment_terms=record.payment_terms,
        performance_details=PerformanceDetails.model_validate(record.performance_details or {}),
        technical_requirements=TechnicalRequirements.model_validate(
            record.technical_requirements or {}
        ),
        status=ContractStatus(record.status),
        created_at=ensure_aware(record.created_at),
        updated_at=ensure_aware(record.updated_at),
        signed_roles={SignerRole(role) for role in record.signed_roles},
        booking_id=record.booking_id,
    )


def apply_contract(record: ContractRecord, contract: Contract) -> None:
    record.title = contract.title
    record.artist_id = contract.artist_id
    record.venue_id = contract.venue_id
    record.event_date = contract.event_date
    record.event_venue = contract.event_venue
    record.performance_fee = contract.performance_fee
    record.payment_terms = contract.payment_terms
    record.performance_details = contract.performance_details.model_dump(exclude_none=True)
    record.technical_requirements = contract.technical_requirements.model_dump(exclude_none=True)
    record.status = contract.status.value
    record.signed_roles = sorted(role.value for role in contract.signed_roles)
    record.booking_id = contract.booking_id
    record.created_at = contract.created_at
    record.updated_at = contract.updated_at


class ContractRepository(BaseRepository[ContractRecord]):
    """Repository for contracts."""

    model_class = ContractRecord

    async def get(self, contract_id: str) -> Contract | None:
        record = await self._get_record(contract_id)
        return contract_from_record(record) if record else None

    async def add(self, contract: Contract) -> None:
        record = ContractRecord(contract_id=contract.contract_id)
        apply_contract(record, contract)
        await self._add_record(record)

    async def save(self, contract: Contract) -> None:
        record = await self._get_record(contract.contract_id)
        if record is None:
            raise NotFoundError("Contract", contract.contract_id)
        apply_contract(record, contract)
        await self.session.flush()

    async def get_all(
        self,
        *,
        statuses: Collection[ContractStatus] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[Contract]:
        query = select(ContractRecord)
        if statuses is not None:
            query = query.where(ContractRecord.status.in_([status.value for status in statuses]))
        query = (
            query.order_by(ContractRecord.event_date.asc(), ContractRecord.created_at.asc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(query)
        return [contract_from_record(record) for record in result.scalars().all()]
