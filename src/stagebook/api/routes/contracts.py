"""Contract API routes."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel

from stagebook.api.deps import ServicesDep
from stagebook.api.schemas import APIRequestModel, FieldErrorResponse
from stagebook.domain.contracts.models import Contract, ContractData, ContractStatus
from stagebook.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/contracts", tags=["Contracts"])


# ----- Schemas -----


class CreateContractRequest(APIRequestModel):
    title: str = ""
    artist_id: str = ""
    venue_id: str = ""
    event_date: datetime | None = None
    event_venue: str = ""
    performance_fee: Decimal | str | None = None
    payment_terms: str = ""
    performance_details: dict[str, Any] | None = None
    technical_requirements: dict[str, Any] | None = None
    booking_id: str | None = None

    def to_contract_data(self) -> ContractData:
        return ContractData(
            title=self.title,
            artist_id=self.artist_id,
            venue_id=self.venue_id,
            event_date=self.event_date,
            event_venue=self.event_venue,
            performance_fee=self.performance_fee,
            payment_terms=self.payment_terms,
            performance_details=self.performance_details,
            technical_requirements=self.technical_requirements,
            booking_id=self.booking_id,
        )


class UpdateStatusRequest(APIRequestModel):
    status: ContractStatus


class RescheduleRequest(APIRequestModel):
    event_date: datetime


class ContractResponse(BaseModel):
    """Contract response schema."""

    contract_id: str
    title: str
    artist_id: str
    venue_id: str
    event_date: datetime | None
    event_venue: str
    performance_fee: Decimal
    payment_terms: str
    performance_details: dict[str, Any]
    technical_requirements: dict[str, Any]
    status: ContractStatus
    effective_status: ContractStatus
    signed_roles: list[str]
    booking_id: str | None
    created_at: datetime
    updated_at: datetime


class CreateContractResponse(BaseModel):
    contract_id: str
    contract: ContractResponse
    errors: list[FieldErrorResponse]


class ExpireContractsResponse(BaseModel):
    expired: list[str]


def to_response(contract: Contract, effective_status: ContractStatus) -> ContractResponse:
    return ContractResponse(
        contract_id=contract.contract_id,
        title=contract.title,
        artist_id=contract.artist_id,
        venue_id=contract.venue_id,
        event_date=contract.event_date,
        event_venue=contract.event_venue,
        performance_fee=contract.performance_fee,
        payment_terms=contract.payment_terms,
        performance_details=contract.performance_details.to_mapping(),
        technical_requirements=contract.technical_requirements.to_mapping(),
        status=contract.status,
        effective_status=effective_status,
        signed_roles=sorted(role.value for role in contract.signed_roles),
        booking_id=contract.booking_id,
        created_at=contract.created_at,
        updated_at=contract.updated_at,
    )


# ----- Endpoints -----


@router.post("", response_model=CreateContractResponse, status_code=201)
async def create_contract(
    request: CreateContractRequest,
    services: ServicesDep,
) -> CreateContractResponse:
    """Create a draft contract.

    Incomplete input is accepted; the draft is stored and the problems are
    returned in ``errors``.
    """
    lifecycle = services.lifecycle
    result = await lifecycle.generate_contract(request.to_contract_data())
    return CreateContractResponse(
        contract_id=result.contract_id,
        contract=to_response(result.contract, lifecycle.effective_status(result.contract)),
        errors=FieldErrorResponse.from_errors(result.errors),
    )


@router.get("", response_model=list[ContractResponse])
async def list_contracts(
    services: ServicesDep,
    status: list[ContractStatus] | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> list[ContractResponse]:
    """List contracts ordered by event date."""
    lifecycle = services.lifecycle
    contracts = await services.repositories.contracts.get_all(
        statuses=status, limit=limit, offset=offset
    )
    return [to_response(c, lifecycle.effective_status(c)) for c in contracts]


@router.get("/{contract_id}", response_model=ContractResponse)
async def get_contract(contract_id: str, services: ServicesDep) -> ContractResponse:
    lifecycle = services.lifecycle
    contract = await lifecycle.get_contract(contract_id)
    return to_response(contract, lifecycle.effective_status(contract))


@router.patch("/{contract_id}/status", response_model=ContractResponse)
async def update_contract_status(
    contract_id: str,
    request: UpdateStatusRequest,
    services: ServicesDep,
) -> ContractResponse:
    """Move a contract to a new status. Disallowed transitions return 409."""
    lifecycle = services.lifecycle
    contract = await lifecycle.update_contract_status(contract_id, request.status)
    return to_response(contract, lifecycle.effective_status(contract))


@router.patch("/{contract_id}/event-date", response_model=ContractResponse)
async def reschedule_event(
    contract_id: str,
    request: RescheduleRequest,
    services: ServicesDep,
) -> ContractResponse:
    lifecycle = services.lifecycle
    contract = await lifecycle.reschedule_event(contract_id, request.event_date)
    return to_response(contract, lifecycle.effective_status(contract))


@router.post("/expire", response_model=ExpireContractsResponse)
async def expire_overdue_contracts(services: ServicesDep) -> ExpireContractsResponse:
    expired = await services.lifecycle.expire_overdue_contracts()
    logger.info("contracts_expired_via_api", count=len(expired))
    return ExpireContractsResponse(expired=expired)
