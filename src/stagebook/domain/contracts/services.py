"""Contract lifecycle service - core business logic."""

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, TypeVar

from pydantic import ValidationError as PydanticValidationError

from stagebook.domain.contracts.models import (
    SETTLED_STATUSES,
    STATUS_RANK,
    TERMINAL_STATUSES,
    Contract,
    ContractData,
    ContractResult,
    ContractStatus,
    PerformanceDetails,
    StructuredRecord,
    TechnicalRequirements,
)
from stagebook.domain.contracts.ports import ContractRepositoryPort
from stagebook.domain.signatures.models import SignerRole
from stagebook.shared.clock import Clock, ensure_aware, utc_now
from stagebook.shared.crypto import generate_contract_id
from stagebook.shared.exceptions import ConflictError, InvalidStatusTransitionError, NotFoundError
from stagebook.shared.logging import get_logger
from stagebook.shared.validation import FieldError, require_text

logger = get_logger(__name__)

_CENTS = Decimal("0.01")
_PAGE_SIZE = 100

R = TypeVar("R", bound=StructuredRecord)


def transition_error(contract: Contract, new_status: ContractStatus) -> str | None:
    """Return why ``contract`` may not move to ``new_status``, or None if it may."""
    current = contract.status
    if current in TERMINAL_STATUSES:
        return f"'{current.value}' is a final status"
    if new_status is ContractStatus.CANCELLED:
        return None
    if new_status is ContractStatus.EXPIRED:
        if current in (ContractStatus.DRAFT, ContractStatus.PENDING_SIGNATURES):
            return None
        return "only unsigned contracts can expire"
    if STATUS_RANK[new_status] < STATUS_RANK[current]:
        return "status cannot move backwards"
    if new_status in (ContractStatus.SIGNED, ContractStatus.EXECUTED) and not contract.fully_signed:
        return "both artist and venue must sign first"
    return None


class ContractLifecycleService:
    """Service for creating contracts and moving them through their lifecycle.

    Creation is permissive: incomplete drafts are stored and the problems
    are returned alongside the new contract id.
    """

    def __init__(self, contract_repo: ContractRepositoryPort, *, clock: Clock = utc_now) -> None:
        self.contract_repo = contract_repo
        self._clock = clock

    async def generate_contract(self, contract_data: ContractData) -> ContractResult:
        """Create a draft contract from booking data.

        Steps:
        1. Collect field errors (missing text, non-positive fee, bad records)
        2. Store the draft regardless
        3. Return the id together with the errors
        """
        errors: list[FieldError] = []
        require_text(errors, "title", contract_data.title)
        require_text(errors, "artist_id", contract_data.artist_id)
        require_text(errors, "venue_id", contract_data.venue_id)
        require_text(errors, "event_venue", contract_data.event_venue)
        require_text(errors, "payment_terms", contract_data.payment_terms)
        if contract_data.event_date is None:
            errors.append(FieldError("event_date", "is required"))

        fee = self._parse_fee(contract_data.performance_fee, errors)
        performance_details = self._parse_record(
            PerformanceDetails, "performance_details", contract_data.performance_details, errors
        )
        technical_requirements = self._parse_record(
            TechnicalRequirements,
            "technical_requirements",
            contract_data.technical_requirements,
            errors,
        )

        now = self._clock()
        contract = Contract(
            contract_id=generate_contract_id(now),
            title=(contract_data.title or "").strip(),
            artist_id=str(contract_data.artist_id or ""),
            venue_id=str(contract_data.venue_id or ""),
            event_date=ensure_aware(contract_data.event_date) if contract_data.event_date else None,
            event_venue=(contract_data.event_venue or "").strip(),
            performance_fee=fee,
            payment_terms=(contract_data.payment_terms or "").strip(),
            performance_details=performance_details,
            technical_requirements=technical_requirements,
            status=ContractStatus.DRAFT,
            created_at=now,
            updated_at=now,
            booking_id=contract_data.booking_id,
        )
        await self.contract_repo.add(contract)

        logger.info(
            "contract_generated",
            contract_id=contract.contract_id,
            booking_id=contract.booking_id,
            error_count=len(errors),
        )
        return ContractResult(contract_id=contract.contract_id, contract=contract, errors=errors)

    async def get_contract(self, contract_id: str) -> Contract:
        contract = await self.contract_repo.get(contract_id)
        if contract is None:
            raise NotFoundError("Contract", contract_id)
        return contract

    async def update_contract_status(self, contract_id: str, new_status: ContractStatus) -> Contract:
        """Apply a status transition.

        Raises:
            NotFoundError: Unknown contract
            InvalidStatusTransitionError: Transition not allowed
        """
        contract = await self.get_contract(contract_id)
        if contract.status is new_status:
            return contract

        reason = transition_error(contract, new_status)
        if reason is not None:
            raise InvalidStatusTransitionError(
                contract_id, contract.status.value, new_status.value, reason
            )

        previous = contract.status
        contract.status = new_status
        contract.updated_at = self._clock()
        await self.contract_repo.save(contract)

        logger.info(
            "contract_status_changed",
            contract_id=contract_id,
            from_status=previous.value,
            to_status=new_status.value,
        )
        return contract

    async def ensure_open_for_signature(self, contract_id: str) -> Contract:
        """Return the contract if it can still take signatures."""
        contract = await self.get_contract(contract_id)
        if contract.status in TERMINAL_STATUSES or self.is_expired(contract):
            raise ConflictError(
                "Contract is no longer open for signatures",
                details={"contract_id": contract_id, "status": self.effective_status(contract).value},
            )
        return contract

    async def record_signature(self, contract_id: str, signer_role: SignerRole) -> Contract:
        """Mark a role as signed and advance the status.

        The first signature moves a draft to pending_signatures. The second
        role moves it to signed.
        """
        contract = await self.ensure_open_for_signature(contract_id)
        if contract.is_signed_by(signer_role):
            return contract

        contract.signed_roles.add(signer_role)
        if contract.fully_signed:
            contract.status = ContractStatus.SIGNED
        elif contract.status is ContractStatus.DRAFT:
            contract.status = ContractStatus.PENDING_SIGNATURES
        contract.updated_at = self._clock()
        await self.contract_repo.save(contract)

        logger.info(
            "contract_signature_recorded",
            contract_id=contract_id,
            signer_role=signer_role.value,
            status=contract.status.value,
        )
        return contract

    async def reschedule_event(self, contract_id: str, new_date: datetime) -> Contract:
        """Move the event date. Only allowed before anyone has signed."""
        contract = await self.get_contract(contract_id)
        if contract.has_signatures:
            raise ConflictError(
                "Event date cannot change once the contract has been signed",
                details={"contract_id": contract_id},
            )
        if contract.status in TERMINAL_STATUSES:
            raise ConflictError(
                "Event date cannot change on a closed contract",
                details={"contract_id": contract_id, "status": contract.status.value},
            )
        contract.event_date = ensure_aware(new_date)
        contract.updated_at = self._clock()
        await self.contract_repo.save(contract)
        logger.info(
            "contract_event_rescheduled",
            contract_id=contract_id,
            event_date=contract.event_date.isoformat(),
        )
        return contract

    def is_expired(self, contract: Contract) -> bool:
        """A contract expires once its event passes without being settled."""
        if contract.status is ContractStatus.EXPIRED:
            return True
        if contract.status in SETTLED_STATUSES or contract.event_date is None:
            return False
        return contract.event_date < self._clock()

    def effective_status(self, contract: Contract) -> ContractStatus:
        return ContractStatus.EXPIRED if self.is_expired(contract) else contract.status

    async def expire_overdue_contracts(self) -> list[str]:
        """Persist ``expired`` for every unsigned contract whose event has passed."""
        open_statuses = (ContractStatus.DRAFT, ContractStatus.PENDING_SIGNATURES)
        overdue: list[Contract] = []
        offset = 0
        while True:
            page = await self.contract_repo.get_all(
                statuses=open_statuses, limit=_PAGE_SIZE, offset=offset
            )
            overdue.extend(contract for contract in page if self.is_expired(contract))
            if len(page) < _PAGE_SIZE:
                break
            offset += _PAGE_SIZE

        now = self._clock()
        for contract in overdue:
            contract.status = ContractStatus.EXPIRED
            contract.updated_at = now
            await self.contract_repo.save(contract)

        if overdue:
            logger.info("contracts_expired", count=len(overdue))
        return [contract.contract_id for contract in overdue]

    # ----- parsing helpers -----

    @staticmethod
    def _parse_fee(value: Decimal | int | float | str | None, errors: list[FieldError]) -> Decimal:
        if value is None or value == "":
            errors.append(FieldError("performance_fee", "is required"))
            return Decimal("0.00")
        try:
            fee = Decimal(str(value))
        except InvalidOperation:
            errors.append(FieldError("performance_fee", "must be a number"))
            return Decimal("0.00")
        if not fee.is_finite():
            errors.append(FieldError("performance_fee", "must be a number"))
            return Decimal("0.00")
        try:
            fee = fee.quantize(_CENTS)
        except InvalidOperation:
            errors.append(FieldError("performance_fee", "is out of range"))
            return Decimal("0.00")
        if fee < 0:
            errors.append(FieldError("performance_fee", "must not be negative"))
            return Decimal("0.00")
        if fee == 0:
            errors.append(FieldError("performance_fee", "must be greater than zero"))
        return fee

    @staticmethod
    def _parse_record(
        record_type: type[R],
        field_name: str,
        data: Mapping[str, Any] | None,
        errors: list[FieldError],
    ) -> R:
        try:
            return record_type.from_mapping(data)
        except PydanticValidationError as exc:
            for error in exc.errors():
                location = ".".join(str(part) for part in error["loc"])
                errors.append(FieldError(f"{field_name}.{location}", error["msg"]))
            return record_type(extra=dict(data or {}))
