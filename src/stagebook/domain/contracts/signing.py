"""Contract signing workflow: capture -> record -> notify the other party."""

from dataclasses import dataclass

from stagebook.domain.contracts.models import Contract
from stagebook.domain.contracts.services import ContractLifecycleService
from stagebook.domain.notifications.contract_email import ContractEmailIntegration
from stagebook.domain.notifications.models import SignatureCompletionNotification
from stagebook.domain.notifications.ports import BookingRepositoryPort
from stagebook.domain.signatures.capture import SignatureCaptureService, validate_signature_data
from stagebook.domain.signatures.models import CaptureResult, SignatureData, SignerRole
from stagebook.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SigningOutcome:
    capture: CaptureResult
    contract: Contract | None = None
    notification_sent: bool = False


class ContractSigningService:
    """Signs a contract on behalf of one party."""

    def __init__(
        self,
        lifecycle: ContractLifecycleService,
        capture: SignatureCaptureService,
        contract_email: ContractEmailIntegration,
        bookings: BookingRepositoryPort,
    ) -> None:
        self.lifecycle = lifecycle
        self.capture = capture
        self.contract_email = contract_email
        self.bookings = bookings

    async def sign_contract(self, data: SignatureData) -> SigningOutcome:
        """Capture a signature and record it against the contract.

        Validation errors and tamper reports come back in ``capture`` and
        leave the contract untouched. Re-submitting a role that is already
        signed returns the existing certificate without notifying again.

        Raises:
            NotFoundError: Unknown contract
            ConflictError: Contract no longer accepts signatures
        """
        errors = validate_signature_data(data)
        if errors:
            return SigningOutcome(capture=CaptureResult(errors=errors))

        current = await self.lifecycle.ensure_open_for_signature(data.contract_id)
        result = await self.capture.capture_and_verify_signature(data)
        if not result.success or result.tamper_detected:
            return SigningOutcome(capture=result)

        role = SignerRole(data.signer_role)
        already_signed = current.is_signed_by(role)
        contract = await self.lifecycle.record_signature(data.contract_id, role)
        if already_signed:
            logger.info(
                "signature_already_recorded",
                contract_id=data.contract_id,
                signer_role=role.value,
            )
            return SigningOutcome(capture=result, contract=contract)

        notification_sent = await self._notify_counterpart(
            contract, role, data.signer_name, result.certificate_number
        )
        return SigningOutcome(capture=result, contract=contract, notification_sent=notification_sent)

    async def _notify_counterpart(
        self,
        contract: Contract,
        signer_role: SignerRole,
        signer_name: str,
        certificate_number: str | None,
    ) -> bool:
        booking = await self.bookings.get_by_contract(contract.contract_id)
        if booking is None:
            logger.info("signature_notification_skipped_no_booking", contract_id=contract.contract_id)
            return False

        details = booking.details
        if signer_role is SignerRole.ARTIST:
            recipient_email, recipient_name = details.venue_email, details.venue_name
        else:
            recipient_email, recipient_name = details.artist_email, details.artist_name

        return await self.contract_email.send_signature_completion_notification(
            SignatureCompletionNotification(
                recipient_email=recipient_email,
                recipient_name=recipient_name,
                signer_name=signer_name,
                contract_title=contract.title or details.contract_title,
                event_date=contract.event_date or details.event_date,
                event_venue=contract.event_venue or details.event_venue,
                contract_id=contract.contract_id,
                certificate_number=certificate_number,
            )
        )
