"""Signature capture and certificate issuance.

Flow:
1. Validate the submitted form data (problems are returned, not raised)
2. Hash the signature payload and bind it to the signer with an HMAC
3. Issue a certificate and open its audit trail with a ``created`` entry

Each (contract, role) pair holds at most one active certificate. A second
capture for the same role either returns the existing certificate (same
payload) or reports the mismatch (different payload). A mismatch never
changes the stored certificate.
"""

from datetime import datetime, timedelta

from stagebook.domain.signatures.models import (
    AuditAction,
    AuditTrailEntry,
    CaptureResult,
    CertificateParams,
    IssuedCertificate,
    SignatureCertificate,
    SignatureData,
    SignerRole,
)
from stagebook.domain.signatures.ports import CertificateRepositoryPort
from stagebook.observability.metrics import SIGNATURE_CERTIFICATES
from stagebook.shared.clock import Clock, ensure_aware, utc_now
from stagebook.shared.crypto import (
    SignatureHasher,
    generate_certificate_number,
    hash_signature_payload,
)
from stagebook.shared.exceptions import ValidationError
from stagebook.shared.logging import get_logger
from stagebook.shared.validation import FieldError, require_email, require_text

logger = get_logger(__name__)

_MAX_MINT_ATTEMPTS = 5
_VALID_ROLES = ", ".join(role.value for role in SignerRole)


def validate_signature_data(data: SignatureData) -> list[FieldError]:
    """Collect every problem with a capture request."""
    errors: list[FieldError] = []
    require_text(errors, "contract_id", data.contract_id)
    require_text(errors, "signer_name", data.signer_name)
    require_email(errors, "signer_email", data.signer_email)
    if data.signer_role not in {role.value for role in SignerRole}:
        errors.append(FieldError("signer_role", f"must be one of: {_VALID_ROLES}"))
    require_text(errors, "signature_image", data.signature_image)
    return errors


class SignatureCaptureService:
    """Service for capturing signatures and issuing certificates."""

    def __init__(
        self,
        repository: CertificateRepositoryPort,
        hasher: SignatureHasher,
        *,
        validity_days: int = 365,
        clock: Clock = utc_now,
    ) -> None:
        self.repository = repository
        self.hasher = hasher
        self.validity = timedelta(days=validity_days)
        self._clock = clock

    async def capture_and_verify_signature(self, data: SignatureData) -> CaptureResult:
        """Capture a signature and return its certificate.

        Invalid input yields a result with ``errors`` populated and nothing
        stored.
        """
        errors = validate_signature_data(data)
        if errors:
            logger.info(
                "signature_capture_rejected",
                contract_id=data.contract_id or None,
                errors=[str(error) for error in errors],
            )
            return CaptureResult(errors=errors)

        role = SignerRole(data.signer_role)
        signature_hash = hash_signature_payload(data.signature_image)
        now = self._clock()

        existing = await self.repository.get_active_for_signer(data.contract_id, role)
        if existing is not None:
            return await self._recapture(existing, signature_hash)

        certificate = await self._issue(
            contract_id=data.contract_id,
            signer_name=data.signer_name.strip(),
            signer_email=data.signer_email.strip(),
            signer_role=role,
            signature_image=data.signature_image,
            signature_hash=signature_hash,
            signed_at=now,
            ip_address=data.ip_address,
            details={"source": "capture"},
        )
        return CaptureResult(
            certificate_number=certificate.certificate_number,
            signature_hash=signature_hash,
            tamper_detected=False,
        )

    async def generate_signature_certificate(self, params: CertificateParams) -> IssuedCertificate:
        """Issue a certificate without a fresh capture (re-issue path).

        Any active certificate for the same contract role is revoked first.
        The stored payload is carried over when its hash matches.
        """
        errors: list[FieldError] = []
        require_text(errors, "contract_id", params.contract_id)
        require_text(errors, "signer_name", params.signer_name)
        require_email(errors, "signer_email", params.signer_email)
        require_text(errors, "signature_hash", params.signature_hash)
        if errors:
            raise ValidationError(
                "Invalid certificate parameters",
                details={"errors": [str(error) for error in errors]},
            )

        now = self._clock()
        signature_image = ""
        replaces = None
        existing = await self.repository.get_active_for_signer(
            params.contract_id, params.signer_role
        )
        if existing is not None:
            if self.hasher.matches(existing.signature_hash, params.signature_hash):
                signature_image = existing.signature_image
            replaces = existing.certificate_number
            await self._revoke(existing, reason="reissued", now=now)

        certificate = await self._issue(
            contract_id=params.contract_id,
            signer_name=params.signer_name.strip(),
            signer_email=params.signer_email.strip(),
            signer_role=params.signer_role,
            signature_image=signature_image,
            signature_hash=params.signature_hash,
            signed_at=ensure_aware(params.signed_at) if params.signed_at else now,
            ip_address=existing.ip_address if existing else None,
            details={"source": "reissue", "replaces": replaces},
        )
        return IssuedCertificate(
            certificate_number=certificate.certificate_number,
            expires_at=certificate.expires_at,
        )

    async def revoke_certificate(self, certificate_number: str, reason: str) -> bool:
        """Revoke a certificate. Returns False if unknown or already revoked."""
        certificate = await self.repository.get(certificate_number)
        if certificate is None or certificate.is_revoked:
            return False
        await self._revoke(certificate, reason=reason, now=self._clock())
        return True

    # ----- internals -----

    async def _recapture(
        self,
        existing: SignatureCertificate,
        signature_hash: str,
    ) -> CaptureResult:
        if self.hasher.matches(existing.signature_hash, signature_hash):
            logger.info(
                "signature_recapture_unchanged",
                certificate_number=existing.certificate_number,
            )
            return CaptureResult(
                certificate_number=existing.certificate_number,
                signature_hash=existing.signature_hash,
                tamper_detected=existing.tamper_detected,
            )

        logger.warning(
            "signature_recapture_mismatch",
            certificate_number=existing.certificate_number,
            contract_id=existing.contract_id,
            signer_role=existing.signer_role.value,
            submitted_hash=signature_hash,
        )
        SIGNATURE_CERTIFICATES.labels(event="recapture_mismatch").inc()
        return CaptureResult(
            certificate_number=existing.certificate_number,
            signature_hash=existing.signature_hash,
            tamper_detected=True,
        )

    async def _issue(
        self,
        *,
        contract_id: str,
        signer_name: str,
        signer_email: str,
        signer_role: SignerRole,
        signature_image: str,
        signature_hash: str,
        signed_at: datetime,
        ip_address: str | None,
        details: dict[str, object],
    ) -> SignatureCertificate:
        now = self._clock()
        certificate = SignatureCertificate(
            certificate_number=await self._mint_certificate_number(now),
            contract_id=contract_id,
            signer_name=signer_name,
            signer_email=signer_email,
            signer_role=signer_role,
            signature_image=signature_image,
            signature_hash=signature_hash,
            verification_hash=self.hasher.verification_hash(
                signature_hash=signature_hash,
                signed_at=signed_at,
                signer_email=signer_email,
                contract_id=contract_id,
            ),
            signed_at=signed_at,
            issued_at=now,
            expires_at=now + self.validity,
            ip_address=ip_address,
        )
        await self.repository.add(certificate)
        await self.repository.append_audit(
            AuditTrailEntry(
                certificate_number=certificate.certificate_number,
                action=AuditAction.CREATED,
                timestamp=now,
                details={**details, "signer_role": signer_role.value},
            )
        )
        SIGNATURE_CERTIFICATES.labels(event="created").inc()
        logger.info(
            "signature_certificate_issued",
            certificate_number=certificate.certificate_number,
            contract_id=contract_id,
            signer_role=signer_role.value,
            expires_at=certificate.expires_at.isoformat(),
        )
        return certificate

    async def _revoke(self, certificate: SignatureCertificate, *, reason: str, now: datetime) -> None:
        certificate.revoked_at = now
        await self.repository.save(certificate)
        await self.repository.append_audit(
            AuditTrailEntry(
                certificate_number=certificate.certificate_number,
                action=AuditAction.REVOKED,
                timestamp=now,
                details={"reason": reason},
            )
        )
        SIGNATURE_CERTIFICATES.labels(event="revoked").inc()
        logger.info(
            "signature_certificate_revoked",
            certificate_number=certificate.certificate_number,
            reason=reason,
        )

    async def _mint_certificate_number(self, now: datetime) -> str:
        for _ in range(_MAX_MINT_ATTEMPTS):
            number = generate_certificate_number(now)
            if not await self.repository.exists(number):
                return number
        raise RuntimeError("Could not mint a unique certificate number")
