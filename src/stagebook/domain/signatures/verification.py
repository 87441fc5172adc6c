"""Certificate verification service.

Plain verification (``verify_certificate``) answers "is this certificate
currently valid" and counts the lookup. Authenticity checks go further and
recompute both the payload hash and the keyed verification hash of the
stored record, flagging the certificate when either no longer matches. A
submitted payload that differs from the stored one is only reported.
"""

import re
from collections.abc import Mapping
from datetime import datetime, timedelta

from stagebook.domain.notifications.templates import (
    CertificateDocumentParams,
    render_certificate_document,
)
from stagebook.domain.signatures.models import (
    AuditAction,
    AuditTrailEntry,
    CertificateDetails,
    SignatureCertificate,
    VerificationResult,
)
from stagebook.domain.signatures.ports import CertificateRepositoryPort
from stagebook.observability.metrics import SIGNATURE_CERTIFICATES
from stagebook.shared.clock import Clock, utc_now
from stagebook.shared.crypto import SignatureHasher, hash_signature_payload
from stagebook.shared.exceptions import NotFoundError
from stagebook.shared.logging import get_logger

logger = get_logger(__name__)

CERTIFICATE_NUMBER_PATTERN = re.compile(r"^[A-Za-z0-9-]{1,64}$")


class CertificateVerificationService:
    """Service for verifying issued signature certificates."""

    def __init__(
        self,
        repository: CertificateRepositoryPort,
        hasher: SignatureHasher,
        *,
        public_base_url: str = "",
        clock: Clock = utc_now,
    ) -> None:
        self.repository = repository
        self.hasher = hasher
        self.public_base_url = public_base_url.rstrip("/")
        self._clock = clock

    async def verify_certificate(self, certificate_number: str) -> bool:
        """Return True if the certificate exists and is currently valid.

        Unknown, malformed, revoked, expired and tamper-flagged certificates
        all return False.
        """
        certificate = await self._load(certificate_number)
        if certificate is None:
            logger.info("certificate_verification_unknown", certificate_number=certificate_number)
            return False

        now = self._clock()
        reason = self._invalid_reason(certificate, now)
        if reason is not None:
            logger.info(
                "certificate_verification_failed",
                certificate_number=certificate_number,
                reason=reason,
            )
            return False

        await self._record_verification(certificate, now)
        return True

    async def validate_certificate_authenticity(
        self,
        certificate_number: str,
        signature_image: str | None = None,
    ) -> bool:
        """Recompute the certificate's hashes and compare them with the stored ones.

        Args:
            certificate_number: Certificate to check
            signature_image: Payload to check against. Defaults to the payload
                stored at capture time.

        Returns:
            False when the stored record fails its own hashes (the
            certificate is then flagged), when the submitted payload does
            not match, for certificates already flagged, and for unknown
            numbers.
        """
        certificate = await self._load(certificate_number)
        if certificate is None:
            return False
        return await self._check_authenticity(certificate, signature_image)

    async def verify_signature(
        self,
        certificate_number: str,
        signature_image: str,
    ) -> VerificationResult:
        """Check a submitted signature payload against its certificate."""
        certificate = await self._load(certificate_number)
        if certificate is None:
            return VerificationResult(
                certificate_number=certificate_number,
                is_valid=False,
                reason="not_found",
            )

        now = self._clock()
        result = VerificationResult(
            certificate_number=certificate_number,
            is_valid=False,
            signer_name=certificate.signer_name,
            signer_role=certificate.signer_role,
            verified_at=now,
        )
        if not await self._check_authenticity(certificate, signature_image):
            result.tamper_detected = True
            result.reason = "tamper_detected"
            return result

        reason = self._invalid_reason(certificate, now)
        if reason is not None:
            result.reason = reason
            return result

        await self._record_verification(certificate, now)
        result.is_valid = True
        return result

    async def batch_verify_signatures(
        self,
        signatures: Mapping[str, str],
    ) -> dict[str, VerificationResult]:
        """Verify many (certificate number -> payload) pairs, one at a time."""
        results: dict[str, VerificationResult] = {}
        for certificate_number, signature_image in signatures.items():
            results[certificate_number] = await self.verify_signature(
                certificate_number, signature_image
            )
        logger.info(
            "batch_signature_verification_completed",
            total=len(results),
            valid=sum(1 for r in results.values() if r.is_valid),
        )
        return results

    async def get_audit_trail(self, certificate_number: str) -> list[AuditTrailEntry]:
        """Return the audit trail oldest first (empty for unknown numbers)."""
        if not CERTIFICATE_NUMBER_PATTERN.match(certificate_number or ""):
            return []
        entries = await self.repository.list_audit(certificate_number)
        return sorted(entries, key=lambda entry: entry.timestamp)

    async def get_certificate_details(self, certificate_number: str) -> CertificateDetails:
        certificate = await self._load(certificate_number)
        if certificate is None:
            raise NotFoundError("Certificate", certificate_number)
        return CertificateDetails.from_certificate(certificate, self._clock())

    async def is_expiring_soon(self, certificate_number: str, days: int = 30) -> bool:
        """True if the certificate is still active but expires within ``days``."""
        certificate = await self._load(certificate_number)
        if certificate is None or certificate.is_revoked:
            return False
        now = self._clock()
        return now < certificate.expires_at <= now + timedelta(days=days)

    async def render_certificate(self, certificate_number: str) -> str:
        """Render the printable HTML certificate."""
        details = await self.get_certificate_details(certificate_number)
        return render_certificate_document(
            CertificateDocumentParams(
                certificate_number=details.certificate_number,
                status="VERIFIED" if details.is_valid else "INVALID",
                signer_name=details.signer_name,
                signer_email=details.signer_email,
                signer_role=details.signer_role.value.title(),
                contract_id=details.contract_id,
                signed_at=details.signed_at,
                issued_at=details.issued_at,
                expires_at=details.expires_at,
                signature_hash=details.signature_hash,
                verification_hash=details.verification_hash,
                verification_url=(
                    f"{self.public_base_url}/verify-certificate?cert={details.certificate_number}"
                ),
            )
        )

    # ----- internals -----

    async def _load(self, certificate_number: str) -> SignatureCertificate | None:
        if not CERTIFICATE_NUMBER_PATTERN.match(certificate_number or ""):
            return None
        return await self.repository.get(certificate_number)

    @staticmethod
    def _invalid_reason(certificate: SignatureCertificate, now: datetime) -> str | None:
        if certificate.tamper_detected:
            return "tamper_detected"
        if certificate.is_revoked:
            return "revoked"
        if certificate.is_expired(now):
            return "expired"
        return None

    def _stored_record_mismatches(self, certificate: SignatureCertificate) -> list[str]:
        """Fields of the stored record that no longer agree with their hashes."""
        mismatches: list[str] = []
        # Re-issued certificates may have no stored payload to compare against
        if certificate.signature_image:
            recomputed = hash_signature_payload(certificate.signature_image)
            if not self.hasher.matches(certificate.signature_hash, recomputed):
                mismatches.append("signature_hash")

        expected = self.hasher.verification_hash(
            signature_hash=certificate.signature_hash,
            signed_at=certificate.signed_at,
            signer_email=certificate.signer_email,
            contract_id=certificate.contract_id,
        )
        if not self.hasher.matches(expected, certificate.verification_hash):
            mismatches.append("verification_hash")
        return mismatches

    async def _check_authenticity(
        self,
        certificate: SignatureCertificate,
        signature_image: str | None,
    ) -> bool:
        mismatches = self._stored_record_mismatches(certificate)
        if mismatches:
            if not certificate.tamper_detected:
                await self._flag_tampered(certificate, mismatches)
            return False
        if certificate.tamper_detected:
            return False

        # A submitted payload that differs is reported, the stored record stays valid
        if signature_image is not None and not self.hasher.matches(
            certificate.signature_hash, hash_signature_payload(signature_image)
        ):
            logger.info(
                "signature_payload_mismatch",
                certificate_number=certificate.certificate_number,
                contract_id=certificate.contract_id,
            )
            return False
        return True

    async def _flag_tampered(self, certificate: SignatureCertificate, mismatches: list[str]) -> None:
        now = self._clock()
        certificate.tamper_detected = True
        await self.repository.save(certificate)
        await self.repository.append_audit(
            AuditTrailEntry(
                certificate_number=certificate.certificate_number,
                action=AuditAction.TAMPER_DETECTED,
                timestamp=now,
                details={"mismatched": mismatches},
            )
        )
        SIGNATURE_CERTIFICATES.labels(event="tamper_detected").inc()
        logger.warning(
            "signature_tamper_detected",
            certificate_number=certificate.certificate_number,
            contract_id=certificate.contract_id,
            mismatched=mismatches,
        )

    async def _record_verification(self, certificate: SignatureCertificate, now: datetime) -> None:
        certificate.verification_count += 1
        certificate.last_verified_at = now
        await self.repository.save(certificate)
        await self.repository.append_audit(
            AuditTrailEntry(
                certificate_number=certificate.certificate_number,
                action=AuditAction.VERIFIED,
                timestamp=now,
                details={"verification_count": certificate.verification_count},
            )
        )
        SIGNATURE_CERTIFICATES.labels(event="verified").inc()
        logger.info(
            "certificate_verified",
            certificate_number=certificate.certificate_number,
            verification_count=certificate.verification_count,
        )
