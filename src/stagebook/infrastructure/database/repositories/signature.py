"""Signature certificate repository."""

from collections.abc import Sequence

from sqlalchemy import func, select

from stagebook.domain.signatures.models import (
    AuditAction,
    AuditTrailEntry,
    SignatureCertificate,
    SignerRole,
)
from stagebook.infrastructure.database.models.signature import (
    CertificateAuditRecord,
    SignatureCertificateRecord,
)
from stagebook.infrastructure.database.repositories.base import BaseRepository
from stagebook.shared.clock import ensure_aware
from stagebook.shared.exceptions import NotFoundError


def certificate_from_record(record: SignatureCertificateRecord) -> SignatureCertificate:
    return SignatureCertificate(
        certificate_number=record.certificate_number,
        contract_id=record.contract_id,
        signer_name=record.signer_name,
        signer_email=record.signer_email,
        signer_role=SignerRole(record.signer_role),
        signature_image=record.signature_image,
        signature_hash=record.signature_hash,
        verification_hash=record.verification_hash,
        signed_at=ensure_aware(record.signed_at),
        issued_at=ensure_aware(record.issued_at),
        expires_at=ensure_aware(record.expires_at),
        verification_count=record.verification_count,
        last_verified_at=ensure_aware(record.last_verified_at) if record.last_verified_at else None,
        tamper_detected=record.tamper_detected,
        revoked_at=ensure_aware(record.revoked_at) if record.revoked_at else None,
        ip_address=record.ip_address,
    )


class CertificateRepository(BaseRepository[SignatureCertificateRecord]):
    """Repository for signature certificates and their audit trail."""

    model_class = SignatureCertificateRecord

    async def get(self, certificate_number: str) -> SignatureCertificate | None:
        record = await self._get_record(certificate_number)
        return certificate_from_record(record) if record else None

    async def get_active_for_signer(
        self, contract_id: str, signer_role: SignerRole
    ) -> SignatureCertificate | None:
        query = select(SignatureCertificateRecord).where(
            SignatureCertificateRecord.contract_id == contract_id,
            SignatureCertificateRecord.signer_role == signer_role.value,
            SignatureCertificateRecord.revoked_at.is_(None),
        )
        result = await self.session.execute(query)
        record = result.scalar_one_or_none()
        return certificate_from_record(record) if record else None

    async def exists(self, certificate_number: str) -> bool:
        query = select(func.count()).where(
            SignatureCertificateRecord.certificate_number == certificate_number
        )
        result = await self.session.execute(query)
        return result.scalar_one() > 0

    async def add(self, certificate: SignatureCertificate) -> None:
        await self._add_record(
            SignatureCertificateRecord(
                certificate_number=certificate.certificate_number,
                contract_id=certificate.contract_id,
                signer_name=certificate.signer_name,
                signer_email=certificate.signer_email,
                signer_role=certificate.signer_role.value,
                ip_address=certificate.ip_address,
                signature_image=certificate.signature_image,
                signature_hash=certificate.signature_hash,
                verification_hash=certificate.verification_hash,
                signed_at=certificate.signed_at,
                issued_at=certificate.issued_at,
                expires_at=certificate.expires_at,
                revoked_at=certificate.revoked_at,
                verification_count=certificate.verification_count,
                last_verified_at=certificate.last_verified_at,
                tamper_detected=certificate.tamper_detected,
            )
        )

    async def save(self, certificate: SignatureCertificate) -> None:
        """Persist the mutable state of a certificate.

        Identity, payload and hashes are written once at issue time and
        never updated here.
        """
        record = await self._get_record(certificate.certificate_number)
        if record is None:
            raise NotFoundError("Certificate", certificate.certificate_number)
        record.verification_count = certificate.verification_count
        record.last_verified_at = certificate.last_verified_at
        record.tamper_detected = certificate.tamper_detected
        record.revoked_at = certificate.revoked_at
        await self.session.flush()

    async def append_audit(self, entry: AuditTrailEntry) -> None:
        self.session.add(
            CertificateAuditRecord(
                certificate_number=entry.certificate_number,
                action=entry.action.value,
                timestamp=entry.timestamp,
                details=dict(entry.details),
            )
        )
        await self.session.flush()

    async def list_audit(self, certificate_number: str) -> Sequence[AuditTrailEntry]:
        query = (
            select(CertificateAuditRecord)
            .where(CertificateAuditRecord.certificate_number == certificate_number)
            .order_by(CertificateAuditRecord.timestamp.asc(), CertificateAuditRecord.id.asc())
        )
        result = await self.session.execute(query)
        return [
            AuditTrailEntry(
                certificate_number=record.certificate_number,
                action=AuditAction(record.action),
                timestamp=ensure_aware(record.timestamp),
                details=dict(record.details or {}),
            )
            for record in result.scalars().all()
        ]
