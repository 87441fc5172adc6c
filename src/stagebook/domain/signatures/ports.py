"""Ports for signature certificate storage."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from stagebook.domain.signatures.models import (
    AuditTrailEntry,
    SignatureCertificate,
    SignerRole,
)


class CertificateRepositoryPort(Protocol):
    """Repository interface for signature certificates and their audit trail."""

    async def get(self, certificate_number: str) -> SignatureCertificate | None:
        """Get a certificate by number."""

    async def get_active_for_signer(
        self, contract_id: str, signer_role: SignerRole
    ) -> SignatureCertificate | None:
        """Get the non-revoked certificate for a contract role, if any."""

    async def exists(self, certificate_number: str) -> bool:
        """Return True if the number was ever issued."""

    async def add(self, certificate: SignatureCertificate) -> None:
        """Persist a new certificate."""

    async def save(self, certificate: SignatureCertificate) -> None:
        """Persist changes to an existing certificate."""

    async def append_audit(self, entry: AuditTrailEntry) -> None:
        """Append an audit trail entry."""

    async def list_audit(self, certificate_number: str) -> Sequence[AuditTrailEntry]:
        """List audit entries for a certificate, oldest first."""
