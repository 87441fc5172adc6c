"""Signature certificate domain models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from stagebook.shared.validation import FieldError


class SignerRole(str, Enum):
    """Which party of a contract signed."""

    ARTIST = "artist"
    VENUE = "venue"

    @property
    def counterpart(self) -> "SignerRole":
        return SignerRole.VENUE if self is SignerRole.ARTIST else SignerRole.ARTIST


class AuditAction(str, Enum):
    """Actions recorded in a certificate's audit trail."""

    CREATED = "created"
    VERIFIED = "verified"
    TAMPER_DETECTED = "tamper_detected"
    REVOKED = "revoked"


@dataclass
class SignatureData:
    """Raw capture input as submitted by the signing form."""

    contract_id: str
    signer_name: str
    signer_email: str
    signer_role: str
    signature_image: str
    ip_address: str | None = None


@dataclass
class SignatureCertificate:
    """A certificate binding one captured signature to a contract role.

    Certificates are never deleted. Revocation stamps ``revoked_at`` and a
    replacement may then be issued for the same role.
    """

    certificate_number: str
    contract_id: str
    signer_name: str
    signer_email: str
    signer_role: SignerRole
    signature_image: str
    signature_hash: str
    verification_hash: str
    signed_at: datetime
    issued_at: datetime
    expires_at: datetime
    verification_count: int = 0
    last_verified_at: datetime | None = None
    tamper_detected: bool = False
    revoked_at: datetime | None = None
    ip_address: str | None = None

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


@dataclass
class AuditTrailEntry:
    certificate_number: str
    action: AuditAction
    timestamp: datetime
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class CaptureResult:
    """Outcome of a signature capture.

    Validation problems are reported in ``errors`` and leave the other
    fields empty. ``tamper_detected`` is set when a different payload is
    submitted for a role that already holds a certificate.
    """

    certificate_number: str | None = None
    signature_hash: str | None = None
    tamper_detected: bool = False
    errors: list[FieldError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors and self.certificate_number is not None


@dataclass
class CertificateParams:
    """Input for issuing a certificate without a fresh capture."""

    contract_id: str
    signer_name: str
    signer_email: str
    signer_role: SignerRole
    signature_hash: str
    signed_at: datetime | None = None


@dataclass
class IssuedCertificate:
    certificate_number: str
    expires_at: datetime


@dataclass
class CertificateDetails:
    """Read model exposed to callers that need more than a boolean."""

    certificate_number: str
    contract_id: str
    signer_name: str
    signer_email: str
    signer_role: SignerRole
    signature_hash: str
    verification_hash: str
    signed_at: datetime
    issued_at: datetime
    expires_at: datetime
    verification_count: int
    last_verified_at: datetime | None
    tamper_detected: bool
    revoked_at: datetime | None
    is_valid: bool

    @classmethod
    def from_certificate(cls, cert: SignatureCertificate, now: datetime) -> "CertificateDetails":
        return cls(
            certificate_number=cert.certificate_number,
            contract_id=cert.contract_id,
            signer_name=cert.signer_name,
            signer_email=cert.signer_email,
            signer_role=cert.signer_role,
            signature_hash=cert.signature_hash,
            verification_hash=cert.verification_hash,
            signed_at=cert.signed_at,
            issued_at=cert.issued_at,
            expires_at=cert.expires_at,
            verification_count=cert.verification_count,
            last_verified_at=cert.last_verified_at,
            tamper_detected=cert.tamper_detected,
            revoked_at=cert.revoked_at,
            is_valid=not (cert.tamper_detected or cert.is_revoked or cert.is_expired(now)),
        )


@dataclass
class VerificationResult:
    """Detailed result of checking a submitted signature against its certificate."""

    certificate_number: str
    is_valid: bool
    tamper_detected: bool = False
    reason: str | None = None
    signer_name: str | None = None
    signer_role: SignerRole | None = None
    verified_at: datetime | None = None
