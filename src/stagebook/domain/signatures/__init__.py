"""Signature capture and certificate verification domain.

- SignatureCaptureService: capture signatures, issue and revoke certificates
- CertificateVerificationService: verify certificates, detect tampering,
  expose audit trails and printable certificates
"""

from stagebook.domain.signatures.capture import SignatureCaptureService, validate_signature_data
from stagebook.domain.signatures.models import (
    AuditAction,
    AuditTrailEntry,
    CaptureResult,
    CertificateDetails,
    CertificateParams,
    IssuedCertificate,
    SignatureCertificate,
    SignatureData,
    SignerRole,
    VerificationResult,
)
from stagebook.domain.signatures.verification import CertificateVerificationService

__all__ = [
    "SignatureCaptureService",
    "CertificateVerificationService",
    "validate_signature_data",
    "AuditAction",
    "AuditTrailEntry",
    "CaptureResult",
    "CertificateDetails",
    "CertificateParams",
    "IssuedCertificate",
    "SignatureCertificate",
    "SignatureData",
    "SignerRole",
    "VerificationResult",
]
