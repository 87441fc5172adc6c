"""Signature capture and certificate verification routes."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Query, Request, Response
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from stagebook.api.deps import ServicesDep
from stagebook.api.schemas import APIRequestModel, FieldErrorResponse
from stagebook.domain.contracts.models import ContractStatus
from stagebook.domain.signatures.models import (
    CertificateDetails,
    CertificateParams,
    SignatureData,
    SignerRole,
    VerificationResult,
)
from stagebook.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/signatures", tags=["Signatures"])


# ----- Schemas -----


class SignContractRequest(APIRequestModel):
    contract_id: str = ""
    signer_name: str = ""
    signer_email: str = ""
    signer_role: str = ""
    signature_image: str = ""


class SignContractResponse(BaseModel):
    success: bool
    certificate_number: str | None = None
    signature_hash: str | None = None
    tamper_detected: bool = False
    contract_status: ContractStatus | None = None
    notification_sent: bool = False
    errors: list[FieldErrorResponse] = Field(default_factory=list)


class IssueCertificateRequest(APIRequestModel):
    contract_id: str
    signer_name: str
    signer_email: str
    signer_role: SignerRole
    signature_hash: str
    signed_at: datetime | None = None


class IssuedCertificateResponse(BaseModel):
    certificate_number: str
    expires_at: datetime


class CertificateVerifyResponse(BaseModel):
    certificate_number: str
    is_valid: bool


class AuthenticityRequest(APIRequestModel):
    signature_image: str | None = None


class AuthenticityResponse(BaseModel):
    certificate_number: str
    authentic: bool


class SignatureCheckRequest(APIRequestModel):
    signature_image: str


class BatchVerifyRequest(APIRequestModel):
    signatures: dict[str, str] = Field(..., description="Certificate number -> signature payload")


class VerificationResultResponse(BaseModel):
    certificate_number: str
    is_valid: bool
    tamper_detected: bool
    reason: str | None
    signer_name: str | None
    signer_role: SignerRole | None
    verified_at: datetime | None

    @classmethod
    def from_result(cls, result: VerificationResult) -> "VerificationResultResponse":
        return cls(
            certificate_number=result.certificate_number,
            is_valid=result.is_valid,
            tamper_detected=result.tamper_detected,
            reason=result.reason,
            signer_name=result.signer_name,
            signer_role=result.signer_role,
            verified_at=result.verified_at,
        )


class CertificateDetailsResponse(BaseModel):
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
    def from_details(cls, details: CertificateDetails) -> "CertificateDetailsResponse":
        return cls(**vars(details))


class AuditEntryResponse(BaseModel):
    action: str
    timestamp: datetime
    details: dict[str, Any]


class RevokeRequest(APIRequestModel):
    reason: str = Field(..., min_length=1, max_length=255)


class RevokeResponse(BaseModel):
    certificate_number: str
    revoked: bool


class ExpiringResponse(BaseModel):
    certificate_number: str
    expiring_soon: bool
    days: int


# ----- Capture -----


@router.post("", response_model=SignContractResponse, status_code=201)
async def sign_contract(
    body: SignContractRequest,
    response: Response,
    request: Request,
    services: ServicesDep,
) -> SignContractResponse:
    """Capture one party's signature and record it on the contract.

    Invalid input returns 422 with field errors. A payload that differs
    from the certificate already issued for the role returns 409.
    """
    client_ip = request.client.host if request.client else None
    outcome = await services.signing.sign_contract(
        SignatureData(
            contract_id=body.contract_id,
            signer_name=body.signer_name,
            signer_email=body.signer_email,
            signer_role=body.signer_role,
            signature_image=body.signature_image,
            ip_address=client_ip,
        )
    )
    capture = outcome.capture
    if capture.errors:
        response.status_code = 422
    elif capture.tamper_detected:
        response.status_code = 409
        logger.warning(
            "signature_rejected_tamper",
            contract_id=body.contract_id,
            certificate_number=capture.certificate_number,
        )

    return SignContractResponse(
        success=capture.success and not capture.tamper_detected,
        certificate_number=capture.certificate_number,
        signature_hash=capture.signature_hash,
        tamper_detected=capture.tamper_detected,
        contract_status=outcome.contract.status if outcome.contract else None,
        notification_sent=outcome.notification_sent,
        errors=FieldErrorResponse.from_errors(capture.errors),
    )


@router.post("/certificates", response_model=IssuedCertificateResponse, status_code=201)
async def issue_certificate(
    body: IssueCertificateRequest,
    services: ServicesDep,
) -> IssuedCertificateResponse:
    """Re-issue a certificate for an already captured signature."""
    issued = await services.capture.generate_signature_certificate(
        CertificateParams(
            contract_id=body.contract_id,
            signer_name=body.signer_name,
            signer_email=body.signer_email,
            signer_role=body.signer_role,
            signature_hash=body.signature_hash,
            signed_at=body.signed_at,
        )
    )
    return IssuedCertificateResponse(
        certificate_number=issued.certificate_number,
        expires_at=issued.expires_at,
    )


# ----- Verification -----


@router.post("/certificates/batch-verify", response_model=dict[str, VerificationResultResponse])
async def batch_verify_signatures(
    body: BatchVerifyRequest,
    services: ServicesDep,
) -> dict[str, VerificationResultResponse]:
    results = await services.verification.batch_verify_signatures(body.signatures)
    return {
        number: VerificationResultResponse.from_result(result)
        for number, result in results.items()
    }


@router.get("/certificates/{certificate_number}", response_model=CertificateDetailsResponse)
async def get_certificate_details(
    certificate_number: str,
    services: ServicesDep,
) -> CertificateDetailsResponse:
    details = await services.verification.get_certificate_details(certificate_number)
    return CertificateDetailsResponse.from_details(details)


@router.get(
    "/certificates/{certificate_number}/verify",
    response_model=CertificateVerifyResponse,
)
async def verify_certificate(
    certificate_number: str,
    services: ServicesDep,
) -> CertificateVerifyResponse:
    """Public verification endpoint. Unknown numbers are reported as invalid."""
    is_valid = await services.verification.verify_certificate(certificate_number)
    return CertificateVerifyResponse(certificate_number=certificate_number, is_valid=is_valid)


@router.post(
    "/certificates/{certificate_number}/authenticity",
    response_model=AuthenticityResponse,
)
async def validate_authenticity(
    certificate_number: str,
    body: AuthenticityRequest,
    services: ServicesDep,
) -> AuthenticityResponse:
    authentic = await services.verification.validate_certificate_authenticity(
        certificate_number, body.signature_image
    )
    return AuthenticityResponse(certificate_number=certificate_number, authentic=authentic)


@router.post(
    "/certificates/{certificate_number}/signature-check",
    response_model=VerificationResultResponse,
)
async def verify_signature(
    certificate_number: str,
    body: SignatureCheckRequest,
    services: ServicesDep,
) -> VerificationResultResponse:
    result = await services.verification.verify_signature(certificate_number, body.signature_image)
    return VerificationResultResponse.from_result(result)


@router.get(
    "/certificates/{certificate_number}/audit-trail",
    response_model=list[AuditEntryResponse],
)
async def get_audit_trail(
    certificate_number: str,
    services: ServicesDep,
) -> list[AuditEntryResponse]:
    entries = await services.verification.get_audit_trail(certificate_number)
    return [
        AuditEntryResponse(action=e.action.value, timestamp=e.timestamp, details=e.details)
        for e in entries
    ]


@router.get("/certificates/{certificate_number}/document", response_class=HTMLResponse)
async def get_certificate_document(certificate_number: str, services: ServicesDep) -> HTMLResponse:
    """Printable HTML certificate."""
    html = await services.verification.render_certificate(certificate_number)
    return HTMLResponse(content=html)


@router.get(
    "/certificates/{certificate_number}/expiring",
    response_model=ExpiringResponse,
)
async def is_expiring_soon(
    certificate_number: str,
    services: ServicesDep,
    days: int = Query(default=30, ge=1, le=365),
) -> ExpiringResponse:
    expiring = await services.verification.is_expiring_soon(certificate_number, days)
    return ExpiringResponse(certificate_number=certificate_number, expiring_soon=expiring, days=days)


@router.post("/certificates/{certificate_number}/revoke", response_model=RevokeResponse)
async def revoke_certificate(
    certificate_number: str,
    body: RevokeRequest,
    services: ServicesDep,
) -> RevokeResponse:
    revoked = await services.capture.revoke_certificate(certificate_number, body.reason)
    return RevokeResponse(certificate_number=certificate_number, revoked=revoked)
