"""Signature certificate and audit trail models.

Certificates are legal records: rows are never deleted. A partial unique
index keeps at most one non-revoked certificate per contract role.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from stagebook.infrastructure.database.models.base import Base, JSONType


class SignatureCertificateRecord(Base):
    __tablename__ = "signature_certificates"
    __table_args__ = (
        Index(
            "uq_signature_certificates_active_signer",
            "contract_id",
            "signer_role",
            unique=True,
            postgresql_where=text("revoked_at IS NULL"),
            sqlite_where=text("revoked_at IS NULL"),
        ),
    )

    certificate_number: Mapped[str] = mapped_column(String(64), primary_key=True)
    contract_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    signer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    signer_email: Mapped[str] = mapped_column(String(320), nullable=False)
    signer_role: Mapped[str] = mapped_column(String(20), nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)

    signature_image: Mapped[str] = mapped_column(Text, nullable=False, default="")
    signature_hash: Mapped[str] = mapped_column(String(64), nullable=False)  # SHA256
    verification_hash: Mapped[str] = mapped_column(String(64), nullable=False)  # HMAC-SHA256

    signed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    verification_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    tamper_detected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class CertificateAuditRecord(Base):
    """Append-only audit trail entry."""

    __tablename__ = "certificate_audit_trail"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    certificate_number: Mapped[str] = mapped_column(
        ForeignKey("signature_certificates.certificate_number"),
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    details: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
