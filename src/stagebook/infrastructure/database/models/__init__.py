"""SQLAlchemy ORM models."""

from stagebook.infrastructure.database.models.base import Base, JSONType, TimestampMixin
from stagebook.infrastructure.database.models.contract import ContractRecord
from stagebook.infrastructure.database.models.notification import (
    BookingNotificationRecord,
    ReminderMarkerRecord,
)
from stagebook.infrastructure.database.models.signature import (
    CertificateAuditRecord,
    SignatureCertificateRecord,
)

__all__ = [
    "Base",
    "JSONType",
    "TimestampMixin",
    "ContractRecord",
    "SignatureCertificateRecord",
    "CertificateAuditRecord",
    "BookingNotificationRecord",
    "ReminderMarkerRecord",
]
