"""Repository pattern implementations for database access."""

from stagebook.infrastructure.database.repositories.base import BaseRepository
from stagebook.infrastructure.database.repositories.contract import ContractRepository
from stagebook.infrastructure.database.repositories.notification import (
    BookingNotificationRepository,
    ReminderLedger,
)
from stagebook.infrastructure.database.repositories.signature import CertificateRepository

__all__ = [
    "BaseRepository",
    "BookingNotificationRepository",
    "CertificateRepository",
    "ContractRepository",
    "ReminderLedger",
]
