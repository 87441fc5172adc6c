"""Service wiring.

Builds the domain services on top of the configured storage backend and
email transport. The API and the worker share one container per process.

Usage:
    container = await ServiceContainer.create(settings)
    async with container.scope() as services:
        await services.booking_email.send_upcoming_event_reminders()
    await container.close()
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from stagebook.config import Settings
from stagebook.domain.contracts.ports import ContractRepositoryPort
from stagebook.domain.contracts.services import ContractLifecycleService
from stagebook.domain.contracts.signing import ContractSigningService
from stagebook.domain.notifications.booking_email import BookingEmailIntegration
from stagebook.domain.notifications.contract_email import ContractEmailIntegration
from stagebook.domain.notifications.ports import (
    BookingRepositoryPort,
    EmailSenderPort,
    ReminderLedgerPort,
)
from stagebook.domain.signatures.capture import SignatureCaptureService
from stagebook.domain.signatures.ports import CertificateRepositoryPort
from stagebook.domain.signatures.verification import CertificateVerificationService
from stagebook.infrastructure.database.connection import (
    create_session_factory,
    create_tables,
    get_engine,
)
from stagebook.infrastructure.database.repositories import (
    BookingNotificationRepository,
    CertificateRepository,
    ContractRepository,
    ReminderLedger,
)
from stagebook.infrastructure.email.factory import build_email_sender, close_email_sender
from stagebook.infrastructure.memory.repositories import (
    InMemoryBookingRepository,
    InMemoryCertificateRepository,
    InMemoryContractRepository,
    InMemoryReminderLedger,
)
from stagebook.shared.clock import Clock, utc_now
from stagebook.shared.crypto import SignatureHasher
from stagebook.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Repositories:
    certificates: CertificateRepositoryPort
    contracts: ContractRepositoryPort
    bookings: BookingRepositoryPort
    ledger: ReminderLedgerPort


@dataclass
class Services:
    """Domain services bound to one unit of work."""

    repositories: Repositories
    capture: SignatureCaptureService
    verification: CertificateVerificationService
    lifecycle: ContractLifecycleService
    signing: ContractSigningService
    contract_email: ContractEmailIntegration
    booking_email: BookingEmailIntegration


class ServiceContainer:
    """Holds process-wide resources and hands out per-request services."""

    def __init__(
        self,
        settings: Settings,
        *,
        email_sender: EmailSenderPort | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        engine: AsyncEngine | None = None,
        clock: Clock = utc_now,
    ) -> None:
        if settings.storage_backend == "database" and session_factory is None:
            raise ValueError("Database storage requires a session factory")
        self.settings = settings
        self.email_sender = email_sender or build_email_sender(settings)
        self.hasher = SignatureHasher(settings.signature_secret_key)
        self.session_factory = session_factory
        self.engine = engine
        self.clock = clock
        self._memory: Repositories | None = None
        if session_factory is None:
            self._memory = Repositories(
                certificates=InMemoryCertificateRepository(),
                contracts=InMemoryContractRepository(),
                bookings=InMemoryBookingRepository(),
                ledger=InMemoryReminderLedger(),
            )

    @classmethod
    async def create(
        cls,
        settings: Settings,
        *,
        email_sender: EmailSenderPort | None = None,
        clock: Clock = utc_now,
    ) -> "ServiceContainer":
        """Create a container for the configured storage backend."""
        if settings.storage_backend == "database":
            engine = get_engine(settings)
            if settings.is_development:
                await create_tables(engine)
            container = cls(
                settings,
                email_sender=email_sender,
                session_factory=create_session_factory(engine),
                engine=engine,
                clock=clock,
            )
        else:
            container = cls(settings, email_sender=email_sender, clock=clock)
        logger.info(
            "service_container_created",
            storage_backend=settings.storage_backend,
            email_provider=settings.email_provider,
        )
        return container

    def build_services(self, repositories: Repositories) -> Services:
        settings = self.settings
        capture = SignatureCaptureService(
            repositories.certificates,
            self.hasher,
            validity_days=settings.certificate_validity_days,
            clock=self.clock,
        )
        verification = CertificateVerificationService(
            repositories.certificates,
            self.hasher,
            public_base_url=settings.public_base_url,
            clock=self.clock,
        )
        lifecycle = ContractLifecycleService(repositories.contracts, clock=self.clock)
        contract_email = ContractEmailIntegration(
            self.email_sender,
            public_base_url=settings.public_base_url,
            signature_deadline_days=settings.signature_request_deadline_days,
            clock=self.clock,
        )
        booking_email = BookingEmailIntegration(
            contract_email,
            repositories.bookings,
            repositories.ledger,
            repositories.contracts,
            reminder_offsets=settings.reminder_offsets_days,
            confirmation_deadline_days=settings.confirmation_signing_deadline_days,
            clock=self.clock,
        )
        signing = ContractSigningService(
            lifecycle, capture, contract_email, repositories.bookings
        )
        return Services(
            repositories=repositories,
            capture=capture,
            verification=verification,
            lifecycle=lifecycle,
            signing=signing,
            contract_email=contract_email,
            booking_email=booking_email,
        )

    @asynccontextmanager
    async def scope(self) -> AsyncIterator[Services]:
        """Yield services for one unit of work.

        With database storage the work runs in one session that commits on
        success and rolls back on error. Reminder claims commit separately.
        """
        if self._memory is not None:
            yield self.build_services(self._memory)
            return

        assert self.session_factory is not None
        async with self.session_factory() as session:
            repositories = Repositories(
                certificates=CertificateRepository(session),
                contracts=ContractRepository(session),
                bookings=BookingNotificationRepository(session),
                ledger=ReminderLedger(self.session_factory),
            )
            try:
                yield self.build_services(repositories)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        await close_email_sender(self.email_sender)
        if self.engine is not None:
            await self.engine.dispose()
        logger.info("service_container_closed")
