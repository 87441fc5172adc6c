"""
Pytest configuration and fixtures for StageBook tests.
"""
import os

# Required before stagebook.main builds its module-level app
os.environ.setdefault("SIGNATURE_SECRET_KEY", "test-signature-secret-key-0123456789abcdef")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("EMAIL_PROVIDER", "log")

from collections.abc import AsyncGenerator, Generator
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from stagebook.config import Settings
from stagebook.container import ServiceContainer, Services
from stagebook.domain.contracts.models import ContractData
from stagebook.domain.notifications.models import BookingDetails
from stagebook.domain.signatures.models import SignatureData
from stagebook.infrastructure.database.connection import create_session_factory, create_tables
from stagebook.infrastructure.database.models import Base
from stagebook.shared.crypto import SignatureHasher
from stagebook.shared.exceptions import EmailDeliveryError

TEST_SECRET_KEY = "test-signature-secret-key-0123456789abcdef"
FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)

# 1x1 transparent PNG
PNG_1X1 = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class FrozenClock:
    """Clock pinned to a fixed instant that tests move by hand."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeEmailSender:
    """Records messages; raises for addresses listed in ``fail_for``."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.fail_for: set[str] = set()

    async def send_email(self, to: str, subject: str, html: str) -> None:
        if to in self.fail_for:
            raise EmailDeliveryError("Mailbox unavailable", details={"to": to})
        self.sent.append((to, subject, html))

    def recipients(self) -> list[str]:
        return [to for to, _, _ in self.sent]

    def subjects(self) -> list[str]:
        return [subject for _, subject, _ in self.sent]


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with in-memory storage."""
    return Settings(
        signature_secret_key=TEST_SECRET_KEY,
        storage_backend="memory",
        email_provider="log",
        public_base_url="https://stagebook.example.com",
        app_env="development",
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def email_sender() -> FakeEmailSender:
    return FakeEmailSender()


@pytest.fixture
def hasher() -> SignatureHasher:
    return SignatureHasher(TEST_SECRET_KEY)


@pytest.fixture
def container(
    test_settings: Settings, email_sender: FakeEmailSender, clock: FrozenClock
) -> ServiceContainer:
    """Memory-backed container with the fake email transport and frozen clock."""
    return ServiceContainer(test_settings, email_sender=email_sender, clock=clock)


@pytest.fixture
async def services(container: ServiceContainer) -> AsyncGenerator[Services, None]:
    async with container.scope() as services:
        yield services


@pytest.fixture
def signature_data() -> SignatureData:
    return SignatureData(
        contract_id="CONTRACT-TEST-1",
        signer_name="John Doe",
        signer_email="artist@example.com",
        signer_role="artist",
        signature_image=PNG_1X1,
        ip_address="203.0.113.7",
    )


@pytest.fixture
def contract_data(clock: FrozenClock) -> ContractData:
    return ContractData(
        title="Summer Jazz Night",
        artist_id="artist-1",
        venue_id="venue-1",
        event_date=clock.now + timedelta(days=10),
        event_venue="Blue Note Hall",
        performance_fee=Decimal("1500.00"),
        payment_terms="50% deposit, balance on the night",
        performance_details={"duration": "90 minutes", "setLengthMinutes": 90},
        technical_requirements={"microphoneCount": 4, "paSystem": "Provided by venue"},
    )


@pytest.fixture
def booking_details(clock: FrozenClock) -> BookingDetails:
    return BookingDetails(
        booking_id="booking-1",
        contract_id="CONTRACT-TEST-1",
        artist_name="John Doe",
        artist_email="artist@example.com",
        venue_name="Blue Note Hall",
        venue_email="venue@example.com",
        contract_title="Summer Jazz Night",
        event_date=clock.now + timedelta(days=10),
        event_venue="Blue Note Hall",
    )


@pytest.fixture
def app(container: ServiceContainer) -> FastAPI:
    """Create test FastAPI application using the injected container."""
    from stagebook.main import create_app

    app = create_app()
    app.state.container = container
    return app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Create sync test client (runs the lifespan)."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine (the reminder ledger opens its own connections)."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'stagebook.db'}", echo=False)
    await create_tables(engine)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def db_container(
    test_settings: Settings,
    async_engine: AsyncEngine,
    email_sender: FakeEmailSender,
    clock: FrozenClock,
) -> ServiceContainer:
    """Database-backed container over the SQLite test engine."""
    settings = test_settings.model_copy(update={"storage_backend": "database"})
    return ServiceContainer(
        settings,
        email_sender=email_sender,
        session_factory=create_session_factory(async_engine),
        clock=clock,
    )
