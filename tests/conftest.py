import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

# Load environment variables from .env file
load_dotenv()

from hms.database import build_engine, build_session_factory, get_session_factory  # noqa: E402
from hms.dependencies import get_booking_service, get_dashboard_service  # noqa: E402
from hms.main import app  # noqa: E402
from hms.models import doctors, medical_records, metadata, patients  # noqa: E402
from hms.services.booking_locks import DoctorLockManager  # noqa: E402
from hms.services.booking_service import BookingService  # noqa: E402
from hms.services.dashboard_service import DashboardService  # noqa: E402

# Point TEST_DATABASE_URL at a disposable PostgreSQL database to run the
# suite against it; otherwise every test gets its own SQLite file.
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")


def _async_url(url: str) -> str:
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a test engine with a fresh schema."""
    url = _async_url(TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    test_engine = build_engine(url, poolclass=NullPool, echo=False)

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Unit-of-work factory bound to the test engine."""
    return build_session_factory(engine)


@pytest.fixture
def lock_manager() -> DoctorLockManager:
    """Lock table private to one test."""
    return DoctorLockManager(use_advisory_locks=True)


@pytest.fixture
def booking_service(
    session_factory: async_sessionmaker[AsyncSession],
    lock_manager: DoctorLockManager,
) -> BookingService:
    return BookingService(session_factory, lock_manager=lock_manager)


@pytest.fixture
def dashboard_service(session_factory: async_sessionmaker[AsyncSession]) -> DashboardService:
    return DashboardService(session_factory)


async def _insert(
    session_factory: async_sessionmaker[AsyncSession],
    table,
    **values,
) -> UUID:
    values.setdefault("id", uuid4())
    async with session_factory() as session:
        async with session.begin():
            await session.execute(insert(table).values(**values))
    return values["id"]


@pytest_asyncio.fixture
async def patient_id(session_factory: async_sessionmaker[AsyncSession]) -> UUID:
    """Create a test patient in the database."""
    return await _insert(
        session_factory,
        patients,
        full_name="Jane Roe",
        date_of_birth=datetime(1985, 4, 12).date(),
        gender="female",
        phone="+1234567890",
        email="jane.roe@example.com",
    )


@pytest_asyncio.fixture
async def doctor_id(session_factory: async_sessionmaker[AsyncSession]) -> UUID:
    """Create a test doctor in the database."""
    return await _insert(
        session_factory,
        doctors,
        full_name="Dr. John Doe",
        specialization="Cardiology",
    )


@pytest_asyncio.fixture
async def other_doctor_id(session_factory: async_sessionmaker[AsyncSession]) -> UUID:
    """Create a second test doctor."""
    return await _insert(
        session_factory,
        doctors,
        full_name="Dr. Ann Smith",
        specialization="Dermatology",
    )


@pytest_asyncio.fixture
async def create_medical_record(session_factory: async_sessionmaker[AsyncSession]):
    """Factory fixture inserting medical records."""

    async def _create(patient_id: UUID, recorded_at: datetime, **values) -> UUID:
        values.setdefault("record_type", "consultation")
        return await _insert(
            session_factory,
            medical_records,
            patient_id=patient_id,
            recorded_at=recorded_at,
            **values,
        )

    return _create


@pytest.fixture
def actor_id() -> UUID:
    return uuid4()


@pytest.fixture
def tomorrow_at_nine() -> datetime:
    """A start time safely in the future, on a round hour."""
    tomorrow = datetime.now(UTC) + timedelta(days=1)
    return tomorrow.replace(hour=9, minute=0, second=0, microsecond=0)


@pytest.fixture
def booking_data(patient_id: UUID, doctor_id: UUID, tomorrow_at_nine: datetime):
    """Factory for appointment creation payloads."""

    def _build(**overrides) -> dict:
        data = {
            "patient_id": patient_id,
            "doctor_id": doctor_id,
            "kind": "check-up",
            "starts_at": tomorrow_at_nine,
            "duration_minutes": 30,
            "location": "Room 101",
            "notes": "First visit",
        }
        data.update(overrides)
        return data

    return _build


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    booking_service: BookingService,
    dashboard_service: DashboardService,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client wired to the test database."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_booking_service] = lambda: booking_service
    app.dependency_overrides[get_dashboard_service] = lambda: dashboard_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def actor_headers(actor_id: UUID) -> dict:
    """Headers identifying the acting user."""
    return {"X-Actor-ID": str(actor_id)}
