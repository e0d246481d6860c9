"""Pytest configuration and fixtures."""

import os

# Must be set before the application settings are imported
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from clinic_api.core.security import create_access_token
from clinic_api.db.base import Base
from clinic_api.db.session import get_db
from clinic_api.main import app
from clinic_api.models.patient import Doctor, Patient
from clinic_api.models.service_request import ServiceType
from clinic_api.models.user import User, UserRole
from clinic_api.services.scheduling import SchedulingService
from clinic_api.utils.time import utc_now

# Use SQLite for testing (simpler than spinning up postgres)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def async_engine():
    """Create async test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def async_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests."""
    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session


@pytest.fixture(scope="function")
async def client(async_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an HTTP client bound to the app with the test session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield async_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ============================================================================
# Directory fixtures
# ============================================================================


@pytest.fixture
def user_factory(async_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Build users with the given roles."""
    counter = {"n": 0}

    async def make_user(*roles: UserRole, first_name: str = "Test", last_name: str = "User") -> User:
        counter["n"] += 1
        user = User(
            email=f"user{counter['n']}@clinic.test",
            first_name=first_name,
            last_name=last_name,
            roles=[role.value for role in roles],
            is_active=True,
        )
        async_session.add(user)
        await async_session.commit()
        return user

    return make_user


@pytest.fixture
def patient_factory(
    async_session: AsyncSession,
    user_factory: Callable[..., Awaitable[User]],
) -> Callable[..., Awaitable[Patient]]:
    """Build patient profiles, each with its own user."""

    async def make_patient(first_name: str = "Pat") -> Patient:
        user = await user_factory(UserRole.PATIENT, first_name=first_name, last_name="Patient")
        patient = Patient(user=user, phone="555-0100")
        async_session.add(patient)
        await async_session.commit()
        return patient

    return make_patient


@pytest.fixture
async def patient(patient_factory) -> Patient:
    return await patient_factory("Alice")


@pytest.fixture
async def second_patient(patient_factory) -> Patient:
    return await patient_factory("Bob")


@pytest.fixture
async def third_patient(patient_factory) -> Patient:
    return await patient_factory("Carol")


@pytest.fixture
async def doctor(async_session: AsyncSession, user_factory) -> Doctor:
    """Create a doctor profile."""
    user = await user_factory(UserRole.DOCTOR, first_name="Dana", last_name="House")
    doctor = Doctor(user=user, specialization="Psychiatry")
    async_session.add(doctor)
    await async_session.commit()
    return doctor


@pytest.fixture
async def other_doctor(async_session: AsyncSession, user_factory) -> Doctor:
    user = await user_factory(UserRole.DOCTOR, first_name="Eli", last_name="Grey")
    doctor = Doctor(user=user, specialization="Psychology")
    async_session.add(doctor)
    await async_session.commit()
    return doctor


@pytest.fixture
async def admin_user(user_factory) -> User:
    return await user_factory(UserRole.ADMIN, first_name="Admin")


@pytest.fixture
async def receptionist_user(user_factory) -> User:
    return await user_factory(UserRole.RECEPTIONIST, first_name="Reception")


@pytest.fixture
async def service_type(async_session: AsyncSession) -> ServiceType:
    """Create an active service type."""
    service_type = ServiceType(
        name="General Consultation",
        description="One-to-one consultation with a doctor",
        duration_minutes=60,
        is_active=True,
    )
    async_session.add(service_type)
    await async_session.commit()
    return service_type


@pytest.fixture
def book_service(async_session: AsyncSession, doctor: Doctor):
    """Book a service for the given patients, starting ``hours_ahead`` from now."""

    async def book(*patients: Patient, hours_ahead: float = 72, kind: str | None = None):
        start = utc_now() + timedelta(hours=hours_ahead)
        if kind is None:
            kind = "Consultation" if len(patients) == 1 else "Group_Consultation"
        return await SchedulingService(async_session).create_service(
            service_type=kind,
            doctor_id=doctor.id,
            start_time=start,
            end_time=start + timedelta(hours=1),
            patient_ids=[p.id for p in patients],
        )

    return book


# ============================================================================
# Auth helpers
# ============================================================================


def create_test_token(user: User) -> str:
    """Create a test JWT token carrying the user's roles."""
    return create_access_token(subject=user.id, roles=list(user.roles))


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Return a function building authorization headers for a user."""

    def headers_for(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_test_token(user)}"}

    return headers_for
