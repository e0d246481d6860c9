"""Database initialization utilities."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_api.db.base import Base
from clinic_api.db.session import engine
from clinic_api.models.service_request import ServiceType
from clinic_api.models.user import User, UserRole

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_TYPES: list[dict] = [
    {
        "name": "General Consultation",
        "description": "One-to-one consultation with a doctor",
        "duration_minutes": 60,
    },
    {
        "name": "Group Therapy",
        "description": "Facilitated session for a group of patients",
        "duration_minutes": 90,
    },
    {
        "name": "Psychological Assessment",
        "description": "Structured assessment using a psychological test",
        "duration_minutes": 60,
    },
]


async def create_tables() -> None:
    """Create all database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


async def drop_tables() -> None:
    """Drop all database tables (use with caution)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("Database tables dropped")


async def seed_service_types(session: AsyncSession) -> list[ServiceType]:
    """Insert the default service types that are missing.

    Returns:
        The service types that were created
    """
    result = await session.execute(select(ServiceType.name))
    existing = set(result.scalars().all())

    created = []
    for data in DEFAULT_SERVICE_TYPES:
        if data["name"] in existing:
            continue
        service_type = ServiceType(**data)
        session.add(service_type)
        created.append(service_type)

    if created:
        await session.commit()
        logger.info(f"Seeded {len(created)} service type(s)")
    return created


async def create_initial_admin(session: AsyncSession, email: str = "admin@clinic.local") -> User | None:
    """Create the directory entry for an initial admin if no admin exists.

    Credentials are held by the identity service; this only makes the user
    resolvable once a token is issued for it.
    """
    result = await session.execute(select(User))
    if any(UserRole.ADMIN.value in user.roles for user in result.scalars().all()):
        logger.info("Admin user already exists, skipping creation")
        return None

    admin = User(
        email=email,
        first_name="System",
        last_name="Admin",
        roles=[UserRole.ADMIN.value],
        is_active=True,
    )
    session.add(admin)
    await session.commit()

    logger.warning(f"Created initial admin user {email}")
    return admin


async def init_db(session: AsyncSession) -> None:
    """Initialize database with required data."""
    await create_tables()
    await seed_service_types(session)
    await create_initial_admin(session)
    logger.info("Database initialization complete")
