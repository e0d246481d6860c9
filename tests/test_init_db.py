"""Tests for database seeding."""

from sqlalchemy import select

from clinic_api.db.init_db import DEFAULT_SERVICE_TYPES, create_initial_admin, seed_service_types
from clinic_api.models.service_request import ServiceType
from clinic_api.models.user import UserRole


class TestSeeding:
    async def test_seeds_default_service_types_once(self, async_session) -> None:
        first = await seed_service_types(async_session)
        second = await seed_service_types(async_session)

        result = await async_session.execute(select(ServiceType.name).order_by(ServiceType.name))
        assert len(first) == len(DEFAULT_SERVICE_TYPES)
        assert second == []
        assert result.scalars().all() == [
            "General Consultation",
            "Group Therapy",
            "Psychological Assessment",
        ]

    async def test_initial_admin_only_when_missing(self, async_session) -> None:
        admin = await create_initial_admin(async_session)

        assert admin is not None
        assert admin.roles == [UserRole.ADMIN.value]
        assert await create_initial_admin(async_session) is None
