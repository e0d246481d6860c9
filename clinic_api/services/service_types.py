"""Catalogue of service types patients can request."""

import logging
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_api.core.config import settings
from clinic_api.core.errors import ConflictError, NotFoundError, ValidationError
from clinic_api.db.transaction import commit_or_conflict
from clinic_api.models.service_request import ServiceType

logger = logging.getLogger(__name__)


class ServiceTypeService:
    """Read and maintain the service type catalogue."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_service_types(self, active_only: bool = True) -> Sequence[ServiceType]:
        query = select(ServiceType).order_by(ServiceType.name)
        if active_only:
            query = query.where(ServiceType.is_active == True)  # noqa: E712
        result = await self.session.execute(query)
        return result.scalars().all()

    async def get_service_type(self, service_type_id: str) -> ServiceType:
        result = await self.session.execute(
            select(ServiceType).where(ServiceType.id == service_type_id)
        )
        service_type = result.scalar_one_or_none()
        if not service_type:
            raise NotFoundError("Service type not found")
        return service_type

    async def create_service_type(
        self,
        name: str,
        description: str | None = None,
        duration_minutes: int | None = None,
        is_active: bool = True,
    ) -> ServiceType:
        """Add a service type.

        ``duration_minutes`` falls back to the configured default length.

        Raises:
            ValidationError: If the name is blank or the duration is not positive
            ConflictError: If a service type with that name exists
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Service type name is required")
        if duration_minutes is None:
            duration_minutes = settings.default_service_duration_minutes
        if duration_minutes <= 0:
            raise ValidationError("Duration must be a positive number of minutes")

        existing = await self.session.execute(
            select(ServiceType.id).where(ServiceType.name == name)
        )
        if existing.scalar_one_or_none():
            raise ConflictError(f"Service type '{name}' already exists")

        service_type = ServiceType(
            name=name,
            description=description,
            duration_minutes=duration_minutes,
            is_active=is_active,
        )
        self.session.add(service_type)
        await commit_or_conflict(self.session, f"Service type '{name}' already exists")
        await self.session.refresh(service_type)

        logger.info(f"Created service type {service_type.name}")
        return service_type
