"""Service type catalogue endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from clinic_api.api.deps import DbSession, require
from clinic_api.schemas.service_request import ServiceTypeCreate, ServiceTypeRead
from clinic_api.services.policy import Operation, Principal
from clinic_api.services.service_types import ServiceTypeService

router = APIRouter()


@router.get("", response_model=list[ServiceTypeRead])
async def list_service_types(
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.SERVICE_TYPE_READ))],
    active_only: bool = Query(default=True),
) -> list[ServiceTypeRead]:
    """List service types patients can request."""
    service_types = await ServiceTypeService(session).list_service_types(active_only)
    return [ServiceTypeRead.model_validate(st) for st in service_types]


@router.post("", response_model=ServiceTypeRead, status_code=status.HTTP_201_CREATED)
async def create_service_type(
    request: ServiceTypeCreate,
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.SERVICE_TYPE_MANAGE))],
) -> ServiceTypeRead:
    """Add a service type (admin only)."""
    service_type = await ServiceTypeService(session).create_service_type(
        name=request.name,
        description=request.description,
        duration_minutes=request.duration_minutes,
        is_active=request.is_active,
    )
    return ServiceTypeRead.model_validate(service_type)
