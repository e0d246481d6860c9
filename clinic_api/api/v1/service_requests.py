"""Service request (intake) endpoints."""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel

from clinic_api.api.deps import CurrentPatient, DbSession, require
from clinic_api.core.errors import ForbiddenError, ValidationError
from clinic_api.models.service_request import ServiceRequestStatus
from clinic_api.schemas.service_request import ServiceRequestRead
from clinic_api.services.directory import DirectoryService
from clinic_api.services.policy import Operation, Principal
from clinic_api.services.service_requests import ServiceRequestService

router = APIRouter()


# ============================================================================
# Request Schemas
# ============================================================================


class ServiceRequestCreate(BaseModel):
    """Request to ask for an appointment.

    Patients may omit ``patient_id``; staff filing on a patient's behalf
    must supply it. Dates are ISO 8601 strings.
    """

    patient_id: str | None = None
    service_type_id: str
    preferred_date_1: str | None = None
    preferred_date_2: str | None = None
    preferred_date_3: str | None = None
    preferred_time: str
    reason: str
    urgent: bool = False
    preferred_doctor_id: str | None = None
    additional_notes: str | None = None


class RejectRequest(BaseModel):
    reason: str | None = None


class ScheduleRequest(BaseModel):
    service_id: str


# ============================================================================
# Endpoints
# ============================================================================


@router.post("", response_model=ServiceRequestRead, status_code=status.HTTP_201_CREATED)
async def create_service_request(
    request: ServiceRequestCreate,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.REQUEST_CREATE))],
) -> ServiceRequestRead:
    """Submit a scheduling request."""
    patient_id = request.patient_id
    if principal.is_patient_only:
        own = await DirectoryService(session).require_patient_for_user(principal.user_id)
        if patient_id and patient_id != own.id:
            raise ForbiddenError("Patients can only submit requests for themselves")
        patient_id = own.id
    elif not patient_id:
        raise ValidationError("patient_id is required")

    service_request = await ServiceRequestService(session).create_request(
        patient_id=patient_id,
        service_type_id=request.service_type_id,
        preferred_dates=[
            request.preferred_date_1,
            request.preferred_date_2,
            request.preferred_date_3,
        ],
        preferred_time=request.preferred_time,
        reason=request.reason,
        urgent=request.urgent,
        preferred_doctor_id=request.preferred_doctor_id,
        additional_notes=request.additional_notes,
        actor_id=principal.user_id,
    )
    return ServiceRequestRead.model_validate(service_request)


@router.get("/mine", response_model=list[ServiceRequestRead])
async def list_my_service_requests(
    session: DbSession,
    patient: CurrentPatient,
) -> list[ServiceRequestRead]:
    """The calling patient's requests, newest first."""
    requests = await ServiceRequestService(session).list_for_patient(patient.id)
    return [ServiceRequestRead.model_validate(r) for r in requests]


@router.get("", response_model=list[ServiceRequestRead])
async def list_service_requests(
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.REQUEST_LIST_ALL))],
    status_filter: ServiceRequestStatus | None = Query(default=None, alias="status"),
) -> list[ServiceRequestRead]:
    """All requests, urgent first."""
    requests = await ServiceRequestService(session).list_all(status_filter)
    return [ServiceRequestRead.model_validate(r) for r in requests]


@router.get("/patient/{patient_id}", response_model=list[ServiceRequestRead])
async def list_patient_service_requests(
    patient_id: str,
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.REQUEST_LIST_ALL))],
) -> list[ServiceRequestRead]:
    requests = await ServiceRequestService(session).list_for_patient(patient_id)
    return [ServiceRequestRead.model_validate(r) for r in requests]


@router.get("/{request_id}", response_model=ServiceRequestRead)
async def get_service_request(
    request_id: str,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.REQUEST_READ))],
) -> ServiceRequestRead:
    service_request = await ServiceRequestService(session).get_request_for(
        request_id, principal
    )
    return ServiceRequestRead.model_validate(service_request)


@router.patch("/{request_id}/approve", response_model=ServiceRequestRead)
async def approve_service_request(
    request_id: str,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.REQUEST_DECIDE))],
) -> ServiceRequestRead:
    """Approve a pending request."""
    service_request = await ServiceRequestService(session).approve(
        request_id, actor_id=principal.user_id
    )
    return ServiceRequestRead.model_validate(service_request)


@router.patch("/{request_id}/reject", response_model=ServiceRequestRead)
async def reject_service_request(
    request_id: str,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.REQUEST_DECIDE))],
    request: Annotated[RejectRequest | None, Body()] = None,
) -> ServiceRequestRead:
    """Reject a pending request. The reason replaces the request's notes."""
    service_request = await ServiceRequestService(session).reject(
        request_id,
        reason=request.reason if request else None,
        actor_id=principal.user_id,
    )
    return ServiceRequestRead.model_validate(service_request)


@router.patch("/{request_id}/schedule", response_model=ServiceRequestRead)
async def mark_service_request_scheduled(
    request_id: str,
    request: ScheduleRequest,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.REQUEST_DECIDE))],
) -> ServiceRequestRead:
    """Link an approved request to the service booked for it."""
    service_request = await ServiceRequestService(session).mark_scheduled(
        request_id,
        service_id=request.service_id,
        actor_id=principal.user_id,
    )
    return ServiceRequestRead.model_validate(service_request)
