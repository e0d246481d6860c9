"""Service (encounter) endpoints."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel

from clinic_api.api.deps import CurrentDoctor, CurrentPatient, DbSession, require
from clinic_api.models.scheduling import ServiceStatus
from clinic_api.schemas.scheduling import ParticipantRead, ServiceRead
from clinic_api.services.policy import Operation, Principal
from clinic_api.services.scheduling import SchedulingService

router = APIRouter()


# ============================================================================
# Request Schemas
# ============================================================================


class ServiceCreate(BaseModel):
    """Request to book a service.

    Give ``patient_id`` for a Consultation or ``patient_ids`` for a group.
    """

    service_type: str | None = None
    doctor_id: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    patient_id: str | None = None
    patient_ids: list[str] | None = None
    notes: str | None = None


class CancelRequest(BaseModel):
    reason: str | None = None


class AttendanceUpdate(BaseModel):
    attendance_status: str


# ============================================================================
# Booking and listings
# ============================================================================


@router.post("", response_model=ServiceRead, status_code=status.HTTP_201_CREATED)
async def create_service(
    request: ServiceCreate,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.SERVICE_MANAGE))],
) -> ServiceRead:
    """Book a service with its participants."""
    service = await SchedulingService(session).create_service(
        service_type=request.service_type,
        doctor_id=request.doctor_id,
        start_time=request.start_time,
        end_time=request.end_time,
        patient_id=request.patient_id,
        patient_ids=request.patient_ids,
        notes=request.notes,
        actor_id=principal.user_id,
    )
    return ServiceRead.model_validate(service)


@router.get("", response_model=list[ServiceRead])
async def list_services(
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.SERVICE_LIST_ALL))],
    status_filter: ServiceStatus | None = Query(default=None, alias="status"),
    doctor_id: str | None = Query(default=None),
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
) -> list[ServiceRead]:
    """List services by start time, optionally within [start, end)."""
    scheduling = SchedulingService(session)
    if start is not None and end is not None:
        services = await scheduling.list_by_date_range(start, end, doctor_id=doctor_id)
        if status_filter:
            services = [s for s in services if s.status == status_filter.value]
    else:
        services = await scheduling.list_services(
            status=status_filter, doctor_id=doctor_id, start=start, end=end
        )
    return [ServiceRead.model_validate(s) for s in services]


@router.get("/mine", response_model=list[ServiceRead])
async def list_my_services(
    session: DbSession,
    patient: CurrentPatient,
    status_filter: ServiceStatus | None = Query(default=None, alias="status"),
) -> list[ServiceRead]:
    """The calling patient's appointment history."""
    services = await SchedulingService(session).list_for_patient(patient.id, status_filter)
    return [ServiceRead.model_validate(s) for s in services]


@router.get("/doctor/me", response_model=list[ServiceRead])
async def list_my_doctor_services(
    session: DbSession,
    doctor: CurrentDoctor,
) -> list[ServiceRead]:
    """Services run by the calling doctor."""
    services = await SchedulingService(session).list_for_doctor(doctor.id)
    return [ServiceRead.model_validate(s) for s in services]


@router.get("/patient/{patient_id}", response_model=list[ServiceRead])
async def list_patient_services(
    patient_id: str,
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.SERVICE_LIST_ALL))],
) -> list[ServiceRead]:
    services = await SchedulingService(session).list_for_patient(patient_id)
    return [ServiceRead.model_validate(s) for s in services]


@router.get("/{service_id}", response_model=ServiceRead)
async def get_service(
    service_id: str,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.SERVICE_READ))],
) -> ServiceRead:
    service = await SchedulingService(session).get_service_for(service_id, principal)
    return ServiceRead.model_validate(service)


# ============================================================================
# Status changes
# ============================================================================


@router.patch("/{service_id}/cancel", response_model=ServiceRead)
async def cancel_service(
    service_id: str,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.SERVICE_MANAGE))],
    request: Annotated[CancelRequest | None, Body()] = None,
) -> ServiceRead:
    """Staff cancellation of a scheduled service."""
    service = await SchedulingService(session).cancel(
        service_id,
        reason=request.reason if request else None,
        actor_id=principal.user_id,
    )
    return ServiceRead.model_validate(service)


@router.patch("/{service_id}/patient-cancel", response_model=ServiceRead)
async def patient_cancel_service(
    service_id: str,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.SERVICE_PATIENT_CANCEL))],
    request: Annotated[CancelRequest | None, Body()] = None,
) -> ServiceRead:
    """Cancellation by an attending patient, more than 24 hours ahead."""
    service = await SchedulingService(session).patient_cancel(
        principal.user_id,
        service_id,
        reason=request.reason if request else None,
    )
    return ServiceRead.model_validate(service)


@router.patch("/{service_id}/complete", response_model=ServiceRead)
async def complete_service(
    service_id: str,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.SERVICE_MANAGE))],
) -> ServiceRead:
    service = await SchedulingService(session).mark_completed(
        service_id, actor_id=principal.user_id
    )
    return ServiceRead.model_validate(service)


@router.patch(
    "/{service_id}/participants/{patient_id}/attendance",
    response_model=ParticipantRead,
)
async def update_attendance(
    service_id: str,
    patient_id: str,
    request: AttendanceUpdate,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.SERVICE_MANAGE))],
) -> ParticipantRead:
    participant = await SchedulingService(session).update_attendance(
        service_id,
        patient_id,
        request.attendance_status,
        actor_id=principal.user_id,
    )
    return ParticipantRead.model_validate(participant)
