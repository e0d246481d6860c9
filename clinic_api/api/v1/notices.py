"""Fitness notice endpoints."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel

from clinic_api.api.deps import CurrentDoctor, CurrentPatient, DbSession, require
from clinic_api.schemas.artifacts import NoticeRead
from clinic_api.schemas.common import PatientSummary
from clinic_api.schemas.scheduling import ServiceRead
from clinic_api.services.notices import NoticeNumberGenerator, NoticeService
from clinic_api.services.policy import Operation, Principal

router = APIRouter()


# ============================================================================
# Request/Response Schemas
# ============================================================================


class NoticeCreate(BaseModel):
    """Request to issue a notice.

    ``unique_notice_number`` is normally left out and generated.
    """

    service_id: str
    participant_id: str
    reason_for_issuance: str
    fitness_status: str
    recommendations: str
    issue_date: datetime | None = None
    expiry_date: datetime | None = None
    attachment_path: str | None = None
    unique_notice_number: str | None = None


class NoticeUpdate(BaseModel):
    expiry_date: datetime | None = None
    reason_for_issuance: str | None = None
    fitness_status: str | None = None
    recommendations: str | None = None
    attachment_path: str | None = None


class NextNoticeNumberResponse(BaseModel):
    unique_notice_number: str


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/next-number", response_model=NextNoticeNumberResponse)
async def preview_next_notice_number(
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.NOTICE_WRITE))],
) -> NextNoticeNumberResponse:
    """Number the next notice issued this month would get (not reserved)."""
    number = await NoticeNumberGenerator(session).peek()
    return NextNoticeNumberResponse(unique_notice_number=number)


@router.post("", response_model=NoticeRead, status_code=status.HTTP_201_CREATED)
async def create_notice(
    request: NoticeCreate,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.NOTICE_WRITE))],
) -> NoticeRead:
    notice = await NoticeService(session).create_notice(
        service_id=request.service_id,
        participant_id=request.participant_id,
        reason_for_issuance=request.reason_for_issuance,
        fitness_status=request.fitness_status,
        recommendations=request.recommendations,
        issue_date=request.issue_date,
        expiry_date=request.expiry_date,
        attachment_path=request.attachment_path,
        unique_notice_number=request.unique_notice_number,
        actor_id=principal.user_id,
    )
    return NoticeRead.model_validate(notice)


@router.get("", response_model=list[NoticeRead])
async def list_notices(
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.NOTICE_WRITE))],
) -> list[NoticeRead]:
    notices = await NoticeService(session).list_notices()
    return [NoticeRead.model_validate(n) for n in notices]


@router.get("/mine", response_model=list[NoticeRead])
async def list_my_notices(
    session: DbSession,
    patient: CurrentPatient,
) -> list[NoticeRead]:
    notices = await NoticeService(session).list_for_patient(patient.id)
    return [NoticeRead.model_validate(n) for n in notices]


@router.get("/doctor/me", response_model=list[NoticeRead])
async def list_my_issued_notices(
    session: DbSession,
    doctor: CurrentDoctor,
) -> list[NoticeRead]:
    notices = await NoticeService(session).list_for_doctor(doctor.id)
    return [NoticeRead.model_validate(n) for n in notices]


@router.get("/patient/{patient_id}", response_model=list[NoticeRead])
async def list_patient_notices(
    patient_id: str,
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.NOTICE_WRITE))],
) -> list[NoticeRead]:
    notices = await NoticeService(session).list_for_patient(patient_id)
    return [NoticeRead.model_validate(n) for n in notices]


@router.get("/services", response_model=list[ServiceRead])
async def list_services_for_notices(
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.NOTICE_WRITE))],
    doctor_id: str | None = Query(default=None),
) -> list[ServiceRead]:
    """Completed services a notice can be issued against."""
    services = await NoticeService(session).services_for_notices(doctor_id)
    return [ServiceRead.model_validate(s) for s in services]


@router.get("/patients", response_model=list[PatientSummary])
async def list_patients_for_notices(
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.NOTICE_WRITE))],
) -> list[PatientSummary]:
    """Active patients a notice can be issued to."""
    patients = await NoticeService(session).patients_for_notices()
    return [PatientSummary.model_validate(p) for p in patients]


@router.get("/{notice_id}", response_model=NoticeRead)
async def get_notice(
    notice_id: str,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.NOTICE_READ))],
) -> NoticeRead:
    notice = await NoticeService(session).get_notice_for(notice_id, principal)
    return NoticeRead.model_validate(notice)


@router.put("/{notice_id}", response_model=NoticeRead)
async def update_notice(
    notice_id: str,
    request: NoticeUpdate,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.NOTICE_WRITE))],
) -> NoticeRead:
    notice = await NoticeService(session).update_notice(
        notice_id,
        request.model_dump(exclude_unset=True),
        actor_id=principal.user_id,
    )
    return NoticeRead.model_validate(notice)


@router.delete("/{notice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notice(
    notice_id: str,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.NOTICE_WRITE))],
) -> Response:
    await NoticeService(session).delete_notice(notice_id, actor_id=principal.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
