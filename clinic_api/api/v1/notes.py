"""Doctor note endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from clinic_api.api.deps import CurrentDoctor, DbSession, require
from clinic_api.schemas.artifacts import NoteRead
from clinic_api.schemas.common import PatientSummary
from clinic_api.schemas.scheduling import ServiceRead
from clinic_api.services.notes import NoteService
from clinic_api.services.policy import Operation, Principal

router = APIRouter()


class NoteCreate(BaseModel):
    patient_id: str
    content: str
    service_id: str | None = None


class NoteUpdate(BaseModel):
    content: str


@router.post("", response_model=NoteRead, status_code=status.HTTP_201_CREATED)
async def create_note(
    request: NoteCreate,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.NOTE_WRITE))],
) -> NoteRead:
    """Write a note; it is linked to the visit when the patient attended it."""
    note = await NoteService(session).create_note(
        doctor_user_id=principal.user_id,
        patient_id=request.patient_id,
        content=request.content,
        service_id=request.service_id,
    )
    return NoteRead.model_validate(note)


@router.get("/patient/{patient_id}", response_model=list[NoteRead])
async def list_patient_notes(
    patient_id: str,
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.NOTE_READ))],
) -> list[NoteRead]:
    notes = await NoteService(session).list_for_patient(patient_id)
    return [NoteRead.model_validate(n) for n in notes]


@router.get("/doctor/me", response_model=list[NoteRead])
async def list_my_notes(
    session: DbSession,
    doctor: CurrentDoctor,
) -> list[NoteRead]:
    """Notes written by the calling doctor."""
    notes = await NoteService(session).list_for_doctor(doctor.id)
    return [NoteRead.model_validate(n) for n in notes]


@router.get("/services", response_model=list[ServiceRead])
async def list_services_for_notes(
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.NOTE_WRITE))],
) -> list[ServiceRead]:
    """Scheduled and completed visits a note can be attached to."""
    services = await NoteService(session).services_for_notes()
    return [ServiceRead.model_validate(s) for s in services]


@router.get("/patients", response_model=list[PatientSummary])
async def list_patients_for_notes(
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.NOTE_WRITE))],
) -> list[PatientSummary]:
    patients = await NoteService(session).patients_for_notes()
    return [PatientSummary.model_validate(p) for p in patients]


@router.get("/{note_id}", response_model=NoteRead)
async def get_note(
    note_id: str,
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.NOTE_READ))],
) -> NoteRead:
    note = await NoteService(session).get_note(note_id)
    return NoteRead.model_validate(note)


@router.put("/{note_id}", response_model=NoteRead)
async def update_note(
    note_id: str,
    request: NoteUpdate,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.NOTE_WRITE))],
) -> NoteRead:
    note = await NoteService(session).update_note(note_id, principal.user_id, request.content)
    return NoteRead.model_validate(note)


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(
    note_id: str,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.NOTE_WRITE))],
) -> Response:
    await NoteService(session).delete_note(note_id, principal.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
