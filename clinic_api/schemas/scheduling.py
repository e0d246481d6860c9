"""Pydantic schemas for services (encounters) and participants."""

from datetime import datetime

from pydantic import BaseModel

from clinic_api.schemas.common import DoctorSummary, PatientSummary


class ParticipantRead(BaseModel):
    id: str
    service_id: str
    patient_id: str
    attendance_status: str
    added_at: datetime
    patient: PatientSummary

    model_config = {"from_attributes": True}


class ServiceRead(BaseModel):
    """A service with its doctor and participants."""

    id: str
    service_type: str
    employee_id: str
    start_time: datetime
    end_time: datetime
    status: str
    cancel_reason: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    doctor: DoctorSummary
    participants: list[ParticipantRead]

    model_config = {"from_attributes": True}
