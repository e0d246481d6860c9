"""Pydantic schemas for service types and service requests."""

from datetime import datetime

from pydantic import BaseModel, Field

from clinic_api.schemas.common import PatientSummary


class ServiceTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    duration_minutes: int | None = None
    is_active: bool = True


class ServiceTypeRead(BaseModel):
    id: str
    name: str
    description: str | None = None
    duration_minutes: int
    is_active: bool

    model_config = {"from_attributes": True}


class ServiceRequestRead(BaseModel):
    """Schema for reading a service request."""

    id: str
    patient_id: str
    service_type_id: str
    preferred_doctor_id: str | None = None
    preferred_date_1: datetime
    preferred_date_2: datetime | None = None
    preferred_date_3: datetime | None = None
    preferred_time: str
    reason: str
    urgent: bool
    additional_notes: str | None = None
    status: str
    service_id: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    service_type: ServiceTypeRead
    patient: PatientSummary

    model_config = {"from_attributes": True}
