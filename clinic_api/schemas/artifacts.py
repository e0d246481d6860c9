"""Pydantic schemas for notes, notices and feedback."""

from datetime import datetime

from pydantic import BaseModel, model_validator

from clinic_api.schemas.common import LinkRead


class NoteRead(BaseModel):
    id: str
    doctor_id: str
    patient_id: str
    content: str
    service_id: str | None = None
    link: LinkRead
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class NoticeRead(BaseModel):
    id: str
    service_id: str
    participant_id: str
    unique_notice_number: str
    issue_date: datetime
    expiry_date: datetime | None = None
    reason_for_issuance: str
    fitness_status: str
    recommendations: str
    attachment_path: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class FeedbackRead(BaseModel):
    """Feedback as shown to staff; anonymous feedback hides the patient."""

    id: str
    patient_id: str | None = None
    link: LinkRead
    target_type: str
    rating_score: int | None = None
    comments: str | None = None
    is_anonymous: bool
    is_clean_facilities: bool | None = None
    is_friendly_staff: bool | None = None
    is_easy_accessibility: bool | None = None
    is_smooth_admin_process: bool | None = None
    submission_date: datetime

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def hide_anonymous_patient(self) -> "FeedbackRead":
        if self.is_anonymous:
            self.patient_id = None
        return self


class DoctorRatingRead(BaseModel):
    doctor_id: str
    average_rating: float
    total_ratings: int
