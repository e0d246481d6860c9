"""Patient feedback endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from clinic_api.api.deps import CurrentPatient, DbSession, require
from clinic_api.schemas.artifacts import DoctorRatingRead, FeedbackRead
from clinic_api.schemas.scheduling import ServiceRead
from clinic_api.services.feedback import FACILITY_FLAGS, FeedbackService
from clinic_api.services.policy import Operation, Principal

router = APIRouter()


# ============================================================================
# Request Schemas
# ============================================================================


class FacilityFlags(BaseModel):
    """Facility questions, only kept for SERVICE feedback."""

    is_clean_facilities: bool | None = None
    is_friendly_staff: bool | None = None
    is_easy_accessibility: bool | None = None
    is_smooth_admin_process: bool | None = None

    def flags(self) -> dict[str, bool | None]:
        return {name: getattr(self, name) for name in FACILITY_FLAGS}


class FeedbackCreate(FacilityFlags):
    service_id: str
    participant_id: str
    target_type: str = Field(description="DOCTOR or SERVICE (CLINIC is accepted as SERVICE)")
    rating_score: int | None = None
    comments: str | None = None
    is_anonymous: bool = False


class GeneralFeedbackCreate(FacilityFlags):
    rating_score: int | None = None
    comments: str | None = None
    is_anonymous: bool = False


class FeedbackUpdate(FacilityFlags):
    rating_score: int | None = None
    comments: str | None = None
    is_anonymous: bool | None = None


# ============================================================================
# Patient endpoints
# ============================================================================


@router.post("", response_model=FeedbackRead, status_code=status.HTTP_201_CREATED)
async def create_feedback(
    request: FeedbackCreate,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.FEEDBACK_SUBMIT))],
) -> FeedbackRead:
    """Leave feedback about a visit."""
    feedback = await FeedbackService(session).create_feedback(
        service_id=request.service_id,
        participant_id=request.participant_id,
        target_type=request.target_type,
        rating_score=request.rating_score,
        comments=request.comments,
        is_anonymous=request.is_anonymous,
        submitted_by_user_id=principal.user_id,
        **request.flags(),
    )
    return FeedbackRead.model_validate(feedback)


@router.post("/general", response_model=FeedbackRead, status_code=status.HTTP_201_CREATED)
async def create_general_feedback(
    request: GeneralFeedbackCreate,
    session: DbSession,
    patient: CurrentPatient,
    _: Annotated[Principal, Depends(require(Operation.FEEDBACK_SUBMIT))],
) -> FeedbackRead:
    """Leave feedback about the clinic, not tied to a visit."""
    feedback = await FeedbackService(session).create_general_feedback(
        patient_id=patient.id,
        rating_score=request.rating_score,
        comments=request.comments,
        is_anonymous=request.is_anonymous,
        **request.flags(),
    )
    return FeedbackRead.model_validate(feedback)


@router.get("/services-available", response_model=list[ServiceRead])
async def list_services_available_for_feedback(
    session: DbSession,
    patient: CurrentPatient,
) -> list[ServiceRead]:
    """Completed visits the calling patient has not reviewed yet."""
    services = await FeedbackService(session).services_available_for_feedback(patient.id)
    return [ServiceRead.model_validate(s) for s in services]


# ============================================================================
# Staff endpoints
# ============================================================================


@router.get("/clinic", response_model=list[FeedbackRead])
async def list_clinic_feedback(
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.FEEDBACK_READ))],
) -> list[FeedbackRead]:
    feedback = await FeedbackService(session).list_clinic_feedback()
    return [FeedbackRead.model_validate(f) for f in feedback]


@router.get("/doctor/{doctor_id}", response_model=list[FeedbackRead])
async def list_doctor_feedback(
    doctor_id: str,
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.FEEDBACK_READ))],
) -> list[FeedbackRead]:
    feedback = await FeedbackService(session).list_doctor_feedback(doctor_id)
    return [FeedbackRead.model_validate(f) for f in feedback]


@router.get("/doctor/{doctor_id}/rating", response_model=DoctorRatingRead)
async def get_doctor_rating(
    doctor_id: str,
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.FEEDBACK_READ))],
) -> DoctorRatingRead:
    rating = await FeedbackService(session).doctor_average_rating(doctor_id)
    return DoctorRatingRead(doctor_id=doctor_id, **rating)


@router.put("/{feedback_id}", response_model=FeedbackRead)
async def update_feedback(
    feedback_id: str,
    request: FeedbackUpdate,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.FEEDBACK_MANAGE))],
) -> FeedbackRead:
    feedback = await FeedbackService(session).update_feedback(
        feedback_id,
        request.model_dump(exclude_unset=True),
        actor_id=principal.user_id,
    )
    return FeedbackRead.model_validate(feedback)


@router.delete("/{feedback_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_feedback(
    feedback_id: str,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.FEEDBACK_MANAGE))],
) -> Response:
    await FeedbackService(session).delete_feedback(feedback_id, actor_id=principal.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
