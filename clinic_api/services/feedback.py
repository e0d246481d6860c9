"""Patient feedback on doctors and on the clinic."""

import logging
from typing import Any, Sequence

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_api.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from clinic_api.core.logging import audit_logger
from clinic_api.db.transaction import commit_or_conflict
from clinic_api.models.feedback import Feedback, FeedbackTarget
from clinic_api.models.linkage import Linked, link_columns
from clinic_api.models.scheduling import Service, ServiceParticipant, ServiceStatus
from clinic_api.services.directory import DirectoryService

logger = logging.getLogger(__name__)

MIN_RATING = 0
MAX_RATING = 5

FACILITY_FLAGS = (
    "is_clean_facilities",
    "is_friendly_staff",
    "is_easy_accessibility",
    "is_smooth_admin_process",
)


def parse_target(value: str | None) -> FeedbackTarget:
    """Map a requested target onto DOCTOR or SERVICE.

    ``CLINIC`` is accepted as a synonym for SERVICE.
    """
    if not value:
        raise ValidationError("target_type is required")
    normalized = value.strip().upper()
    if normalized in ("SERVICE", "CLINIC"):
        return FeedbackTarget.SERVICE
    if normalized == "DOCTOR":
        return FeedbackTarget.DOCTOR
    raise ValidationError("target_type must be DOCTOR or SERVICE")


def _check_rating(rating_score: int | None) -> None:
    if rating_score is not None and not MIN_RATING <= rating_score <= MAX_RATING:
        raise ValidationError(f"rating_score must be between {MIN_RATING} and {MAX_RATING}")


def _facility_values(target: FeedbackTarget, flags: dict[str, bool | None]) -> dict[str, bool | None]:
    # Facility questions only apply to SERVICE feedback
    if target != FeedbackTarget.SERVICE:
        return {name: None for name in FACILITY_FLAGS}
    return {name: flags.get(name) for name in FACILITY_FLAGS}


class FeedbackService:
    """Collect and report on patient feedback."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.directory = DirectoryService(session)

    async def create_feedback(
        self,
        service_id: str,
        participant_id: str,
        target_type: str,
        rating_score: int | None = None,
        comments: str | None = None,
        is_anonymous: bool = False,
        submitted_by_user_id: str | None = None,
        **facility_flags: bool | None,
    ) -> Feedback:
        """Record feedback about a visit.

        SERVICE feedback keeps the four facility flags; DOCTOR feedback drops
        them. When ``submitted_by_user_id`` is given, that user must be the
        patient behind the participant row.

        Raises:
            ValidationError: On a bad target, rating, or participant/service pair
            NotFoundError: If the service or participant does not exist
            ForbiddenError: If the submitting patient does not own the participant
            ConflictError: If this participant already left feedback of this type
        """
        target = parse_target(target_type)
        _check_rating(rating_score)
        unknown = set(facility_flags) - set(FACILITY_FLAGS)
        if unknown:
            raise ValidationError(f"Unknown feedback field(s): {', '.join(sorted(unknown))}")

        service = await self.session.get(Service, service_id)
        if not service:
            raise NotFoundError("Service not found")
        participant = await self.session.get(ServiceParticipant, participant_id)
        if not participant:
            raise NotFoundError("Participant not found")
        if participant.service_id != service.id:
            raise ValidationError("Participant does not belong to this service")

        if submitted_by_user_id is not None:
            patient = await self.directory.require_patient_for_user(submitted_by_user_id)
            if participant.patient_id != patient.id:
                raise ForbiddenError("You can only leave feedback for your own visits")

        existing = await self.session.execute(
            select(Feedback.id).where(
                Feedback.service_id == service.id,
                Feedback.participant_id == participant.id,
                Feedback.target_type == target.value,
            )
        )
        if existing.scalar_one_or_none():
            raise ConflictError("Feedback has already been submitted for this visit")

        link = Linked(service_id=service.id, participant_id=participant.id)
        linked_service_id, linked_participant_id = link_columns(link)
        feedback = Feedback(
            patient_id=participant.patient_id,
            service_id=linked_service_id,
            participant_id=linked_participant_id,
            target_type=target.value,
            rating_score=rating_score,
            comments=comments,
            is_anonymous=is_anonymous,
            **_facility_values(target, facility_flags),
        )
        self.session.add(feedback)
        await commit_or_conflict(
            self.session, "Feedback has already been submitted for this visit"
        )

        audit_logger.log(
            action="feedback.created",
            actor_id=submitted_by_user_id,
            entity_type="feedback",
            entity_id=feedback.id,
            metadata={"target_type": target.value, "service_id": service.id},
        )
        return feedback

    async def create_general_feedback(
        self,
        patient_id: str,
        rating_score: int | None = None,
        comments: str | None = None,
        is_anonymous: bool = False,
        **facility_flags: bool | None,
    ) -> Feedback:
        """Record clinic feedback that is not about a particular visit."""
        _check_rating(rating_score)
        unknown = set(facility_flags) - set(FACILITY_FLAGS)
        if unknown:
            raise ValidationError(f"Unknown feedback field(s): {', '.join(sorted(unknown))}")
        await self.directory.require_patient(patient_id)

        feedback = Feedback(
            patient_id=patient_id,
            service_id=None,
            participant_id=None,
            target_type=FeedbackTarget.SERVICE.value,
            rating_score=rating_score,
            comments=comments,
            is_anonymous=is_anonymous,
            **_facility_values(FeedbackTarget.SERVICE, facility_flags),
        )
        self.session.add(feedback)
        await self.session.commit()

        audit_logger.log(
            action="feedback.created",
            actor_id=None,
            entity_type="feedback",
            entity_id=feedback.id,
            metadata={"target_type": FeedbackTarget.SERVICE.value, "general": True},
        )
        return feedback

    async def get_feedback(self, feedback_id: str) -> Feedback:
        feedback = await self.session.get(Feedback, feedback_id)
        if not feedback:
            raise NotFoundError("Feedback not found")
        return feedback

    async def update_feedback(
        self,
        feedback_id: str,
        changes: dict[str, Any],
        actor_id: str | None = None,
    ) -> Feedback:
        """Edit rating, comments, anonymity or facility flags."""
        feedback = await self.get_feedback(feedback_id)
        allowed = {"rating_score", "comments", "is_anonymous", *FACILITY_FLAGS}
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        if "rating_score" in changes:
            _check_rating(changes["rating_score"])

        for field, value in changes.items():
            if field in FACILITY_FLAGS and feedback.target_type != FeedbackTarget.SERVICE.value:
                continue
            setattr(feedback, field, value)
        await self.session.commit()

        audit_logger.log(
            action="feedback.updated",
            actor_id=actor_id,
            entity_type="feedback",
            entity_id=feedback.id,
            metadata={"fields": sorted(changes)},
        )
        return feedback

    async def delete_feedback(self, feedback_id: str, actor_id: str | None = None) -> None:
        feedback = await self.get_feedback(feedback_id)
        await self.session.delete(feedback)
        await self.session.commit()

        audit_logger.log(
            action="feedback.deleted",
            actor_id=actor_id,
            entity_type="feedback",
            entity_id=feedback_id,
        )

    async def list_clinic_feedback(self) -> Sequence[Feedback]:
        result = await self.session.execute(
            select(Feedback)
            .where(Feedback.target_type == FeedbackTarget.SERVICE.value)
            .order_by(Feedback.submission_date.desc())
        )
        return result.scalars().all()

    async def list_doctor_feedback(self, doctor_id: str) -> Sequence[Feedback]:
        result = await self.session.execute(
            select(Feedback)
            .join(Service, Service.id == Feedback.service_id)
            .where(
                Service.employee_id == doctor_id,
                Feedback.target_type == FeedbackTarget.DOCTOR.value,
            )
            .order_by(Feedback.submission_date.desc())
        )
        return result.scalars().all()

    async def doctor_average_rating(self, doctor_id: str) -> dict[str, float | int]:
        """Average of rated DOCTOR feedback on the doctor's services, to one decimal."""
        result = await self.session.execute(
            select(func.avg(Feedback.rating_score), func.count(Feedback.id))
            .join(Service, Service.id == Feedback.service_id)
            .where(
                Service.employee_id == doctor_id,
                Feedback.target_type == FeedbackTarget.DOCTOR.value,
                Feedback.rating_score.is_not(None),
            )
        )
        average, total = result.one()
        if not total:
            return {"average_rating": 0.0, "total_ratings": 0}
        return {"average_rating": round(float(average), 1), "total_ratings": total}

    async def services_available_for_feedback(self, patient_id: str) -> Sequence[Service]:
        """Completed services the patient attended and has not reviewed yet."""
        reviewed = (
            select(Feedback.id)
            .where(Feedback.participant_id == ServiceParticipant.id)
            .exists()
        )
        result = await self.session.execute(
            select(Service)
            .join(
                ServiceParticipant,
                and_(
                    ServiceParticipant.service_id == Service.id,
                    ServiceParticipant.patient_id == patient_id,
                ),
            )
            .where(Service.status == ServiceStatus.COMPLETED.value, ~reviewed)
            .order_by(Service.start_time.desc())
        )
        return result.scalars().unique().all()
