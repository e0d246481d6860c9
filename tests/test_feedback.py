"""Tests for patient feedback."""

import pytest

from clinic_api.core.errors import ConflictError, ForbiddenError, ValidationError
from clinic_api.models.feedback import FeedbackTarget
from clinic_api.schemas.artifacts import FeedbackRead
from clinic_api.services.feedback import FeedbackService, parse_target
from clinic_api.services.scheduling import SchedulingService

FACILITIES = {
    "is_clean_facilities": True,
    "is_friendly_staff": True,
    "is_easy_accessibility": False,
    "is_smooth_admin_process": True,
}


@pytest.fixture
async def visit(async_session, patient, book_service):
    """A completed consultation attended by ``patient``."""
    service = await book_service(patient, hours_ahead=-4)
    return await SchedulingService(async_session).mark_completed(service.id)


class TestTargets:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("DOCTOR", FeedbackTarget.DOCTOR),
            ("doctor", FeedbackTarget.DOCTOR),
            ("SERVICE", FeedbackTarget.SERVICE),
            ("CLINIC", FeedbackTarget.SERVICE),
        ],
    )
    def test_parse(self, value: str, expected: FeedbackTarget) -> None:
        assert parse_target(value) == expected

    def test_unknown(self) -> None:
        with pytest.raises(ValidationError):
            parse_target("NURSE")


class TestCreateFeedback:
    async def test_doctor_feedback_drops_facility_flags(self, async_session, patient, visit) -> None:
        feedback = await FeedbackService(async_session).create_feedback(
            visit.id,
            visit.participants[0].id,
            "DOCTOR",
            rating_score=5,
            submitted_by_user_id=patient.user_id,
            **FACILITIES,
        )

        assert feedback.target_type == FeedbackTarget.DOCTOR.value
        assert feedback.rating_score == 5
        assert feedback.is_clean_facilities is None
        assert feedback.is_smooth_admin_process is None

    async def test_service_feedback_keeps_facility_flags(
        self, async_session, patient, visit
    ) -> None:
        feedback = await FeedbackService(async_session).create_feedback(
            visit.id,
            visit.participants[0].id,
            "SERVICE",
            rating_score=4,
            submitted_by_user_id=patient.user_id,
            **FACILITIES,
        )

        assert feedback.is_clean_facilities is True
        assert feedback.is_easy_accessibility is False

    async def test_one_feedback_per_target_per_visit(self, async_session, patient, visit) -> None:
        service = FeedbackService(async_session)
        participant_id = visit.participants[0].id
        await service.create_feedback(visit.id, participant_id, "DOCTOR", rating_score=4)

        with pytest.raises(ConflictError):
            await service.create_feedback(visit.id, participant_id, "DOCTOR", rating_score=1)

        # The other target is still open
        await service.create_feedback(visit.id, participant_id, "SERVICE", rating_score=3)

    async def test_rating_range(self, async_session, visit) -> None:
        with pytest.raises(ValidationError, match="between 0 and 5"):
            await FeedbackService(async_session).create_feedback(
                visit.id, visit.participants[0].id, "DOCTOR", rating_score=6
            )

    async def test_other_patient_forbidden(self, async_session, second_patient, visit) -> None:
        with pytest.raises(ForbiddenError):
            await FeedbackService(async_session).create_feedback(
                visit.id,
                visit.participants[0].id,
                "DOCTOR",
                rating_score=2,
                submitted_by_user_id=second_patient.user_id,
            )

    async def test_general_feedback_not_linked(self, async_session, patient) -> None:
        feedback = await FeedbackService(async_session).create_general_feedback(
            patient.id, rating_score=4, comments="Nice waiting room", **FACILITIES
        )

        assert feedback.link.kind == "unlinked"
        assert feedback.target_type == FeedbackTarget.SERVICE.value
        assert feedback.is_friendly_staff is True

    async def test_anonymous_feedback_hides_patient(self, async_session, patient, visit) -> None:
        feedback = await FeedbackService(async_session).create_feedback(
            visit.id,
            visit.participants[0].id,
            "SERVICE",
            comments="Long wait",
            is_anonymous=True,
        )

        shown = FeedbackRead.model_validate(feedback)

        assert feedback.patient_id == patient.id
        assert shown.patient_id is None
        assert shown.link.kind == "linked"


class TestAvailabilityAndRatings:
    async def test_reviewed_visit_no_longer_available(
        self, async_session, patient, visit, book_service
    ) -> None:
        feedback = FeedbackService(async_session)
        await book_service(patient)  # scheduled, not yet eligible

        assert [s.id for s in await feedback.services_available_for_feedback(patient.id)] == [
            visit.id
        ]

        await feedback.create_feedback(visit.id, visit.participants[0].id, "DOCTOR", rating_score=5)

        assert await feedback.services_available_for_feedback(patient.id) == []

    async def test_group_visit_available_per_participant(
        self, async_session, patient, second_patient, book_service
    ) -> None:
        service = await book_service(patient, second_patient, hours_ahead=-4)
        visit = await SchedulingService(async_session).mark_completed(service.id)
        feedback = FeedbackService(async_session)

        await feedback.create_feedback(
            visit.id, visit.participant_for(patient.id).id, "SERVICE", rating_score=4
        )

        assert await feedback.services_available_for_feedback(patient.id) == []
        assert [
            s.id for s in await feedback.services_available_for_feedback(second_patient.id)
        ] == [visit.id]

    async def test_doctor_average(
        self, async_session, doctor, patient, second_patient, book_service
    ) -> None:
        scheduling = SchedulingService(async_session)
        feedback = FeedbackService(async_session)
        service = await book_service(patient, second_patient, hours_ahead=-4)
        visit = await scheduling.mark_completed(service.id)

        await feedback.create_feedback(
            visit.id, visit.participant_for(patient.id).id, "DOCTOR", rating_score=5
        )
        await feedback.create_feedback(
            visit.id, visit.participant_for(second_patient.id).id, "DOCTOR", rating_score=4
        )
        # Clinic feedback does not count towards the doctor
        await feedback.create_feedback(
            visit.id, visit.participant_for(patient.id).id, "SERVICE", rating_score=1
        )

        rating = await feedback.doctor_average_rating(doctor.id)

        assert rating == {"average_rating": 4.5, "total_ratings": 2}

    async def test_doctor_without_ratings(self, async_session, doctor) -> None:
        rating = await FeedbackService(async_session).doctor_average_rating(doctor.id)

        assert rating == {"average_rating": 0.0, "total_ratings": 0}


class TestMaintainFeedback:
    async def test_update_ignores_facility_flags_on_doctor_feedback(
        self, async_session, visit
    ) -> None:
        service = FeedbackService(async_session)
        feedback = await service.create_feedback(
            visit.id, visit.participants[0].id, "DOCTOR", rating_score=3
        )

        updated = await service.update_feedback(
            feedback.id, {"rating_score": 4, "is_clean_facilities": True}
        )

        assert updated.rating_score == 4
        assert updated.is_clean_facilities is None

    async def test_update_rejects_unknown_fields(self, async_session, visit) -> None:
        service = FeedbackService(async_session)
        feedback = await service.create_feedback(
            visit.id, visit.participants[0].id, "DOCTOR", rating_score=3
        )

        with pytest.raises(ValidationError):
            await service.update_feedback(feedback.id, {"target_type": "SERVICE"})
