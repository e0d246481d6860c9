"""Tests for fitness notices and their numbering."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import delete

from clinic_api.core.errors import ConflictError, NotFoundError, ValidationError
from clinic_api.models.notice import NoticeSequence
from clinic_api.services.notices import (
    NoticeNumberGenerator,
    NoticeService,
    format_notice_number,
    parse_notice_number,
)
from clinic_api.services.scheduling import SchedulingService

JUNE = datetime(2025, 6, 10, 12, 0, tzinfo=timezone.utc)
JULY = datetime(2025, 7, 15, 10, 0, tzinfo=timezone.utc)


class TestNoticeNumberFormat:
    def test_format(self) -> None:
        assert format_notice_number(2025, 6, 1) == "NOTICE-202506-001"
        assert format_notice_number(2025, 12, 42) == "NOTICE-202512-042"

    def test_sequence_grows_past_three_digits(self) -> None:
        assert format_notice_number(2025, 1, 1000) == "NOTICE-202501-1000"

    def test_parse(self) -> None:
        assert parse_notice_number("NOTICE-202507-003") == (2025, 7, 3)

    def test_parse_free_form(self) -> None:
        assert parse_notice_number("EXT-1234") is None
        assert parse_notice_number("NOTICE-202513-001") is None


class TestNoticeNumberGenerator:
    async def test_sequential_within_month(self, async_session) -> None:
        generator = NoticeNumberGenerator(async_session)

        numbers = [await generator.generate(JUNE) for _ in range(3)]

        assert numbers == [
            "NOTICE-202506-001",
            "NOTICE-202506-002",
            "NOTICE-202506-003",
        ]

    async def test_each_month_starts_at_one(self, async_session) -> None:
        generator = NoticeNumberGenerator(async_session)
        await generator.generate(JUNE)
        await generator.generate(JUNE)

        assert await generator.generate(JULY) == "NOTICE-202507-001"

    async def test_peek_does_not_reserve(self, async_session) -> None:
        generator = NoticeNumberGenerator(async_session)

        assert await generator.peek(JUNE) == "NOTICE-202506-001"
        assert await generator.peek(JUNE) == "NOTICE-202506-001"
        assert await generator.generate(JUNE) == "NOTICE-202506-001"
        assert await generator.peek(JUNE) == "NOTICE-202506-002"


@pytest.fixture
async def completed_service(async_session, patient, book_service):
    scheduling = SchedulingService(async_session)
    service = await book_service(patient, hours_ahead=-3)
    return await scheduling.mark_completed(service.id)


def notice_fields(**overrides):
    values = {
        "reason_for_issuance": "Recovering from surgery",
        "fitness_status": "Unfit for work",
        "recommendations": "Rest for two weeks",
    }
    values.update(overrides)
    return values


class TestCreateNotice:
    async def test_number_follows_issue_month(self, async_session, completed_service) -> None:
        participant = completed_service.participants[0]

        notice = await NoticeService(async_session).create_notice(
            completed_service.id,
            participant.id,
            issue_date=JULY,
            **notice_fields(),
        )

        assert notice.unique_notice_number == "NOTICE-202507-001"
        assert notice.participant_id == participant.id
        assert notice.service_id == completed_service.id

    async def test_second_notice_in_month(self, async_session, completed_service) -> None:
        notices = NoticeService(async_session)
        participant = completed_service.participants[0]

        await notices.create_notice(
            completed_service.id, participant.id, issue_date=JULY, **notice_fields()
        )
        second = await notices.create_notice(
            completed_service.id, participant.id, issue_date=JULY, **notice_fields()
        )

        assert second.unique_notice_number == "NOTICE-202507-002"

    async def test_duplicate_supplied_number_conflicts(
        self, async_session, completed_service
    ) -> None:
        notices = NoticeService(async_session)
        participant = completed_service.participants[0]
        await notices.create_notice(
            completed_service.id,
            participant.id,
            issue_date=JULY,
            unique_notice_number="EXT-0001",
            **notice_fields(),
        )

        with pytest.raises(ConflictError):
            await notices.create_notice(
                completed_service.id,
                participant.id,
                issue_date=JULY,
                unique_notice_number="EXT-0001",
                **notice_fields(),
            )

    async def test_supplied_number_advances_counter(
        self, async_session, completed_service
    ) -> None:
        notices = NoticeService(async_session)
        participant = completed_service.participants[0]
        await notices.create_notice(
            completed_service.id, participant.id, issue_date=JULY, **notice_fields()
        )
        await notices.create_notice(
            completed_service.id,
            participant.id,
            issue_date=JULY,
            unique_notice_number="NOTICE-202507-005",
            **notice_fields(),
        )

        following = await notices.create_notice(
            completed_service.id, participant.id, issue_date=JULY, **notice_fields()
        )

        assert following.unique_notice_number == "NOTICE-202507-006"

    async def test_supplied_number_opens_the_month(
        self, async_session, completed_service
    ) -> None:
        notices = NoticeService(async_session)
        service_id = completed_service.id
        participant_id = completed_service.participants[0].id
        await notices.create_notice(
            service_id,
            participant_id,
            issue_date=JULY,
            unique_notice_number="NOTICE-202507-003",
            **notice_fields(),
        )

        numbers = []
        for _ in range(2):
            notice = await notices.create_notice(
                service_id, participant_id, issue_date=JULY, **notice_fields()
            )
            numbers.append(notice.unique_notice_number)

        assert numbers == ["NOTICE-202507-004", "NOTICE-202507-005"]

    async def test_missing_counter_seeds_from_highest_number(
        self, async_session, completed_service
    ) -> None:
        notices = NoticeService(async_session)
        service_id = completed_service.id
        participant_id = completed_service.participants[0].id
        await notices.create_notice(
            service_id,
            participant_id,
            issue_date=JULY,
            unique_notice_number="NOTICE-202507-007",
            **notice_fields(),
        )
        await async_session.execute(delete(NoticeSequence))
        await async_session.commit()

        assert await notices.numbers.peek(JULY) == "NOTICE-202507-008"
        following = await notices.create_notice(
            service_id, participant_id, issue_date=JULY, **notice_fields()
        )

        assert following.unique_notice_number == "NOTICE-202507-008"

    async def test_participant_must_belong_to_service(
        self, async_session, patient, second_patient, book_service, completed_service
    ) -> None:
        other = await book_service(second_patient)

        with pytest.raises(ValidationError, match="does not belong"):
            await NoticeService(async_session).create_notice(
                completed_service.id,
                other.participants[0].id,
                issue_date=JULY,
                **notice_fields(),
            )

    async def test_required_text(self, async_session, completed_service) -> None:
        with pytest.raises(ValidationError, match="fitness_status"):
            await NoticeService(async_session).create_notice(
                completed_service.id,
                completed_service.participants[0].id,
                **notice_fields(fitness_status="  "),
            )

    async def test_expiry_after_issue(self, async_session, completed_service) -> None:
        with pytest.raises(ValidationError, match="expiry_date"):
            await NoticeService(async_session).create_notice(
                completed_service.id,
                completed_service.participants[0].id,
                issue_date=JULY,
                expiry_date=JUNE,
                **notice_fields(),
            )

    async def test_unknown_service(self, async_session, completed_service) -> None:
        with pytest.raises(NotFoundError):
            await NoticeService(async_session).create_notice(
                "missing", completed_service.participants[0].id, **notice_fields()
            )


class TestMaintainNotices:
    async def test_update_keeps_number(self, async_session, completed_service) -> None:
        notices = NoticeService(async_session)
        notice = await notices.create_notice(
            completed_service.id,
            completed_service.participants[0].id,
            issue_date=JULY,
            **notice_fields(),
        )

        updated = await notices.update_notice(
            notice.id, {"fitness_status": "Fit for light duties"}
        )

        assert updated.fitness_status == "Fit for light duties"
        assert updated.unique_notice_number == "NOTICE-202507-001"

    async def test_number_cannot_be_edited(self, async_session, completed_service) -> None:
        notices = NoticeService(async_session)
        notice = await notices.create_notice(
            completed_service.id,
            completed_service.participants[0].id,
            issue_date=JULY,
            **notice_fields(),
        )

        with pytest.raises(ValidationError):
            await notices.update_notice(notice.id, {"unique_notice_number": "X-1"})

    async def test_delete(self, async_session, completed_service) -> None:
        notices = NoticeService(async_session)
        notice = await notices.create_notice(
            completed_service.id,
            completed_service.participants[0].id,
            issue_date=JULY,
            **notice_fields(),
        )

        await notices.delete_notice(notice.id)

        with pytest.raises(NotFoundError):
            await notices.get_notice(notice.id)

    async def test_lists(self, async_session, patient, doctor, completed_service) -> None:
        notices = NoticeService(async_session)
        notice = await notices.create_notice(
            completed_service.id,
            completed_service.participants[0].id,
            issue_date=JULY,
            **notice_fields(),
        )

        assert [n.id for n in await notices.list_for_patient(patient.id)] == [notice.id]
        assert [n.id for n in await notices.list_for_doctor(doctor.id)] == [notice.id]
        assert [s.id for s in await notices.services_for_notices(doctor.id)] == [
            completed_service.id
        ]

    async def test_patients_for_notices(
        self, async_session, patient, second_patient, third_patient
    ) -> None:
        third_patient.user.is_active = False
        await async_session.commit()

        patients = await NoticeService(async_session).patients_for_notices()

        assert [p.id for p in patients] == [patient.id, second_patient.id]
