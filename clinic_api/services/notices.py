"""Fitness notices and their monthly numbering."""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_api.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from clinic_api.core.logging import audit_logger
from clinic_api.db.transaction import commit_or_conflict
from clinic_api.models.notice import Notice, NoticeSequence
from clinic_api.models.patient import Patient
from clinic_api.models.scheduling import Service, ServiceParticipant, ServiceStatus
from clinic_api.services.directory import DirectoryService
from clinic_api.services.policy import Principal
from clinic_api.utils.time import month_bounds, parse_datetime, utc_now

logger = logging.getLogger(__name__)

NOTICE_NUMBER_PATTERN = re.compile(r"^NOTICE-(\d{4})(\d{2})-(\d{3,})$")


def format_notice_number(year: int, month: int, sequence: int) -> str:
    """Format ``NOTICE-YYYYMM-NNN``.

    >>> format_notice_number(2025, 6, 1)
    'NOTICE-202506-001'
    """
    return f"NOTICE-{year}{month:02d}-{sequence:03d}"


def parse_notice_number(number: str) -> tuple[int, int, int] | None:
    """Split a notice number into (year, month, sequence), or None if free-form."""
    match = NOTICE_NUMBER_PATTERN.match(number)
    if not match:
        return None
    year, month, sequence = (int(part) for part in match.groups())
    if not 1 <= month <= 12:
        return None
    return year, month, sequence


class NoticeNumberGenerator:
    """Hand out notice numbers from a per-month counter row.

    The counter row is read ``FOR UPDATE`` so concurrent reservations in the
    same month serialise on it. A month without a counter starts from the
    highest sequence already issued in that month, or the row count when
    that is larger.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _counter(self, year: int, month: int, lock: bool) -> NoticeSequence | None:
        query = select(NoticeSequence).where(
            NoticeSequence.year == year,
            NoticeSequence.month == month,
        )
        if lock:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def _issued_in_month(self, year: int, month: int) -> int:
        """Last sequence already used in a month, judged from stored notices."""
        start, end = month_bounds(datetime(year, month, 1, tzinfo=timezone.utc))
        result = await self.session.execute(
            select(func.count(Notice.id)).where(
                Notice.issue_date >= start,
                Notice.issue_date < end,
            )
        )
        highest = result.scalar_one()

        result = await self.session.execute(
            select(Notice.unique_notice_number).where(
                Notice.unique_notice_number.like(f"NOTICE-{year}{month:02d}-%")
            )
        )
        for number in result.scalars():
            parsed = parse_notice_number(number)
            if parsed and parsed[:2] == (year, month):
                highest = max(highest, parsed[2])
        return highest

    async def _locked_counter(self, year: int, month: int) -> NoticeSequence:
        """Counter row for a month, created on first use."""
        counter = await self._counter(year, month, lock=True)
        if counter is not None:
            return counter

        counter = NoticeSequence(
            year=year,
            month=month,
            last_value=await self._issued_in_month(year, month),
        )
        self.session.add(counter)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError(
                "Notice numbering is busy for this month, please retry"
            ) from exc
        return counter

    async def reserve(self, now: datetime | None = None) -> str:
        """Take the next number for the month of ``now`` without committing."""
        start, _ = month_bounds(now or utc_now())
        counter = await self._locked_counter(start.year, start.month)
        counter.last_value += 1
        return format_notice_number(counter.year, counter.month, counter.last_value)

    async def generate(self, now: datetime | None = None) -> str:
        """Reserve and commit the next number for the month of ``now``."""
        number = await self.reserve(now)
        await self.session.commit()
        return number

    async def peek(self, now: datetime | None = None) -> str:
        """Next number that would be handed out, without reserving it."""
        start, _ = month_bounds(now or utc_now())
        counter = await self._counter(start.year, start.month, lock=False)
        if counter is not None:
            last = counter.last_value
        else:
            last = await self._issued_in_month(start.year, start.month)
        return format_notice_number(start.year, start.month, last + 1)

    async def observe(self, number: str) -> None:
        """Move the counter past a number supplied by a caller."""
        parsed = parse_notice_number(number)
        if parsed is None:
            return
        year, month, sequence = parsed
        counter = await self._locked_counter(year, month)
        if counter.last_value < sequence:
            counter.last_value = sequence


class NoticeService:
    """Issue and maintain fitness notices."""

    editable_fields = (
        "expiry_date",
        "reason_for_issuance",
        "fitness_status",
        "recommendations",
        "attachment_path",
    )

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.directory = DirectoryService(session)
        self.numbers = NoticeNumberGenerator(session)

    async def create_notice(
        self,
        service_id: str,
        participant_id: str,
        reason_for_issuance: str,
        fitness_status: str,
        recommendations: str,
        issue_date: str | datetime | None = None,
        expiry_date: str | datetime | None = None,
        attachment_path: str | None = None,
        unique_notice_number: str | None = None,
        actor_id: str | None = None,
    ) -> Notice:
        """Issue a notice to one participant of a service.

        The number is taken from the counter for the month of ``issue_date``
        unless the caller supplies one. Notices are expected on Completed
        services; other statuses are allowed but logged.

        Raises:
            ValidationError: On missing text fields, bad dates, or a
                participant that belongs to another service
            NotFoundError: If the service or participant does not exist
            ConflictError: If the notice number is already taken
        """
        for name, value in (
            ("reason_for_issuance", reason_for_issuance),
            ("fitness_status", fitness_status),
            ("recommendations", recommendations),
        ):
            if not value or not str(value).strip():
                raise ValidationError(f"{name} is required")

        try:
            issued = parse_datetime(issue_date) if issue_date else utc_now()
            expires = parse_datetime(expiry_date) if expiry_date else None
        except ValueError as exc:
            raise ValidationError(str(exc)) from None
        if expires is not None and expires <= issued:
            raise ValidationError("expiry_date must be after issue_date")

        service = await self.session.get(Service, service_id)
        if not service:
            raise NotFoundError("Service not found")
        participant = await self.session.get(ServiceParticipant, participant_id)
        if not participant:
            raise NotFoundError("Participant not found")
        if participant.service_id != service.id:
            raise ValidationError("Participant does not belong to this service")
        if service.status != ServiceStatus.COMPLETED.value:
            logger.warning(
                f"Issuing notice for service {service.id} with status {service.status}"
            )

        if unique_notice_number:
            number = unique_notice_number.strip()
            await self.numbers.observe(number)
        else:
            number = await self.numbers.reserve(issued)

        notice = Notice(
            service_id=service.id,
            participant_id=participant.id,
            issue_date=issued,
            unique_notice_number=number,
            expiry_date=expires,
            reason_for_issuance=reason_for_issuance,
            fitness_status=fitness_status,
            recommendations=recommendations,
            attachment_path=attachment_path,
        )
        self.session.add(notice)
        await commit_or_conflict(self.session, f"Notice number {number} already exists")

        audit_logger.log(
            action="notice.created",
            actor_id=actor_id,
            entity_type="notice",
            entity_id=notice.id,
            metadata={"number": number, "participant_id": participant.id},
        )
        return await self.get_notice(notice.id)

    async def get_notice(self, notice_id: str) -> Notice:
        result = await self.session.execute(
            select(Notice)
            .where(Notice.id == notice_id)
            .execution_options(populate_existing=True)
        )
        notice = result.scalar_one_or_none()
        if not notice:
            raise NotFoundError("Notice not found")
        return notice

    async def get_notice_for(self, notice_id: str, principal: Principal) -> Notice:
        """Fetch a notice, restricting patients to their own."""
        notice = await self.get_notice(notice_id)
        if principal.is_patient_only:
            patient = await self.directory.require_patient_for_user(principal.user_id)
            if notice.participant.patient_id != patient.id:
                raise ForbiddenError("You can only view your own notices")
        return notice

    async def update_notice(
        self,
        notice_id: str,
        changes: dict[str, Any],
        actor_id: str | None = None,
    ) -> Notice:
        """Apply edits to a notice. The number and links never change."""
        notice = await self.get_notice(notice_id)
        unknown = set(changes) - set(self.editable_fields)
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        for field, value in changes.items():
            if field == "expiry_date" and value is not None:
                try:
                    value = parse_datetime(value)
                except ValueError as exc:
                    raise ValidationError(str(exc)) from None
                if value <= parse_datetime(notice.issue_date):
                    raise ValidationError("expiry_date must be after issue_date")
            elif field in ("reason_for_issuance", "fitness_status", "recommendations"):
                if not value or not str(value).strip():
                    raise ValidationError(f"{field} cannot be empty")
            setattr(notice, field, value)

        await self.session.commit()

        audit_logger.log(
            action="notice.updated",
            actor_id=actor_id,
            entity_type="notice",
            entity_id=notice.id,
            metadata={"fields": sorted(changes)},
        )
        return notice

    async def delete_notice(self, notice_id: str, actor_id: str | None = None) -> None:
        notice = await self.get_notice(notice_id)
        await self.session.delete(notice)
        await self.session.commit()

        audit_logger.log(
            action="notice.deleted",
            actor_id=actor_id,
            entity_type="notice",
            entity_id=notice_id,
        )

    async def list_notices(self) -> Sequence[Notice]:
        result = await self.session.execute(
            select(Notice).order_by(Notice.issue_date.desc())
        )
        return result.scalars().unique().all()

    async def list_for_patient(self, patient_id: str) -> Sequence[Notice]:
        result = await self.session.execute(
            select(Notice)
            .join(ServiceParticipant, ServiceParticipant.id == Notice.participant_id)
            .where(ServiceParticipant.patient_id == patient_id)
            .order_by(Notice.issue_date.desc())
        )
        return result.scalars().unique().all()

    async def list_for_doctor(self, doctor_id: str) -> Sequence[Notice]:
        result = await self.session.execute(
            select(Notice)
            .join(Service, Service.id == Notice.service_id)
            .where(Service.employee_id == doctor_id)
            .order_by(Notice.issue_date.desc())
        )
        return result.scalars().unique().all()

    async def services_for_notices(self, doctor_id: str | None = None) -> Sequence[Service]:
        """Completed services a notice can be issued against."""
        query = (
            select(Service)
            .where(Service.status == ServiceStatus.COMPLETED.value)
            .order_by(Service.start_time.desc())
        )
        if doctor_id:
            query = query.where(Service.employee_id == doctor_id)
        result = await self.session.execute(query)
        return result.scalars().unique().all()

    async def patients_for_notices(self) -> Sequence[Patient]:
        return await self.directory.list_active_patients()
