"""Encounter scheduling: services, their participants and status changes.

A service is bound to one doctor and one or more patients (one
``ServiceParticipant`` each). Status moves Scheduled -> Completed or
Scheduled -> Cancelled and never leaves either terminal state.
"""

import logging
from datetime import date, datetime
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_api.booking.policy import (
    DEFAULT_PATIENT_CANCEL_REASON,
    DEFAULT_STAFF_CANCEL_REASON,
    can_patient_cancel,
)
from clinic_api.core.errors import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from clinic_api.core.logging import audit_logger
from clinic_api.db.transaction import commit_or_conflict
from clinic_api.models.note import Note
from clinic_api.models.scheduling import (
    AttendanceStatus,
    Service,
    ServiceKind,
    ServiceParticipant,
    ServiceStatus,
)
from clinic_api.services.directory import DirectoryService
from clinic_api.services.policy import Principal
from clinic_api.utils.time import parse_datetime

logger = logging.getLogger(__name__)

SERVICE_TRANSITIONS: dict[ServiceStatus, frozenset[ServiceStatus]] = {
    ServiceStatus.SCHEDULED: frozenset({ServiceStatus.COMPLETED, ServiceStatus.CANCELLED}),
    ServiceStatus.COMPLETED: frozenset(),
    ServiceStatus.CANCELLED: frozenset(),
}


def parse_service_kind(value: str | None) -> ServiceKind:
    """Accept ``Consultation``, ``Group_Consultation`` or ``Group Consultation``."""
    if not value:
        raise ValidationError("service_type is required")
    normalized = value.strip().replace(" ", "_")
    for kind in ServiceKind:
        if kind.value.lower() == normalized.lower():
            return kind
    raise ValidationError(
        f"service_type must be one of: {', '.join(k.value for k in ServiceKind)}"
    )


def _unique(ids: Sequence[str]) -> list[str]:
    seen: dict[str, None] = {}
    for value in ids:
        if value:
            seen.setdefault(value, None)
    return list(seen)


class SchedulingService:
    """Create encounters and move them through their lifecycle."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.directory = DirectoryService(session)

    # =========================================================================
    # Creation
    # =========================================================================

    async def create_service(
        self,
        service_type: str | None,
        doctor_id: str | None,
        start_time: str | datetime | None,
        end_time: str | datetime | None,
        patient_id: str | None = None,
        patient_ids: Sequence[str] | None = None,
        notes: str | None = None,
        actor_id: str | None = None,
    ) -> Service:
        """Create a service with one participant per patient.

        A Consultation takes exactly one patient, a Group_Consultation one or
        more. Repeated patient ids collapse into one participant. If ``notes``
        is given a booking note is written by the doctor against the service,
        with no participant link. Everything is written in one commit.

        Raises:
            ValidationError: On missing fields, bad times or patient list
            NotFoundError: If the doctor or a patient does not exist
        """
        kind = parse_service_kind(service_type)
        if not doctor_id:
            raise ValidationError("doctor_id is required")
        if start_time is None or end_time is None:
            raise ValidationError("start_time and end_time are required")
        try:
            start = parse_datetime(start_time)
            end = parse_datetime(end_time)
        except ValueError as exc:
            raise ValidationError(str(exc)) from None
        if end <= start:
            raise ValidationError("end_time must be after start_time")

        if patient_id:
            patients = [patient_id]
        else:
            patients = _unique(patient_ids or [])
        if not patients:
            raise ValidationError("At least one patient is required")
        if kind == ServiceKind.CONSULTATION and len(patients) != 1:
            raise ValidationError("A Consultation must have exactly one patient")

        doctor = await self.directory.require_doctor(doctor_id)
        for pid in patients:
            await self.directory.require_patient(pid)

        service = Service(
            service_type=kind.value,
            employee_id=doctor.id,
            start_time=start,
            end_time=end,
            status=ServiceStatus.SCHEDULED.value,
        )
        service.participants = [
            ServiceParticipant(
                patient_id=pid,
                attendance_status=AttendanceStatus.EXPECTED.value,
            )
            for pid in patients
        ]
        self.session.add(service)
        await self.session.flush()

        if notes:
            self.session.add(
                Note(
                    doctor_id=doctor.id,
                    patient_id=service.participants[0].patient_id,
                    service_id=service.id,
                    content=notes,
                )
            )

        await commit_or_conflict(self.session, "Patient listed twice for the same service")

        audit_logger.log(
            action="service.created",
            actor_id=actor_id,
            entity_type="service",
            entity_id=service.id,
            metadata={"kind": kind.value, "participants": len(patients)},
        )
        logger.info(
            f"Created {kind.value} {service.id} with {len(patients)} participant(s)"
        )
        return await self.get_service(service.id)

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_service(self, service_id: str) -> Service:
        result = await self.session.execute(
            select(Service)
            .where(Service.id == service_id)
            .execution_options(populate_existing=True)
        )
        service = result.scalar_one_or_none()
        if not service:
            raise NotFoundError("Service not found")
        return service

    async def get_service_for(self, service_id: str, principal: Principal) -> Service:
        """Fetch a service, restricting patients to the ones they attend."""
        service = await self.get_service(service_id)
        if principal.is_patient_only:
            patient = await self.directory.require_patient_for_user(principal.user_id)
            if service.participant_for(patient.id) is None:
                raise ForbiddenError("You are not a participant of this service")
        return service

    async def list_services(
        self,
        status: ServiceStatus | None = None,
        doctor_id: str | None = None,
        start: datetime | date | None = None,
        end: datetime | date | None = None,
    ) -> Sequence[Service]:
        """List services ordered by start time, optionally filtered.

        ``start``/``end`` bound ``start_time`` as a half-open range.
        """
        query = select(Service).order_by(Service.start_time)
        if status:
            query = query.where(Service.status == status.value)
        if doctor_id:
            query = query.where(Service.employee_id == doctor_id)
        if start is not None:
            query = query.where(Service.start_time >= parse_datetime(start))
        if end is not None:
            query = query.where(Service.start_time < parse_datetime(end))
        result = await self.session.execute(query)
        return result.scalars().unique().all()

    async def list_for_doctor(self, doctor_id: str) -> Sequence[Service]:
        return await self.list_services(doctor_id=doctor_id)

    async def list_for_patient(
        self,
        patient_id: str,
        status: ServiceStatus | None = None,
    ) -> Sequence[Service]:
        """Appointment history for a patient, most recent first."""
        query = (
            select(Service)
            .join(ServiceParticipant, ServiceParticipant.service_id == Service.id)
            .where(ServiceParticipant.patient_id == patient_id)
            .order_by(Service.start_time.desc())
        )
        if status:
            query = query.where(Service.status == status.value)
        result = await self.session.execute(query)
        return result.scalars().unique().all()

    async def list_by_date_range(
        self,
        start: datetime | date,
        end: datetime | date,
        doctor_id: str | None = None,
    ) -> Sequence[Service]:
        if parse_datetime(end) <= parse_datetime(start):
            raise ValidationError("end must be after start")
        return await self.list_services(doctor_id=doctor_id, start=start, end=end)

    # =========================================================================
    # Status changes
    # =========================================================================

    async def cancel(
        self,
        service_id: str,
        reason: str | None = None,
        actor_id: str | None = None,
    ) -> Service:
        """Staff cancellation. Allowed at any time while the service is Scheduled."""
        service = await self.get_service(service_id)
        self._ensure_transition(service, ServiceStatus.CANCELLED)

        service.status = ServiceStatus.CANCELLED.value
        service.cancel_reason = reason or DEFAULT_STAFF_CANCEL_REASON
        await self.session.commit()

        audit_logger.log(
            action="service.cancelled",
            actor_id=actor_id,
            entity_type="service",
            entity_id=service.id,
            metadata={"reason": service.cancel_reason, "by": "staff"},
        )
        return service

    async def patient_cancel(
        self,
        user_id: str,
        service_id: str,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> Service:
        """Cancellation by an attending patient.

        Raises:
            ForbiddenError: If the user is not a patient, does not attend, or
                the service is no longer Scheduled
            NotFoundError: If the service does not exist
            ValidationError: If the service has started or starts within the
                self-service window
        """
        patient = await self.directory.require_patient_for_user(user_id)
        service = await self.get_service(service_id)

        if service.participant_for(patient.id) is None:
            raise ForbiddenError("You are not a participant of this service")
        if service.status != ServiceStatus.SCHEDULED.value:
            raise ForbiddenError(
                f"Only scheduled appointments can be cancelled (status: {service.status})"
            )

        decision = can_patient_cancel(service.start_time, now=now)
        if not decision.allowed:
            logger.info(
                f"Patient cancel refused for service {service.id}: "
                f"{decision.hours_until_start:.1f}h until start"
            )
            raise ValidationError(decision.message)

        service.status = ServiceStatus.CANCELLED.value
        service.cancel_reason = reason or DEFAULT_PATIENT_CANCEL_REASON
        await self.session.commit()

        audit_logger.log(
            action="service.cancelled",
            actor_id=user_id,
            entity_type="service",
            entity_id=service.id,
            metadata={"reason": service.cancel_reason, "by": "patient"},
        )
        return service

    async def mark_completed(self, service_id: str, actor_id: str | None = None) -> Service:
        service = await self.get_service(service_id)
        self._ensure_transition(service, ServiceStatus.COMPLETED)

        service.status = ServiceStatus.COMPLETED.value
        await self.session.commit()

        audit_logger.log(
            action="service.completed",
            actor_id=actor_id,
            entity_type="service",
            entity_id=service.id,
        )
        return service

    async def update_attendance(
        self,
        service_id: str,
        patient_id: str,
        attendance_status: str,
        actor_id: str | None = None,
    ) -> ServiceParticipant:
        """Record whether a participant attended."""
        try:
            status = AttendanceStatus(attendance_status)
        except ValueError:
            raise ValidationError(
                f"attendance_status must be one of: "
                f"{', '.join(s.value for s in AttendanceStatus)}"
            ) from None

        service = await self.get_service(service_id)
        participant = service.participant_for(patient_id)
        if participant is None:
            raise NotFoundError("Patient is not a participant of this service")

        participant.attendance_status = status.value
        await self.session.commit()

        audit_logger.log(
            action="service.attendance_updated",
            actor_id=actor_id,
            entity_type="service_participant",
            entity_id=participant.id,
            metadata={"attendance_status": status.value},
        )
        return participant

    def _ensure_transition(self, service: Service, target: ServiceStatus) -> None:
        if target not in SERVICE_TRANSITIONS[ServiceStatus(service.status)]:
            raise InvalidTransitionError("service", service.status, target.value)
