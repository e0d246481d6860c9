"""Request intake: patients ask for an appointment, staff decide.

A request moves through a guarded state machine::

    pending --approve--> approved --mark_scheduled--> scheduled
    pending --reject---> rejected

Every other move raises ``InvalidTransitionError``.
"""

import logging
from datetime import date, datetime
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_api.core.errors import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from clinic_api.core.logging import audit_logger
from clinic_api.models.scheduling import Service
from clinic_api.models.service_request import (
    PreferredTime,
    ServiceRequest,
    ServiceRequestStatus,
    ServiceType,
)
from clinic_api.services.directory import DirectoryService
from clinic_api.services.policy import Principal
from clinic_api.utils.time import parse_datetime

logger = logging.getLogger(__name__)

MIN_REASON_LENGTH = 10
MAX_PREFERRED_DATES = 3
DEFAULT_REJECTION_NOTE = "Request rejected by staff"

REQUEST_TRANSITIONS: dict[ServiceRequestStatus, frozenset[ServiceRequestStatus]] = {
    ServiceRequestStatus.PENDING: frozenset(
        {ServiceRequestStatus.APPROVED, ServiceRequestStatus.REJECTED}
    ),
    ServiceRequestStatus.APPROVED: frozenset({ServiceRequestStatus.SCHEDULED}),
    ServiceRequestStatus.REJECTED: frozenset(),
    ServiceRequestStatus.SCHEDULED: frozenset(),
}


def can_transition(current: str, target: ServiceRequestStatus) -> bool:
    """Check the request state machine for a single move."""
    return target in REQUEST_TRANSITIONS.get(ServiceRequestStatus(current), frozenset())


def _parse_preferred_date(value: str | date | datetime | None, position: int) -> datetime:
    try:
        return parse_datetime(value)
    except ValueError:
        raise ValidationError(f"preferred_date_{position} is not a valid date") from None


class ServiceRequestService:
    """Create service requests and record staff decisions on them."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.directory = DirectoryService(session)

    async def create_request(
        self,
        patient_id: str,
        service_type_id: str,
        preferred_dates: Sequence[str | date | datetime | None],
        preferred_time: str,
        reason: str,
        urgent: bool = False,
        preferred_doctor_id: str | None = None,
        additional_notes: str | None = None,
        actor_id: str | None = None,
    ) -> ServiceRequest:
        """Store a new pending request.

        Args:
            patient_id: Patient asking to be seen
            service_type_id: Requested service type
            preferred_dates: One to three preferred dates, first one required
            preferred_time: morning, afternoon or evening
            reason: Why the patient wants to be seen (at least 10 characters)
            urgent: Whether the patient flagged the request as urgent
            preferred_doctor_id: Optional doctor the patient would like to see
            additional_notes: Optional free text
            actor_id: User creating the request, for the audit trail

        Raises:
            ValidationError: On a short reason, unknown preferred time or bad date
            NotFoundError: If the patient, service type or doctor does not exist
        """
        if not reason or len(reason.strip()) < MIN_REASON_LENGTH:
            raise ValidationError(
                f"Reason must be at least {MIN_REASON_LENGTH} characters"
            )

        allowed_times = {t.value for t in PreferredTime}
        if preferred_time not in allowed_times:
            raise ValidationError(
                f"preferred_time must be one of: {', '.join(sorted(allowed_times))}"
            )

        dates = list(preferred_dates or [])
        if not dates or dates[0] in (None, ""):
            raise ValidationError("preferred_date_1 is required")
        if len(dates) > MAX_PREFERRED_DATES:
            raise ValidationError(
                f"At most {MAX_PREFERRED_DATES} preferred dates may be given"
            )
        parsed = [
            _parse_preferred_date(value, position) if value not in (None, "") else None
            for position, value in enumerate(dates, start=1)
        ]
        parsed += [None] * (MAX_PREFERRED_DATES - len(parsed))

        await self.directory.require_patient(patient_id)
        service_type = await self.session.get(ServiceType, service_type_id)
        if not service_type:
            raise NotFoundError("Service type not found")
        if preferred_doctor_id:
            await self.directory.require_doctor(preferred_doctor_id)

        request = ServiceRequest(
            patient_id=patient_id,
            service_type_id=service_type_id,
            preferred_doctor_id=preferred_doctor_id,
            preferred_date_1=parsed[0],
            preferred_date_2=parsed[1],
            preferred_date_3=parsed[2],
            preferred_time=preferred_time,
            reason=reason.strip(),
            urgent=urgent,
            additional_notes=additional_notes,
            status=ServiceRequestStatus.PENDING.value,
        )
        self.session.add(request)
        await self.session.commit()

        audit_logger.log(
            action="service_request.created",
            actor_id=actor_id,
            entity_type="service_request",
            entity_id=request.id,
            metadata={"patient_id": patient_id, "urgent": urgent},
        )
        return await self.get_request(request.id)

    async def get_request(self, request_id: str) -> ServiceRequest:
        result = await self.session.execute(
            select(ServiceRequest)
            .where(ServiceRequest.id == request_id)
            .execution_options(populate_existing=True)
        )
        request = result.scalar_one_or_none()
        if not request:
            raise NotFoundError("Service request not found")
        return request

    async def get_request_for(self, request_id: str, principal: Principal) -> ServiceRequest:
        """Fetch a request, restricting patients to their own."""
        request = await self.get_request(request_id)
        if principal.is_patient_only:
            patient = await self.directory.require_patient_for_user(principal.user_id)
            if request.patient_id != patient.id:
                raise ForbiddenError("You can only view your own service requests")
        return request

    async def list_for_patient(self, patient_id: str) -> Sequence[ServiceRequest]:
        result = await self.session.execute(
            select(ServiceRequest)
            .where(ServiceRequest.patient_id == patient_id)
            .order_by(ServiceRequest.created_at.desc())
        )
        return result.scalars().all()

    async def list_all(self, status: ServiceRequestStatus | None = None) -> Sequence[ServiceRequest]:
        """All requests, urgent first, newest first within each group."""
        query = select(ServiceRequest).order_by(
            ServiceRequest.urgent.desc(),
            ServiceRequest.created_at.desc(),
        )
        if status:
            query = query.where(ServiceRequest.status == status.value)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def approve(self, request_id: str, actor_id: str | None = None) -> ServiceRequest:
        request = await self.get_request(request_id)
        self._transition(request, ServiceRequestStatus.APPROVED)
        await self.session.commit()

        audit_logger.log(
            action="service_request.approved",
            actor_id=actor_id,
            entity_type="service_request",
            entity_id=request.id,
        )
        return request

    async def reject(
        self,
        request_id: str,
        reason: str | None = None,
        actor_id: str | None = None,
    ) -> ServiceRequest:
        """Reject a pending request.

        The rejection reason replaces ``additional_notes``.
        """
        request = await self.get_request(request_id)
        self._transition(request, ServiceRequestStatus.REJECTED)
        request.additional_notes = reason or DEFAULT_REJECTION_NOTE
        await self.session.commit()

        audit_logger.log(
            action="service_request.rejected",
            actor_id=actor_id,
            entity_type="service_request",
            entity_id=request.id,
            metadata={"reason": request.additional_notes},
        )
        return request

    async def mark_scheduled(
        self,
        request_id: str,
        service_id: str,
        actor_id: str | None = None,
    ) -> ServiceRequest:
        """Record that an approved request has been booked as ``service_id``.

        Raises:
            NotFoundError: If the request or service does not exist
            ValidationError: If the request's patient does not attend the service
            InvalidTransitionError: If the request is not approved
        """
        if not service_id:
            raise ValidationError("service_id is required")

        request = await self.get_request(request_id)
        self._ensure_transition(request, ServiceRequestStatus.SCHEDULED)

        result = await self.session.execute(
            select(Service).where(Service.id == service_id)
        )
        service = result.scalar_one_or_none()
        if not service:
            raise NotFoundError("Service not found")
        if service.participant_for(request.patient_id) is None:
            raise ValidationError(
                "The service does not include the patient who made this request"
            )

        request.status = ServiceRequestStatus.SCHEDULED.value
        request.service_id = service.id
        await self.session.commit()

        audit_logger.log(
            action="service_request.scheduled",
            actor_id=actor_id,
            entity_type="service_request",
            entity_id=request.id,
            metadata={"service_id": service.id},
        )
        return request

    def _ensure_transition(self, request: ServiceRequest, target: ServiceRequestStatus) -> None:
        if not can_transition(request.status, target):
            raise InvalidTransitionError("service request", request.status, target.value)

    def _transition(self, request: ServiceRequest, target: ServiceRequestStatus) -> None:
        self._ensure_transition(request, target)
        request.status = target.value
