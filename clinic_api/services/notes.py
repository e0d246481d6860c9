"""Clinician notes about a patient, optionally tied to an encounter."""

import logging
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_api.core.errors import ForbiddenError, NotFoundError, ValidationError
from clinic_api.core.logging import audit_logger
from clinic_api.models.linkage import UNLINKED, Link, Linked, link_columns
from clinic_api.models.note import Note
from clinic_api.models.patient import Patient
from clinic_api.models.scheduling import Service, ServiceParticipant, ServiceStatus
from clinic_api.services.directory import DirectoryService

logger = logging.getLogger(__name__)


class NoteService:
    """Write and read doctors' notes."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.directory = DirectoryService(session)

    async def _resolve_link(self, service_id: str | None, patient_id: str) -> Link:
        if not service_id:
            return UNLINKED
        result = await self.session.execute(
            select(ServiceParticipant.id).where(
                ServiceParticipant.service_id == service_id,
                ServiceParticipant.patient_id == patient_id,
            )
        )
        participant_id = result.scalar_one_or_none()
        if participant_id is None:
            logger.warning(
                f"Patient {patient_id} is not a participant of service {service_id}; "
                "creating an unlinked note"
            )
            return UNLINKED
        return Linked(service_id=service_id, participant_id=participant_id)

    async def create_note(
        self,
        doctor_user_id: str,
        patient_id: str,
        content: str,
        service_id: str | None = None,
    ) -> Note:
        """Create a note written by the doctor behind ``doctor_user_id``.

        When ``service_id`` names a service the patient attends, the note is
        linked to that participant; otherwise it is stored unlinked.

        Raises:
            ForbiddenError: If the user is not a doctor
            NotFoundError: If the patient does not exist
            ValidationError: If the content is empty
        """
        doctor = await self.directory.require_doctor_for_user(doctor_user_id)
        if not content or not content.strip():
            raise ValidationError("Note content is required")
        await self.directory.require_patient(patient_id)

        link = await self._resolve_link(service_id, patient_id)
        linked_service_id, participant_id = link_columns(link)

        note = Note(
            doctor_id=doctor.id,
            patient_id=patient_id,
            service_id=linked_service_id,
            participant_id=participant_id,
            content=content.strip(),
        )
        self.session.add(note)
        await self.session.commit()

        audit_logger.log(
            action="note.created",
            actor_id=doctor_user_id,
            entity_type="note",
            entity_id=note.id,
            metadata={"patient_id": patient_id, "link": link.kind},
        )
        return await self.get_note(note.id)

    async def get_note(self, note_id: str) -> Note:
        result = await self.session.execute(
            select(Note)
            .where(Note.id == note_id)
            .execution_options(populate_existing=True)
        )
        note = result.scalar_one_or_none()
        if not note:
            raise NotFoundError("Note not found")
        return note

    async def update_note(self, note_id: str, doctor_user_id: str, content: str) -> Note:
        """Replace a note's content. Only the authoring doctor may edit it."""
        doctor = await self.directory.require_doctor_for_user(doctor_user_id)
        note = await self.get_note(note_id)
        if note.doctor_id != doctor.id:
            raise ForbiddenError("Only the authoring doctor can edit this note")
        if not content or not content.strip():
            raise ValidationError("Note content is required")

        note.content = content.strip()
        await self.session.commit()

        audit_logger.log(
            action="note.updated",
            actor_id=doctor_user_id,
            entity_type="note",
            entity_id=note.id,
        )
        return note

    async def delete_note(self, note_id: str, doctor_user_id: str) -> None:
        doctor = await self.directory.require_doctor_for_user(doctor_user_id)
        note = await self.get_note(note_id)
        if note.doctor_id != doctor.id:
            raise ForbiddenError("Only the authoring doctor can delete this note")

        await self.session.delete(note)
        await self.session.commit()

        audit_logger.log(
            action="note.deleted",
            actor_id=doctor_user_id,
            entity_type="note",
            entity_id=note_id,
        )

    async def list_for_patient(self, patient_id: str) -> Sequence[Note]:
        result = await self.session.execute(
            select(Note)
            .where(Note.patient_id == patient_id)
            .order_by(Note.created_at.desc())
        )
        return result.scalars().all()

    async def list_for_doctor(self, doctor_id: str) -> Sequence[Note]:
        """Notes the doctor has written, newest first."""
        result = await self.session.execute(
            select(Note)
            .where(Note.doctor_id == doctor_id)
            .order_by(Note.created_at.desc())
        )
        return result.scalars().all()

    async def services_for_notes(self) -> Sequence[Service]:
        """Scheduled or Completed services with at least one participant."""
        result = await self.session.execute(
            select(Service)
            .where(
                Service.status.in_(
                    [ServiceStatus.SCHEDULED.value, ServiceStatus.COMPLETED.value]
                ),
                Service.participants.any(),
            )
            .order_by(Service.start_time.desc())
        )
        return result.scalars().unique().all()

    async def patients_for_notes(self) -> Sequence[Patient]:
        return await self.directory.list_active_patients()
