"""Clinician notes."""

from sqlalchemy import ForeignKey, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_api.db.base import Base, TimestampMixin
from clinic_api.models.linkage import Link, link_from_columns


class Note(Base, TimestampMixin):
    """Free text written by a doctor about a patient.

    A participant link always carries its service. A booking note has a
    ``service_id`` and no participant, so its ``link`` is ``Unlinked``.
    """

    __tablename__ = "notes"

    doctor_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("doctors.id"),
        nullable=False,
        index=True,
    )
    patient_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    service_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("services.id", ondelete="SET NULL"),
        nullable=True,
    )
    participant_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("service_participants.id", ondelete="SET NULL"),
        nullable=True,
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    doctor: Mapped["Doctor"] = relationship("Doctor", lazy="joined")

    @property
    def link(self) -> Link:
        return link_from_columns(self.service_id, self.participant_id)

    def __repr__(self) -> str:
        return f"<Note {self.id} patient={self.patient_id}>"
