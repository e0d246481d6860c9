"""Encounters (services) and the patients attending them."""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_api.db.base import Base, TimestampMixin
from clinic_api.utils.time import utc_now


class ServiceKind(str, Enum):
    """Shape of an encounter."""

    CONSULTATION = "Consultation"
    GROUP_CONSULTATION = "Group_Consultation"


class ServiceStatus(str, Enum):
    """Encounter status. Completed and Cancelled are terminal."""

    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class AttendanceStatus(str, Enum):
    """Attendance outcome for one participant."""

    EXPECTED = "Expected"
    ATTENDED = "Attended"
    MISSED = "Missed"


class Service(Base, TimestampMixin):
    """A scheduled clinical encounter with one doctor and one or more patients."""

    __tablename__ = "services"

    service_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
    )
    employee_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("doctors.id"),
        nullable=False,
        index=True,
    )
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    end_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=ServiceStatus.SCHEDULED.value,
        nullable=False,
        index=True,
    )
    cancel_reason: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    doctor: Mapped["Doctor"] = relationship("Doctor", lazy="joined")
    participants: Mapped[list["ServiceParticipant"]] = relationship(
        "ServiceParticipant",
        back_populates="service",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ServiceParticipant.added_at",
    )

    def participant_for(self, patient_id: str) -> "ServiceParticipant | None":
        """Return the participant row for a patient, if they attend."""
        for participant in self.participants:
            if participant.patient_id == patient_id:
                return participant
        return None

    def __repr__(self) -> str:
        return f"<Service {self.id} {self.service_type} status={self.status}>"


class ServiceParticipant(Base):
    """Join row between a service and one attending patient."""

    __tablename__ = "service_participants"
    __table_args__ = (UniqueConstraint("service_id", "patient_id"),)

    service_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    patient_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    attendance_status: Mapped[str] = mapped_column(
        String(20),
        default=AttendanceStatus.EXPECTED.value,
        nullable=False,
    )
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    service: Mapped["Service"] = relationship("Service", back_populates="participants")
    patient: Mapped["Patient"] = relationship("Patient", lazy="joined")

    def __repr__(self) -> str:
        return f"<ServiceParticipant service={self.service_id} patient={self.patient_id}>"
