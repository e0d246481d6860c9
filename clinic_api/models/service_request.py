"""Service types and patient scheduling requests."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_api.db.base import Base, TimestampMixin


class ServiceRequestStatus(str, Enum):
    """Lifecycle of a scheduling request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SCHEDULED = "scheduled"


class PreferredTime(str, Enum):
    """Part of day the patient would like to be seen."""

    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


class ServiceType(Base, TimestampMixin):
    """Catalogue entry a patient can ask for (e.g. General Consultation)."""

    __tablename__ = "service_types"

    name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    duration_minutes: Mapped[int] = mapped_column(
        Integer,
        default=60,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<ServiceType {self.name}>"


class ServiceRequest(Base, TimestampMixin):
    """A patient's scheduling preference, prior to becoming a Service.

    Status only moves pending -> approved/rejected and approved -> scheduled.
    """

    __tablename__ = "service_requests"

    patient_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    service_type_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("service_types.id"),
        nullable=False,
    )
    preferred_doctor_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("doctors.id"),
        nullable=True,
    )
    preferred_date_1: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    preferred_date_2: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    preferred_date_3: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    preferred_time: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    reason: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    urgent: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    additional_notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=ServiceRequestStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    # Set once the request has been turned into an appointment
    service_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("services.id", ondelete="SET NULL"),
        nullable=True,
    )

    patient: Mapped["Patient"] = relationship("Patient", lazy="joined")
    service_type: Mapped["ServiceType"] = relationship("ServiceType", lazy="joined")
    preferred_doctor: Mapped["Doctor"] = relationship("Doctor", lazy="joined")

    def __repr__(self) -> str:
        return f"<ServiceRequest {self.id} status={self.status}>"
