"""Patient feedback on a doctor or on the clinic."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from clinic_api.db.base import Base
from clinic_api.models.linkage import Link, link_from_columns
from clinic_api.utils.time import utc_now


class FeedbackTarget(str, Enum):
    """What the feedback is about."""

    DOCTOR = "DOCTOR"
    SERVICE = "SERVICE"


class Feedback(Base):
    """A rating/comment from a patient.

    Visit feedback is linked to a service and participant; general clinic
    feedback has neither. At most one row per (service, participant, target).
    """

    __tablename__ = "feedback"
    __table_args__ = (UniqueConstraint("service_id", "participant_id", "target_type"),)

    patient_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    service_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=True,
    )
    participant_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("service_participants.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    target_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    rating_score: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )
    comments: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    is_anonymous: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    # Facility flags, only stored for SERVICE feedback
    is_clean_facilities: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    is_friendly_staff: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    is_easy_accessibility: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    is_smooth_admin_process: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    submission_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    @property
    def link(self) -> Link:
        return link_from_columns(self.service_id, self.participant_id)

    def __repr__(self) -> str:
        return f"<Feedback {self.id} target={self.target_type}>"
