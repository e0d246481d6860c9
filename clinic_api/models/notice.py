"""Fitness notices and the monthly counter that numbers them."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_api.db.base import Base, TimestampMixin
from clinic_api.utils.time import utc_now


class Notice(Base, TimestampMixin):
    """A fitness/recommendation document issued to one participant."""

    __tablename__ = "notices"

    service_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    participant_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("service_participants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    issue_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    # NOTICE-YYYYMM-NNN
    unique_notice_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
    )
    expiry_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    reason_for_issuance: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    fitness_status: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    recommendations: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    attachment_path: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    service: Mapped["Service"] = relationship("Service", lazy="joined")
    participant: Mapped["ServiceParticipant"] = relationship(
        "ServiceParticipant", lazy="joined"
    )

    def __repr__(self) -> str:
        return f"<Notice {self.unique_notice_number}>"


class NoticeSequence(Base):
    """Last notice number handed out for a calendar month."""

    __tablename__ = "notice_sequences"
    __table_args__ = (UniqueConstraint("year", "month"),)

    year: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    month: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    last_value: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<NoticeSequence {self.year}-{self.month:02d} last={self.last_value}>"
