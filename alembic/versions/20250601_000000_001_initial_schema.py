"""Initial schema: directory, intake, encounters, artifacts and tests.

Revision ID: 001
Revises:
Create Date: 2025-06-01 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create initial database schema."""

    # Identity directory
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("roles", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "patients",
        _id(),
        sa.Column("user_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_patients_user_id_users", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_patients"),
    )
    op.create_index("ix_patients_user_id", "patients", ["user_id"], unique=True)

    op.create_table(
        "doctors",
        _id(),
        sa.Column("user_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("specialization", sa.String(150), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_doctors_user_id_users", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_doctors"),
    )
    op.create_index("ix_doctors_user_id", "doctors", ["user_id"], unique=True)

    # Catalogue
    op.create_table(
        "service_types",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_service_types"),
        sa.UniqueConstraint("name", name="uq_service_types_name"),
    )

    # Encounters
    op.create_table(
        "services",
        _id(),
        sa.Column("service_type", sa.String(30), nullable=False),
        sa.Column("employee_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("cancel_reason", sa.String(255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["employee_id"], ["doctors.id"], name="fk_services_employee_id_doctors"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_services"),
    )
    op.create_index("ix_services_employee_id", "services", ["employee_id"])
    op.create_index("ix_services_start_time", "services", ["start_time"])
    op.create_index("ix_services_status", "services", ["status"])

    op.create_table(
        "service_participants",
        _id(),
        sa.Column("service_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("patient_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("attendance_status", sa.String(20), nullable=False),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["service_id"],
            ["services.id"],
            name="fk_service_participants_service_id_services",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["patient_id"],
            ["patients.id"],
            name="fk_service_participants_patient_id_patients",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_service_participants"),
        sa.UniqueConstraint(
            "service_id",
            "patient_id",
            name="uq_service_participants_service_id_patient_id",
        ),
    )
    op.create_index(
        "ix_service_participants_service_id", "service_participants", ["service_id"]
    )
    op.create_index(
        "ix_service_participants_patient_id", "service_participants", ["patient_id"]
    )

    # Intake
    op.create_table(
        "service_requests",
        _id(),
        sa.Column("patient_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("service_type_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("preferred_doctor_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("preferred_date_1", sa.DateTime(timezone=True), nullable=False),
        sa.Column("preferred_date_2", sa.DateTime(timezone=True), nullable=True),
        sa.Column("preferred_date_3", sa.DateTime(timezone=True), nullable=True),
        sa.Column("preferred_time", sa.String(20), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("urgent", sa.Boolean(), nullable=False),
        sa.Column("additional_notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("service_id", postgresql.UUID(as_uuid=False), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["patient_id"],
            ["patients.id"],
            name="fk_service_requests_patient_id_patients",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["service_type_id"],
            ["service_types.id"],
            name="fk_service_requests_service_type_id_service_types",
        ),
        sa.ForeignKeyConstraint(
            ["preferred_doctor_id"],
            ["doctors.id"],
            name="fk_service_requests_preferred_doctor_id_doctors",
        ),
        sa.ForeignKeyConstraint(
            ["service_id"],
            ["services.id"],
            name="fk_service_requests_service_id_services",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_service_requests"),
    )
    op.create_index("ix_service_requests_patient_id", "service_requests", ["patient_id"])
    op.create_index("ix_service_requests_status", "service_requests", ["status"])

    # Notes
    op.create_table(
        "notes",
        _id(),
        sa.Column("doctor_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("patient_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("service_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("participant_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], name="fk_notes_doctor_id_doctors"),
        sa.ForeignKeyConstraint(
            ["patient_id"], ["patients.id"], name="fk_notes_patient_id_patients", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["service_id"], ["services.id"], name="fk_notes_service_id_services", ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(
            ["participant_id"],
            ["service_participants.id"],
            name="fk_notes_participant_id_service_participants",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_notes"),
    )
    op.create_index("ix_notes_doctor_id", "notes", ["doctor_id"])
    op.create_index("ix_notes_patient_id", "notes", ["patient_id"])

    # Notices
    op.create_table(
        "notices",
        _id(),
        sa.Column("service_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("participant_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("issue_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("unique_notice_number", sa.String(30), nullable=False),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reason_for_issuance", sa.Text(), nullable=False),
        sa.Column("fitness_status", sa.String(100), nullable=False),
        sa.Column("recommendations", sa.Text(), nullable=False),
        sa.Column("attachment_path", sa.String(500), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["service_id"], ["services.id"], name="fk_notices_service_id_services", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["participant_id"],
            ["service_participants.id"],
            name="fk_notices_participant_id_service_participants",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_notices"),
        sa.UniqueConstraint("unique_notice_number", name="uq_notices_unique_notice_number"),
    )
    op.create_index("ix_notices_service_id", "notices", ["service_id"])
    op.create_index("ix_notices_participant_id", "notices", ["participant_id"])

    op.create_table(
        "notice_sequences",
        _id(),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("last_value", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_notice_sequences"),
        sa.UniqueConstraint("year", "month", name="uq_notice_sequences_year_month"),
    )

    # Feedback
    op.create_table(
        "feedback",
        _id(),
        sa.Column("patient_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("service_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("participant_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("target_type", sa.String(20), nullable=False),
        sa.Column("rating_score", sa.Integer(), nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("is_anonymous", sa.Boolean(), nullable=False),
        sa.Column("is_clean_facilities", sa.Boolean(), nullable=True),
        sa.Column("is_friendly_staff", sa.Boolean(), nullable=True),
        sa.Column("is_easy_accessibility", sa.Boolean(), nullable=True),
        sa.Column("is_smooth_admin_process", sa.Boolean(), nullable=True),
        sa.Column("submission_date", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["patient_id"], ["patients.id"], name="fk_feedback_patient_id_patients", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["service_id"], ["services.id"], name="fk_feedback_service_id_services", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["participant_id"],
            ["service_participants.id"],
            name="fk_feedback_participant_id_service_participants",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_feedback"),
        sa.UniqueConstraint(
            "service_id",
            "participant_id",
            "target_type",
            name="uq_feedback_service_id_participant_id_target_type",
        ),
    )
    op.create_index("ix_feedback_patient_id", "feedback", ["patient_id"])
    op.create_index("ix_feedback_participant_id", "feedback", ["participant_id"])

    # Psychological tests
    op.create_table(
        "test_templates",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_external", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_test_templates"),
    )

    op.create_table(
        "test_template_versions",
        _id(),
        sa.Column("template_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("questions", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["template_id"],
            ["test_templates.id"],
            name="fk_test_template_versions_template_id_test_templates",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_test_template_versions"),
        sa.UniqueConstraint(
            "template_id", "version", name="uq_test_template_versions_template_id_version"
        ),
    )
    op.create_index(
        "ix_test_template_versions_template_id", "test_template_versions", ["template_id"]
    )

    op.create_table(
        "test_instances",
        _id(),
        sa.Column("patient_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("template_version_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("test_start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("test_stop_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("patient_response", sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(
            ["patient_id"],
            ["patients.id"],
            name="fk_test_instances_patient_id_patients",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["template_version_id"],
            ["test_template_versions.id"],
            name="fk_test_instances_template_version_id_test_template_versions",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_test_instances"),
    )
    op.create_index("ix_test_instances_patient_id", "test_instances", ["patient_id"])
    op.create_index(
        "ix_test_instances_template_version_id", "test_instances", ["template_version_id"]
    )


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table("test_instances")
    op.drop_table("test_template_versions")
    op.drop_table("test_templates")
    op.drop_table("feedback")
    op.drop_table("notice_sequences")
    op.drop_table("notices")
    op.drop_table("notes")
    op.drop_table("service_requests")
    op.drop_table("service_participants")
    op.drop_table("services")
    op.drop_table("service_types")
    op.drop_table("doctors")
    op.drop_table("patients")
    op.drop_table("users")
