"""Database models for the clinic encounters API."""

from clinic_api.models.feedback import Feedback, FeedbackTarget
from clinic_api.models.linkage import Link, Linked, Unlinked
from clinic_api.models.note import Note
from clinic_api.models.notice import Notice, NoticeSequence
from clinic_api.models.patient import Doctor, Patient
from clinic_api.models.scheduling import (
    AttendanceStatus,
    Service,
    ServiceKind,
    ServiceParticipant,
    ServiceStatus,
)
from clinic_api.models.service_request import (
    PreferredTime,
    ServiceRequest,
    ServiceRequestStatus,
    ServiceType,
)
from clinic_api.models.test_template import TestInstance, TestTemplate, TestTemplateVersion
from clinic_api.models.user import User, UserRole

__all__ = [
    "AttendanceStatus",
    "Doctor",
    "Feedback",
    "FeedbackTarget",
    "Link",
    "Linked",
    "Note",
    "Notice",
    "NoticeSequence",
    "Patient",
    "PreferredTime",
    "Service",
    "ServiceKind",
    "ServiceParticipant",
    "ServiceRequest",
    "ServiceRequestStatus",
    "ServiceStatus",
    "ServiceType",
    "TestInstance",
    "TestTemplate",
    "TestTemplateVersion",
    "Unlinked",
    "User",
    "UserRole",
]
