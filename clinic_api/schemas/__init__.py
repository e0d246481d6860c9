"""Pydantic schemas for request/response validation."""

from clinic_api.schemas.artifacts import DoctorRatingRead, FeedbackRead, NoteRead, NoticeRead
from clinic_api.schemas.common import (
    DoctorSummary,
    LinkedRead,
    LinkRead,
    PatientSummary,
    UnlinkedRead,
    UserSummary,
)
from clinic_api.schemas.scheduling import ParticipantRead, ServiceRead
from clinic_api.schemas.service_request import (
    ServiceRequestRead,
    ServiceTypeCreate,
    ServiceTypeRead,
)
from clinic_api.schemas.test_template import (
    Question,
    QuestionType,
    TestAssign,
    TestInstanceRead,
    TestSubmit,
    TestTemplateCreate,
    TestTemplateRead,
    TestTemplateUpdate,
    TestTemplateVersionRead,
    TestTemplateVersionSummary,
)

__all__ = [
    "DoctorRatingRead",
    "DoctorSummary",
    "FeedbackRead",
    "LinkRead",
    "LinkedRead",
    "NoteRead",
    "NoticeRead",
    "ParticipantRead",
    "PatientSummary",
    "Question",
    "QuestionType",
    "ServiceRead",
    "ServiceRequestRead",
    "ServiceTypeCreate",
    "ServiceTypeRead",
    "TestAssign",
    "TestInstanceRead",
    "TestSubmit",
    "TestTemplateCreate",
    "TestTemplateRead",
    "TestTemplateUpdate",
    "TestTemplateVersionRead",
    "TestTemplateVersionSummary",
    "UnlinkedRead",
    "UserSummary",
]
