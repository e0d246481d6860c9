"""Business logic services."""

from clinic_api.services.assessments import AssessmentService
from clinic_api.services.directory import DirectoryService
from clinic_api.services.feedback import FeedbackService
from clinic_api.services.notes import NoteService
from clinic_api.services.notices import NoticeNumberGenerator, NoticeService
from clinic_api.services.policy import Operation, Principal, allows
from clinic_api.services.scheduling import SchedulingService
from clinic_api.services.service_requests import ServiceRequestService
from clinic_api.services.service_types import ServiceTypeService
from clinic_api.services.template_registry import TemplateRegistry

__all__ = [
    "AssessmentService",
    "DirectoryService",
    "FeedbackService",
    "NoteService",
    "NoticeNumberGenerator",
    "NoticeService",
    "Operation",
    "Principal",
    "SchedulingService",
    "ServiceRequestService",
    "ServiceTypeService",
    "TemplateRegistry",
    "allows",
]
