"""Assigning psychological tests to patients and collecting their answers."""

import logging
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_api.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from clinic_api.core.logging import audit_logger
from clinic_api.models.scheduling import Service, ServiceParticipant
from clinic_api.models.test_template import TestInstance, TestTemplateVersion
from clinic_api.schemas.test_template import QuestionType
from clinic_api.services.directory import DirectoryService
from clinic_api.services.policy import Principal
from clinic_api.services.template_registry import TemplateRegistry
from clinic_api.utils.time import utc_now

logger = logging.getLogger(__name__)


def _is_blank(answer: Any) -> bool:
    return answer is None or (isinstance(answer, str) and not answer.strip())


def validate_responses(questions: list[dict[str, Any]], responses: dict[str, Any]) -> None:
    """Check answers, keyed by question position, against a version's questions.

    Raises:
        ValidationError: On unknown keys, missing required answers, or answers
            outside a question's options or scale
    """
    valid_keys = {str(index) for index in range(len(questions))}
    unknown = set(responses) - valid_keys
    if unknown:
        raise ValidationError(f"Unknown question(s): {', '.join(sorted(unknown))}")

    for index, question in enumerate(questions):
        answer = responses.get(str(index))
        if _is_blank(answer):
            if question.get("required", True):
                raise ValidationError(f"Question {index} is required")
            continue

        qtype = question.get("type")
        if qtype == QuestionType.MULTIPLE_CHOICE.value:
            if answer not in question.get("options", []):
                raise ValidationError(f"Question {index}: answer is not one of the options")
        elif qtype == QuestionType.SCALE.value:
            if isinstance(answer, bool) or not isinstance(answer, (int, float)):
                raise ValidationError(f"Question {index}: answer must be a number")
            low, high = question["min_value"], question["max_value"]
            if not low <= answer <= high:
                raise ValidationError(
                    f"Question {index}: answer must be between {low} and {high}"
                )


class AssessmentService:
    """Test instances: assignment, submission and lookups."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.directory = DirectoryService(session)
        self.registry = TemplateRegistry(session)

    async def assign_test(
        self,
        patient_id: str,
        template_id: str,
        actor_id: str | None = None,
    ) -> TestInstance:
        """Bind a new instance to the template's highest version.

        Raises:
            NotFoundError: If the patient is unknown, or the template is
                unknown or has no versions
            ValidationError: If the template is inactive
        """
        await self.directory.require_patient(patient_id)
        template = await self.registry.get_template(template_id)
        if not template.is_active:
            raise ValidationError("Test template is not active")
        version = await self.registry.latest_version(template_id)

        instance = TestInstance(
            patient_id=patient_id,
            template_version_id=version.id,
            test_start_date=utc_now(),
            test_stop_date=None,
            patient_response={},
        )
        self.session.add(instance)
        await self.session.commit()

        audit_logger.log(
            action="test.assigned",
            actor_id=actor_id,
            entity_type="test_instance",
            entity_id=instance.id,
            metadata={"template_id": template_id, "version": version.version},
        )
        return await self.get_instance(instance.id)

    async def submit_test(
        self,
        instance_id: str,
        user_id: str,
        responses: dict[str, Any],
    ) -> TestInstance:
        """Store the patient's answers and close the instance.

        Raises:
            NotFoundError: If the instance does not exist
            ForbiddenError: If the user is not the patient it was assigned to
            ConflictError: If the instance was already submitted
            ValidationError: If the answers do not fit the questions
        """
        instance = await self.get_instance(instance_id)
        patient = await self.directory.get_patient_for_user(user_id)
        if patient is None or instance.patient_id != patient.id:
            raise ForbiddenError("You can only submit your own tests")
        if instance.is_submitted:
            raise ConflictError("This test has already been submitted")

        validate_responses(instance.template_version.questions, responses)

        instance.patient_response = dict(responses)
        instance.test_stop_date = utc_now()
        await self.session.commit()

        audit_logger.log(
            action="test.submitted",
            actor_id=user_id,
            entity_type="test_instance",
            entity_id=instance.id,
        )
        return instance

    async def get_instance(self, instance_id: str) -> TestInstance:
        result = await self.session.execute(
            select(TestInstance)
            .where(TestInstance.id == instance_id)
            .execution_options(populate_existing=True)
        )
        instance = result.scalar_one_or_none()
        if not instance:
            raise NotFoundError("Test not found")
        return instance

    async def get_instance_for(self, instance_id: str, principal: Principal) -> TestInstance:
        """Fetch an instance, restricting patients to their own."""
        instance = await self.get_instance(instance_id)
        if principal.is_patient_only:
            patient = await self.directory.require_patient_for_user(principal.user_id)
            if instance.patient_id != patient.id:
                raise ForbiddenError("You can only view your own tests")
        return instance

    async def list_for_patient(self, patient_id: str) -> Sequence[TestInstance]:
        result = await self.session.execute(
            select(TestInstance)
            .where(TestInstance.patient_id == patient_id)
            .order_by(TestInstance.test_start_date.desc())
        )
        return result.scalars().all()

    async def list_all(self) -> Sequence[TestInstance]:
        result = await self.session.execute(
            select(TestInstance).order_by(TestInstance.test_start_date.desc())
        )
        return result.scalars().all()

    async def list_for_doctor_patients(self, doctor_id: str) -> Sequence[TestInstance]:
        """Tests of every patient who has attended one of the doctor's services."""
        patient_ids = (
            select(ServiceParticipant.patient_id)
            .join(Service, Service.id == ServiceParticipant.service_id)
            .where(Service.employee_id == doctor_id)
        )
        result = await self.session.execute(
            select(TestInstance)
            .where(TestInstance.patient_id.in_(patient_ids))
            .order_by(TestInstance.test_start_date.desc())
        )
        return result.scalars().all()

    async def list_completed(self) -> Sequence[TestInstance]:
        result = await self.session.execute(
            select(TestInstance)
            .where(TestInstance.test_stop_date.is_not(None))
            .order_by(TestInstance.test_stop_date.desc())
        )
        return result.scalars().all()

    async def list_for_template_version(self, version_id: str) -> Sequence[TestInstance]:
        """Instances answered against one version, e.g. for a responses view."""
        result = await self.session.execute(
            select(TestInstance)
            .join(TestTemplateVersion, TestTemplateVersion.id == TestInstance.template_version_id)
            .where(TestTemplateVersion.id == version_id)
            .order_by(TestInstance.test_start_date.desc())
        )
        return result.scalars().all()
