"""Versioned registry of psychological test templates.

Question sets are never edited in place. Changing the questions appends a
new ``TestTemplateVersion`` so instances already assigned keep pointing at
the version the patient actually saw.
"""

import logging
from typing import Any, Sequence

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_api.core.errors import NotFoundError, ValidationError
from clinic_api.core.logging import audit_logger
from clinic_api.db.transaction import commit_or_conflict
from clinic_api.models.test_template import TestInstance, TestTemplate, TestTemplateVersion
from clinic_api.schemas.test_template import Question

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 3


def validate_questions(questions: Sequence[Question | dict[str, Any]]) -> list[dict[str, Any]]:
    """Validate a question set and return it in storable JSON form.

    Raises:
        ValidationError: If the set is empty or any question is malformed
    """
    if not questions:
        raise ValidationError("A template needs at least one question")
    try:
        parsed = [
            q if isinstance(q, Question) else Question.model_validate(q)
            for q in questions
        ]
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        detail = f"{location}: {first['msg']}" if location else first["msg"]
        raise ValidationError(f"Invalid question: {detail}") from None
    return [q.model_dump(mode="json", exclude_none=True) for q in parsed]


class TemplateRegistry:
    """Create, edit and look up test templates and their versions."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_template(
        self,
        name: str,
        questions: Sequence[Question | dict[str, Any]],
        description: str | None = None,
        is_external: bool = False,
        actor_id: str | None = None,
    ) -> TestTemplate:
        """Create a template together with version 1 of its questions."""
        name = (name or "").strip()
        if len(name) < MIN_NAME_LENGTH:
            raise ValidationError(f"Template name must be at least {MIN_NAME_LENGTH} characters")
        stored = validate_questions(questions)

        template = TestTemplate(
            name=name,
            description=description,
            is_external=is_external,
            is_active=True,
        )
        template.versions = [TestTemplateVersion(version=1, questions=stored)]
        self.session.add(template)
        await commit_or_conflict(self.session, "Template version already exists")

        audit_logger.log(
            action="test_template.created",
            actor_id=actor_id,
            entity_type="test_template",
            entity_id=template.id,
            metadata={"version": 1, "questions": len(stored)},
        )
        return await self.get_template(template.id)

    async def update_template(
        self,
        template_id: str,
        name: str | None = None,
        description: str | None = None,
        is_active: bool | None = None,
        is_external: bool | None = None,
        questions: Sequence[Question | dict[str, Any]] | None = None,
        actor_id: str | None = None,
    ) -> TestTemplate:
        """Edit template metadata and, if ``questions`` is given, add a version.

        The new version number is the current highest plus one; the metadata
        edit and the new version are committed together.
        """
        template = await self.get_template(template_id)

        if name is not None:
            name = name.strip()
            if len(name) < MIN_NAME_LENGTH:
                raise ValidationError(
                    f"Template name must be at least {MIN_NAME_LENGTH} characters"
                )
            template.name = name
        if description is not None:
            template.description = description
        if is_active is not None:
            template.is_active = is_active
        if is_external is not None:
            template.is_external = is_external

        new_version = None
        if questions is not None:
            stored = validate_questions(questions)
            current = await self._highest_version_number(template.id)
            new_version = TestTemplateVersion(version=current + 1, questions=stored)
            template.versions.append(new_version)

        await commit_or_conflict(
            self.session, "Template was edited concurrently, please retry"
        )

        audit_logger.log(
            action="test_template.updated",
            actor_id=actor_id,
            entity_type="test_template",
            entity_id=template.id,
            metadata={"new_version": new_version.version if new_version else None},
        )
        return await self.get_template(template.id)

    async def get_template(self, template_id: str) -> TestTemplate:
        result = await self.session.execute(
            select(TestTemplate)
            .where(TestTemplate.id == template_id)
            .execution_options(populate_existing=True)
        )
        template = result.scalar_one_or_none()
        if not template:
            raise NotFoundError("Test template not found")
        return template

    async def list_templates(self, active_only: bool = False) -> Sequence[TestTemplate]:
        query = select(TestTemplate).order_by(TestTemplate.name)
        if active_only:
            query = query.where(TestTemplate.is_active == True)  # noqa: E712
        result = await self.session.execute(query)
        return result.scalars().all()

    async def latest_version(self, template_id: str) -> TestTemplateVersion:
        """Highest version of a template.

        Raises:
            NotFoundError: If the template does not exist or has no versions
        """
        result = await self.session.execute(
            select(TestTemplateVersion)
            .where(TestTemplateVersion.template_id == template_id)
            .order_by(TestTemplateVersion.version.desc())
            .limit(1)
        )
        version = result.scalar_one_or_none()
        if not version:
            raise NotFoundError("Test template not found or has no versions")
        return version

    async def list_versions(self, template_id: str) -> list[dict[str, Any]]:
        """Versions of a template with how many instances use each."""
        await self.get_template(template_id)
        result = await self.session.execute(
            select(TestTemplateVersion, func.count(TestInstance.id))
            .outerjoin(
                TestInstance,
                TestInstance.template_version_id == TestTemplateVersion.id,
            )
            .where(TestTemplateVersion.template_id == template_id)
            .group_by(TestTemplateVersion.id)
            .order_by(TestTemplateVersion.version.desc())
        )
        return [
            {
                "id": version.id,
                "version": version.version,
                "created_at": version.created_at,
                "instance_count": count,
            }
            for version, count in result.all()
        ]

    async def _highest_version_number(self, template_id: str) -> int:
        result = await self.session.execute(
            select(func.max(TestTemplateVersion.version)).where(
                TestTemplateVersion.template_id == template_id
            )
        )
        return result.scalar_one() or 0
