"""Pydantic schemas for psychological test templates and instances."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator


class QuestionType(str, Enum):
    TEXT = "TEXT"
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    SCALE = "SCALE"


class Question(BaseModel):
    """One question in a template version."""

    question: str = Field(..., min_length=3)
    type: QuestionType
    required: bool = True
    options: list[str] | None = None
    min_value: int | None = None
    max_value: int | None = None

    @model_validator(mode="after")
    def check_type_fields(self) -> "Question":
        if self.type == QuestionType.MULTIPLE_CHOICE:
            if not self.options or len(self.options) < 2:
                raise ValueError("MULTIPLE_CHOICE questions need at least two options")
        if self.type == QuestionType.SCALE:
            if self.min_value is None or self.max_value is None:
                raise ValueError("SCALE questions need min_value and max_value")
            if self.min_value >= self.max_value:
                raise ValueError("min_value must be lower than max_value")
        return self


class TestTemplateCreate(BaseModel):
    """Schema for creating a template with its first version."""

    name: str = Field(..., min_length=3)
    description: str | None = None
    is_external: bool = False
    questions: list[Question] = Field(..., min_length=1)


class TestTemplateUpdate(BaseModel):
    """Schema for editing a template; new questions create a new version."""

    name: str | None = Field(default=None, min_length=3)
    description: str | None = None
    is_active: bool | None = None
    is_external: bool | None = None
    questions: list[Question] | None = Field(default=None, min_length=1)


class TestTemplateVersionRead(BaseModel):
    id: str
    template_id: str
    version: int
    questions: list[dict[str, Any]]
    created_at: datetime

    model_config = {"from_attributes": True}


class TestTemplateVersionSummary(BaseModel):
    """Version with the number of instances bound to it."""

    id: str
    version: int
    created_at: datetime
    instance_count: int


class TestTemplateRead(BaseModel):
    id: str
    name: str
    description: str | None = None
    is_active: bool
    is_external: bool
    latest_version: int | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class TestAssign(BaseModel):
    """Schema for assigning a template to a patient."""

    patient_id: str
    template_id: str


class TestSubmit(BaseModel):
    """Answers keyed by question position, starting at "0"."""

    responses: dict[str, Any]


class TestInstanceRead(BaseModel):
    id: str
    patient_id: str
    template_version_id: str
    template_id: str
    version: int
    test_start_date: datetime
    test_stop_date: datetime | None = None
    patient_response: dict[str, Any]
    is_submitted: bool
