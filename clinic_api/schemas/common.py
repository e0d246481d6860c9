"""Shared read schemas for people and artifact links."""

from typing import Literal

from pydantic import BaseModel


class UserSummary(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str

    model_config = {"from_attributes": True}


class PatientSummary(BaseModel):
    id: str
    user_id: str
    user: UserSummary

    model_config = {"from_attributes": True}


class DoctorSummary(BaseModel):
    id: str
    user_id: str
    specialization: str | None = None
    user: UserSummary

    model_config = {"from_attributes": True}


class LinkedRead(BaseModel):
    """Artifact tied to one participant of one service."""

    kind: Literal["linked"] = "linked"
    service_id: str
    participant_id: str

    model_config = {"from_attributes": True}


class UnlinkedRead(BaseModel):
    """Artifact not tied to any encounter."""

    kind: Literal["unlinked"] = "unlinked"

    model_config = {"from_attributes": True}


LinkRead = LinkedRead | UnlinkedRead
