"""Psychological test assignment and submission endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from clinic_api.api.deps import CurrentDoctor, CurrentPatient, DbSession, require
from clinic_api.models.test_template import TestInstance
from clinic_api.schemas.test_template import TestAssign, TestInstanceRead, TestSubmit
from clinic_api.services.assessments import AssessmentService
from clinic_api.services.policy import Operation, Principal

router = APIRouter()


def to_instance_read(instance: TestInstance) -> TestInstanceRead:
    version = instance.template_version
    return TestInstanceRead(
        id=instance.id,
        patient_id=instance.patient_id,
        template_version_id=instance.template_version_id,
        template_id=version.template_id,
        version=version.version,
        test_start_date=instance.test_start_date,
        test_stop_date=instance.test_stop_date,
        patient_response=instance.patient_response,
        is_submitted=instance.is_submitted,
    )


@router.post("/assign", response_model=TestInstanceRead, status_code=status.HTTP_201_CREATED)
async def assign_test(
    request: TestAssign,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.TEST_ASSIGN))],
) -> TestInstanceRead:
    """Assign the latest version of a template to a patient."""
    instance = await AssessmentService(session).assign_test(
        request.patient_id,
        request.template_id,
        actor_id=principal.user_id,
    )
    return to_instance_read(instance)


@router.put("/{instance_id}/submit", response_model=TestInstanceRead)
async def submit_test(
    instance_id: str,
    request: TestSubmit,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.TEST_SUBMIT))],
) -> TestInstanceRead:
    """Submit answers. A test can only be submitted once."""
    instance = await AssessmentService(session).submit_test(
        instance_id,
        principal.user_id,
        request.responses,
    )
    return to_instance_read(instance)


@router.get("/mine", response_model=list[TestInstanceRead])
async def list_my_tests(
    session: DbSession,
    patient: CurrentPatient,
) -> list[TestInstanceRead]:
    instances = await AssessmentService(session).list_for_patient(patient.id)
    return [to_instance_read(i) for i in instances]


@router.get("", response_model=list[TestInstanceRead])
async def list_tests(
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.TEST_LIST_ALL))],
) -> list[TestInstanceRead]:
    instances = await AssessmentService(session).list_all()
    return [to_instance_read(i) for i in instances]


@router.get("/completed", response_model=list[TestInstanceRead])
async def list_completed_tests(
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.TEST_LIST_ALL))],
) -> list[TestInstanceRead]:
    instances = await AssessmentService(session).list_completed()
    return [to_instance_read(i) for i in instances]


@router.get("/patient/{patient_id}", response_model=list[TestInstanceRead])
async def list_patient_tests(
    patient_id: str,
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.TEST_LIST_ALL))],
) -> list[TestInstanceRead]:
    instances = await AssessmentService(session).list_for_patient(patient_id)
    return [to_instance_read(i) for i in instances]


@router.get("/doctor/me", response_model=list[TestInstanceRead])
async def list_my_patients_tests(
    session: DbSession,
    doctor: CurrentDoctor,
) -> list[TestInstanceRead]:
    """Tests of patients the calling doctor has seen."""
    instances = await AssessmentService(session).list_for_doctor_patients(doctor.id)
    return [to_instance_read(i) for i in instances]


@router.get("/doctor/{doctor_id}", response_model=list[TestInstanceRead])
async def list_doctor_patients_tests(
    doctor_id: str,
    session: DbSession,
    _: Annotated[Principal, Depends(require(Operation.TEST_LIST_ALL))],
) -> list[TestInstanceRead]:
    instances = await AssessmentService(session).list_for_doctor_patients(doctor_id)
    return [to_instance_read(i) for i in instances]


@router.get("/{instance_id}", response_model=TestInstanceRead)
async def get_test(
    instance_id: str,
    session: DbSession,
    principal: Annotated[Principal, Depends(require(Operation.TEST_READ))],
) -> TestInstanceRead:
    instance = await AssessmentService(session).get_instance_for(instance_id, principal)
    return to_instance_read(instance)
