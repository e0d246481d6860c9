"""Lookups against the identity directory (users, patients, doctors)."""

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_api.core.errors import ForbiddenError, NotFoundError
from clinic_api.models.patient import Doctor, Patient
from clinic_api.models.user import User


class DirectoryService:
    """Resolve identities to the profile records the clinic works with."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_user(self, user_id: str) -> User | None:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_patient(self, patient_id: str) -> Patient | None:
        result = await self.session.execute(
            select(Patient).where(Patient.id == patient_id)
        )
        return result.scalar_one_or_none()

    async def get_doctor(self, doctor_id: str) -> Doctor | None:
        result = await self.session.execute(
            select(Doctor).where(Doctor.id == doctor_id)
        )
        return result.scalar_one_or_none()

    async def get_patient_for_user(self, user_id: str) -> Patient | None:
        result = await self.session.execute(
            select(Patient).where(Patient.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_doctor_for_user(self, user_id: str) -> Doctor | None:
        result = await self.session.execute(
            select(Doctor).where(Doctor.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def require_patient(self, patient_id: str) -> Patient:
        patient = await self.get_patient(patient_id)
        if not patient:
            raise NotFoundError("Patient not found")
        return patient

    async def require_doctor(self, doctor_id: str) -> Doctor:
        doctor = await self.get_doctor(doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found")
        return doctor

    async def require_patient_for_user(self, user_id: str) -> Patient:
        """Resolve the caller's patient profile.

        Raises:
            ForbiddenError: If the user has no patient profile
        """
        patient = await self.get_patient_for_user(user_id)
        if not patient:
            raise ForbiddenError("Authenticated user is not a patient")
        return patient

    async def require_doctor_for_user(self, user_id: str) -> Doctor:
        """Resolve the caller's doctor profile.

        Raises:
            ForbiddenError: If the user has no doctor profile
        """
        doctor = await self.get_doctor_for_user(user_id)
        if not doctor:
            raise ForbiddenError("Authenticated user is not a doctor")
        return doctor

    async def list_active_patients(self) -> Sequence[Patient]:
        """Patients with an active account, ordered by surname."""
        result = await self.session.execute(
            select(Patient)
            .join(User, User.id == Patient.user_id)
            .where(User.is_active == True)  # noqa: E712
            .order_by(User.last_name, User.first_name)
        )
        return result.scalars().all()
