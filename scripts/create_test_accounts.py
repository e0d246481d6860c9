"""Create test accounts for a local or test-mode deployment.

Run after the database migration. Accounts that already exist are left
alone; a bearer token is printed for every account so the API can be
exercised without the identity service.
"""

import asyncio

from sqlalchemy import select

from clinic_api.core.security import create_access_token
from clinic_api.db.init_db import seed_service_types
from clinic_api.db.session import AsyncSessionLocal
from clinic_api.models.patient import Doctor, Patient
from clinic_api.models.user import User, UserRole

# Staff account definitions
TEST_STAFF = [
    {
        "email": "admin@test.clinic.local",
        "name": "Test Admin",
        "roles": [UserRole.ADMIN],
    },
    {
        "email": "doctor1@test.clinic.local",
        "name": "Dr Test Doctor",
        "roles": [UserRole.DOCTOR],
        "specialization": "General Practice",
    },
    {
        "email": "doctor2@test.clinic.local",
        "name": "Dr Test Psychologist",
        "roles": [UserRole.DOCTOR],
        "specialization": "Clinical Psychology",
    },
    {
        "email": "reception@test.clinic.local",
        "name": "Test Reception",
        "roles": [UserRole.RECEPTIONIST],
    },
]

TEST_PATIENTS = [
    {
        "email": "patient1@test.clinic.local",
        "first_name": "Test",
        "last_name": "Patient One",
        "phone": "+44 7700 900001",
    },
    {
        "email": "patient2@test.clinic.local",
        "first_name": "Test",
        "last_name": "Patient Two",
        "phone": "+44 7700 900002",
    },
    {
        "email": "patient3@test.clinic.local",
        "first_name": "Test",
        "last_name": "Patient Three",
        "phone": "+44 7700 900003",
    },
]


async def create_staff(session) -> tuple[list[User], list[str]]:
    """Create staff users, with a doctor profile for doctors."""
    created = []
    skipped = []

    for account in TEST_STAFF:
        existing = await session.scalar(select(User).where(User.email == account["email"]))
        if existing:
            skipped.append(account["email"])
            continue

        first_name, _, last_name = account["name"].partition(" ")
        user = User(
            email=account["email"],
            first_name=first_name,
            last_name=last_name,
            roles=[role.value for role in account["roles"]],
            is_active=True,
        )
        session.add(user)
        if UserRole.DOCTOR in account["roles"]:
            session.add(Doctor(user=user, specialization=account.get("specialization")))
        created.append(user)

    await session.commit()
    return created, skipped


async def create_patients(session) -> tuple[list[User], list[str]]:
    """Create patient users with their patient profiles."""
    created = []
    skipped = []

    for patient in TEST_PATIENTS:
        existing = await session.scalar(select(User).where(User.email == patient["email"]))
        if existing:
            skipped.append(patient["email"])
            continue

        user = User(
            email=patient["email"],
            first_name=patient["first_name"],
            last_name=patient["last_name"],
            roles=[UserRole.PATIENT.value],
            is_active=True,
        )
        session.add(user)
        session.add(Patient(user=user, phone=patient.get("phone")))
        created.append(user)

    await session.commit()
    return created, skipped


def print_accounts(title: str, created: list[User], skipped: list[str]) -> None:
    """Print created accounts with a bearer token each."""
    print("=" * 60)
    print(title)
    print("=" * 60)
    print()

    if created:
        print("NEW ACCOUNTS:")
        for user in created:
            token = create_access_token(subject=user.id, roles=user.roles)
            print(f"  {user.email} ({', '.join(user.roles)})")
            print(f"    Bearer {token}")
        print()

    if skipped:
        print("SKIPPED (already exist):")
        for email in skipped:
            print(f"  - {email}")
        print()


async def main() -> None:
    async with AsyncSessionLocal() as session:
        service_types = await seed_service_types(session)
        print(f"Service types added: {len(service_types)}")
        print()

        staff_created, staff_skipped = await create_staff(session)
        print_accounts("TEST STAFF ACCOUNTS", staff_created, staff_skipped)

        patients_created, patients_skipped = await create_patients(session)
        print_accounts("TEST PATIENT ACCOUNTS", patients_created, patients_skipped)

    print("Tokens expire after the configured access token lifetime.")


if __name__ == "__main__":
    asyncio.run(main())
