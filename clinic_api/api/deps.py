"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_api.core.security import decode_access_token
from clinic_api.db.session import get_db
from clinic_api.models.patient import Doctor, Patient
from clinic_api.services.directory import DirectoryService
from clinic_api.services.policy import Operation, Principal, allows, roles_from_claims

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> dict | None:
    """Extract and decode the bearer token, if any."""
    if not credentials:
        return None
    return decode_access_token(credentials.credentials)


async def get_current_principal(
    token: Annotated[dict | None, Depends(get_current_token)],
    session: Annotated[AsyncSession, Depends(get_db)],
) -> Principal:
    """Build the caller's principal from the token.

    Role claims are trusted as issued; the user must still exist and be
    active in the directory.

    Raises:
        HTTPException: 401 without a valid token or known user,
            403 for a disabled account
    """
    if not token or not token.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await DirectoryService(session).get_user(token["sub"])
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return Principal(user_id=user.id, roles=roles_from_claims(token.get("roles")))


def require(operation: Operation):
    """Create a dependency that admits only principals allowed ``operation``.

    Usage:
        @router.post("/", dependencies=[Depends(require(Operation.NOTE_WRITE))])
    """

    async def operation_checker(
        principal: Annotated[Principal, Depends(get_current_principal)],
    ) -> Principal:
        if not allows(principal, operation):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return operation_checker


async def get_current_patient(
    principal: Annotated[Principal, Depends(get_current_principal)],
    session: Annotated[AsyncSession, Depends(get_db)],
) -> Patient:
    """Patient profile of the caller (403 if they have none)."""
    return await DirectoryService(session).require_patient_for_user(principal.user_id)


async def get_current_doctor(
    principal: Annotated[Principal, Depends(get_current_principal)],
    session: Annotated[AsyncSession, Depends(get_db)],
) -> Doctor:
    """Doctor profile of the caller (403 if they have none)."""
    return await DirectoryService(session).require_doctor_for_user(principal.user_id)


# Type aliases for cleaner dependency injection
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
CurrentPatient = Annotated[Patient, Depends(get_current_patient)]
CurrentDoctor = Annotated[Doctor, Depends(get_current_doctor)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
