"""Capability checks for every clinic operation.

A single table maps each operation to the roles that may perform it, and
``allows`` is the only question callers ask. Ownership rules (a patient
may only touch their own records) are checked by the services themselves.
"""

from dataclasses import dataclass
from enum import Enum

from clinic_api.models.user import UserRole


@dataclass(frozen=True)
class Principal:
    """The authenticated caller: a user id and the roles from its token."""

    user_id: str
    roles: frozenset[UserRole]

    def has_role(self, role: UserRole) -> bool:
        return role in self.roles

    @property
    def is_patient_only(self) -> bool:
        """True when the caller has no staff role to fall back on."""
        return self.roles == frozenset({UserRole.PATIENT})

    @property
    def is_staff(self) -> bool:
        return bool(self.roles & STAFF_ROLES)


class Operation(str, Enum):
    """Operations gated by role."""

    # Service catalogue
    SERVICE_TYPE_READ = "service_type:read"
    SERVICE_TYPE_MANAGE = "service_type:manage"

    # Request intake
    REQUEST_CREATE = "request:create"
    REQUEST_READ = "request:read"
    REQUEST_LIST_ALL = "request:list_all"
    REQUEST_DECIDE = "request:decide"

    # Encounters
    SERVICE_READ = "service:read"
    SERVICE_LIST_ALL = "service:list_all"
    SERVICE_MANAGE = "service:manage"
    SERVICE_PATIENT_CANCEL = "service:patient_cancel"

    # Artifacts
    NOTE_READ = "note:read"
    NOTE_WRITE = "note:write"
    NOTICE_READ = "notice:read"
    NOTICE_WRITE = "notice:write"
    FEEDBACK_SUBMIT = "feedback:submit"
    FEEDBACK_READ = "feedback:read"
    FEEDBACK_MANAGE = "feedback:manage"

    # Psychological tests
    TEMPLATE_READ = "template:read"
    TEMPLATE_MANAGE = "template:manage"
    TEST_ASSIGN = "test:assign"
    TEST_READ = "test:read"
    TEST_LIST_ALL = "test:list_all"
    TEST_SUBMIT = "test:submit"


STAFF_ROLES = frozenset({UserRole.DOCTOR, UserRole.ADMIN, UserRole.RECEPTIONIST})
ALL_ROLES = STAFF_ROLES | {UserRole.PATIENT}

OPERATION_ROLES: dict[Operation, frozenset[UserRole]] = {
    Operation.SERVICE_TYPE_READ: ALL_ROLES,
    Operation.SERVICE_TYPE_MANAGE: frozenset({UserRole.ADMIN}),
    Operation.REQUEST_CREATE: frozenset(
        {UserRole.PATIENT, UserRole.RECEPTIONIST, UserRole.ADMIN}
    ),
    Operation.REQUEST_READ: ALL_ROLES,
    Operation.REQUEST_LIST_ALL: STAFF_ROLES,
    Operation.REQUEST_DECIDE: frozenset({UserRole.ADMIN, UserRole.RECEPTIONIST}),
    Operation.SERVICE_READ: ALL_ROLES,
    Operation.SERVICE_LIST_ALL: STAFF_ROLES,
    Operation.SERVICE_MANAGE: STAFF_ROLES,
    Operation.SERVICE_PATIENT_CANCEL: frozenset({UserRole.PATIENT}),
    Operation.NOTE_READ: frozenset({UserRole.DOCTOR, UserRole.ADMIN}),
    Operation.NOTE_WRITE: frozenset({UserRole.DOCTOR}),
    Operation.NOTICE_READ: ALL_ROLES,
    Operation.NOTICE_WRITE: frozenset({UserRole.DOCTOR, UserRole.ADMIN}),
    Operation.FEEDBACK_SUBMIT: frozenset({UserRole.PATIENT}),
    Operation.FEEDBACK_READ: frozenset({UserRole.DOCTOR, UserRole.ADMIN}),
    Operation.FEEDBACK_MANAGE: frozenset({UserRole.ADMIN}),
    Operation.TEMPLATE_READ: ALL_ROLES,
    Operation.TEMPLATE_MANAGE: frozenset({UserRole.DOCTOR, UserRole.ADMIN}),
    Operation.TEST_ASSIGN: frozenset({UserRole.DOCTOR, UserRole.ADMIN}),
    Operation.TEST_READ: ALL_ROLES,
    Operation.TEST_LIST_ALL: frozenset({UserRole.DOCTOR, UserRole.ADMIN}),
    Operation.TEST_SUBMIT: frozenset({UserRole.PATIENT}),
}


def allows(principal: Principal, operation: Operation) -> bool:
    """Return True if any of the principal's roles may perform ``operation``."""
    return bool(principal.roles & OPERATION_ROLES.get(operation, frozenset()))


def roles_from_claims(claims: list[str] | None) -> frozenset[UserRole]:
    """Parse the ``roles`` token claim, dropping names that are not roles."""
    known = {role.value for role in UserRole}
    return frozenset(UserRole(name) for name in claims or [] if name in known)
