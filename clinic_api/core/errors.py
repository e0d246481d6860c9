"""Typed errors raised by the clinical services.

Services raise these and never build HTTP responses themselves; the
application's exception handlers map ``status_code`` onto the response.
"""


class ClinicError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ClinicError):
    """Input is malformed, missing, or breaks a business rule."""

    status_code = 400


class ForbiddenError(ClinicError):
    """Caller is authenticated but not entitled to the resource."""

    status_code = 403


class NotFoundError(ClinicError):
    """A referenced record does not exist."""

    status_code = 404


class ConflictError(ClinicError):
    """A uniqueness rule would be violated."""

    status_code = 409


class InvalidTransitionError(ConflictError):
    """A status change is not allowed from the record's current status."""

    def __init__(self, entity: str, current: str, target: str) -> None:
        super().__init__(f"Cannot move {entity} from {current} to {target}")
        self.entity = entity
        self.current = current
        self.target = target


class UnexpectedError(ClinicError):
    """Anything not covered above."""

    status_code = 500
