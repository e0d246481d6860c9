"""Patient self-service rules for booked encounters.

Staff can cancel a scheduled encounter at any time. Patients can only do
it themselves well ahead of the start time; inside the window they have
to contact the clinic.
"""

from dataclasses import dataclass
from datetime import datetime

from clinic_api.core.config import settings
from clinic_api.utils.time import hours_between, utc_now

DEFAULT_PATIENT_CANCEL_REASON = "Cancelled by patient"
DEFAULT_STAFF_CANCEL_REASON = "Cancelled by user"


@dataclass(frozen=True)
class CancellationDecision:
    """Outcome of a patient cancellation check.

    Attributes:
        allowed: Whether the patient may cancel now
        message: Human-readable explanation
        hours_until_start: Hours from now until the encounter starts
    """

    allowed: bool
    message: str
    hours_until_start: float


def can_patient_cancel(
    start_time: datetime,
    now: datetime | None = None,
    window_hours: int | None = None,
) -> CancellationDecision:
    """Check whether a patient may cancel an encounter starting at ``start_time``.

    The encounter must still be in the future and at least ``window_hours``
    away. The window defaults to ``settings.patient_cancel_window_hours``.

    Examples:
        >>> from datetime import timedelta
        >>> now = utc_now()
        >>> can_patient_cancel(now + timedelta(hours=48), now).allowed
        True
        >>> can_patient_cancel(now + timedelta(hours=2), now).allowed
        False
    """
    now = now or utc_now()
    if window_hours is None:
        window_hours = settings.patient_cancel_window_hours
    hours = hours_between(now, start_time)

    if hours <= 0:
        return CancellationDecision(
            allowed=False,
            message="This appointment has already started or passed",
            hours_until_start=hours,
        )

    if hours < window_hours:
        return CancellationDecision(
            allowed=False,
            message=(
                f"Appointments cannot be cancelled within {window_hours} hours "
                "of the start time. Please contact the clinic."
            ),
            hours_until_start=hours,
        )

    return CancellationDecision(
        allowed=True,
        message="Your appointment has been cancelled.",
        hours_until_start=hours,
    )
