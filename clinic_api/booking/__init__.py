"""Booking rules for patient self-service."""

from clinic_api.booking.policy import (
    CancellationDecision,
    can_patient_cancel,
)

__all__ = [
    "CancellationDecision",
    "can_patient_cancel",
]
