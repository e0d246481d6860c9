"""Utility functions."""

from clinic_api.utils.time import (
    ensure_utc,
    hours_between,
    month_bounds,
    parse_datetime,
    utc_now,
)

__all__ = ["utc_now", "ensure_utc", "parse_datetime", "month_bounds", "hours_between"]
