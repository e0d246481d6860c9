"""Time and datetime utilities."""

from datetime import date, datetime, time, timezone


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime.

    Naive values are treated as UTC; SQLite hands timestamps back without
    tzinfo even for ``DateTime(timezone=True)`` columns.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_datetime(value: str | date | datetime) -> datetime:
    """Parse an ISO 8601 date or datetime into an aware UTC datetime.

    Accepts ``date``/``datetime`` objects as well as strings such as
    ``2025-07-01``, ``2025-07-01T09:00:00`` or ``2025-07-01T09:00:00Z``.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Could not parse datetime: {value!r}")

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        raise ValueError(f"Could not parse datetime: {value!r}") from None


def month_bounds(moment: datetime) -> tuple[datetime, datetime]:
    """Return [first instant of the month, first instant of the next month)."""
    moment = ensure_utc(moment)
    start = datetime(moment.year, moment.month, 1, tzinfo=timezone.utc)
    if moment.month == 12:
        end = datetime(moment.year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(moment.year, moment.month + 1, 1, tzinfo=timezone.utc)
    return start, end


def hours_between(start: datetime, end: datetime) -> float:
    """Signed number of hours from ``start`` to ``end``."""
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 3600
