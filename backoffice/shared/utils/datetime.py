"""UTC datetime helpers.

Every timestamp stored or compared by the audit and usage code is a
timezone-aware UTC datetime.
"""

from datetime import UTC, date, datetime, time, timedelta


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Normalize dt to aware UTC (naive values are taken as UTC). None passes through."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def start_of_day(day: date) -> datetime:
    """Return midnight UTC at the start of day."""
    return datetime.combine(day, time.min, tzinfo=UTC)


def day_window(day: date) -> tuple[datetime, datetime]:
    """Return [start, end) UTC bounds covering one calendar day."""
    start = start_of_day(day)
    return start, start + timedelta(days=1)


def month_start(reference: datetime) -> datetime:
    """Return midnight UTC on the first day of reference's month."""
    ref = ensure_utc(reference)
    return start_of_day(date(ref.year, ref.month, 1))


def period_window(period: str, reference: datetime) -> tuple[datetime, datetime]:
    """Return [start, end) for the day, ISO week (Monday start) or month containing reference.

    Raises:
        ValueError: If period is not day, week or month.
    """
    ref = ensure_utc(reference)
    if period == "day":
        return day_window(ref.date())
    if period == "week":
        start = start_of_day(ref.date() - timedelta(days=ref.weekday()))
        return start, start + timedelta(days=7)
    if period == "month":
        start = month_start(ref)
        if start.month == 12:
            end = start.replace(year=start.year + 1, month=1)
        else:
            end = start.replace(month=start.month + 1)
        return start, end
    raise ValueError(f"Unknown period: {period}")
