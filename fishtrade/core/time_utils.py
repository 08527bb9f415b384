from datetime import date, datetime, time, timedelta, timezone


def utcnow() -> datetime:
    """Server-side 'now' in UTC (aware)."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back naive; they are always written as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_start(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def next_day_start(value: date) -> datetime:
    return day_start(value + timedelta(days=1))


def days_between(earlier: datetime, later: datetime) -> int:
    return max(0, (as_utc(later) - as_utc(earlier)).days)
