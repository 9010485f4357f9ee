"""Calendar helpers for Active: day boundaries, offsets and differences.

Every function works on timezone-aware datetimes. Naive values and plain
dates are interpreted in the timezone passed as *tz* (UTC when omitted), the
same way the workspace interprets "today".
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo

_ONE_DAY = timedelta(days=1)


def as_aware(value: date | datetime, tz: tzinfo | None = None) -> datetime:
    """Coerce a date or datetime into an aware datetime in *tz*."""
    tz = tz or timezone.utc
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=tz)
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def beginning_of_day(value: date | datetime, tz: tzinfo | None = None) -> datetime:
    """Midnight at the start of *value*'s calendar day."""
    if tz is None and isinstance(value, datetime) and value.tzinfo is not None:
        tz = value.tzinfo
    aware = as_aware(value, tz)
    return datetime.combine(aware.date(), time.min, tzinfo=aware.tzinfo)


def end_of_day(value: date | datetime, tz: tzinfo | None = None) -> datetime:
    """The last second of *value*'s calendar day (23:59:59)."""
    start = beginning_of_day(value, tz)
    next_start = datetime.combine(start.date() + _ONE_DAY, time.min, tzinfo=start.tzinfo)
    return next_start - timedelta(seconds=1)


def add_days(value: datetime, days: int) -> datetime:
    """Shift by whole calendar days, keeping the wall-clock time."""
    return value + timedelta(days=days)


def add_minutes(value: datetime, minutes: int) -> datetime:
    """Shift by elapsed minutes (absolute time, DST-safe)."""
    if value.tzinfo is None:
        return value + timedelta(minutes=minutes)
    shifted = value.astimezone(timezone.utc) + timedelta(minutes=minutes)
    return shifted.astimezone(value.tzinfo)


def add_years(value: datetime, years: int) -> datetime:
    """Shift by calendar years; Feb 29 falls back to Feb 28."""
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        return value.replace(year=value.year + years, day=28)


def difference_in_days(start: datetime, end: datetime) -> int:
    """Whole days elapsed from *start* to *end*.

    Negative when *end* is before *start*. Partial days are truncated
    toward zero, so 23 hours is 0 days.
    """
    if start.tzinfo is not None and end.tzinfo is not None:
        end = end.astimezone(start.tzinfo)
    delta = end.replace(tzinfo=None) - start.replace(tzinfo=None)
    return int(delta / _ONE_DAY)


def is_in_range(value: datetime, start: datetime, end: datetime) -> bool:
    """Inclusive on both ends."""
    return start <= value <= end


def is_same_day(a: datetime, b: datetime, tz: tzinfo | None = None) -> bool:
    return beginning_of_day(a, tz) == beginning_of_day(b, tz)


def is_in_today(value: datetime, now: datetime) -> bool:
    return is_same_day(value, now, now.tzinfo)


# ── Fire times ────────────────────────────────────────────────


def parse_fire_time(s: str) -> time:
    """Parse 'HH:MM' into a time of day."""
    try:
        parsed = time.fromisoformat(s.strip())
    except ValueError:
        raise ValueError(f"Invalid fire time: {s!r}") from None
    return parsed.replace(second=0, microsecond=0)


def format_fire_time(t: time | datetime) -> str:
    return t.strftime("%H:%M")


def combine_fire_date(day: datetime, fire_time: time, tz: tzinfo | None = None) -> datetime:
    """The instant *fire_time* happens on *day*'s calendar date in *tz*."""
    tz = tz or day.tzinfo
    local = day.astimezone(tz) if day.tzinfo is not None else day
    return datetime.combine(local.date(), fire_time.replace(tzinfo=None), tzinfo=tz)
