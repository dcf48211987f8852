from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

"""
Time semantics:
- All stored datetimes are UTC-naive (tzinfo=None).
- Report buckets are calendar days in the configured REPORT_TIMEZONE.
- Day and week windows are half-open: start <= t < next start.
"""


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_zone(name: str | None) -> tzinfo:
    if not name or name.upper() in ("UTC", "Z"):
        return timezone.utc
    return ZoneInfo(name)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    return to_utc_naive(dt)


def to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def local_date(dt_utc: datetime, zone: tzinfo) -> date:
    """Calendar day of a stored UTC-naive datetime, as seen in `zone`."""
    return dt_utc.replace(tzinfo=timezone.utc).astimezone(zone).date()


def local_midnight_utc(day: date, zone: tzinfo) -> datetime:
    """UTC-naive instant of 00:00:00.000 local time on `day`."""
    return to_utc_naive(datetime.combine(day, time.min, tzinfo=zone))


def day_window(as_of_utc: datetime, zone: tzinfo) -> tuple[date, datetime, datetime]:
    """(local day, start, end) for the local calendar day containing as_of."""
    day = local_date(as_of_utc, zone)
    return day, local_midnight_utc(day, zone), local_midnight_utc(day + timedelta(days=1), zone)


def week_window(as_of_utc: datetime, zone: tzinfo) -> tuple[date, date, datetime, datetime]:
    """
    Sunday-to-Saturday week containing as_of (not ISO weeks).

    Returns (first day, last day, start, end) with end exclusive.
    """
    day = local_date(as_of_utc, zone)
    # date.weekday(): Monday=0 .. Sunday=6; shift so Sunday=0
    days_since_sunday = (day.weekday() + 1) % 7
    first = day - timedelta(days=days_since_sunday)
    last = first + timedelta(days=6)
    return (
        first,
        last,
        local_midnight_utc(first, zone),
        local_midnight_utc(last + timedelta(days=1), zone),
    )


def parse_range_bound(value, zone: tzinfo, *, end: bool) -> datetime:
    """
    Normalize a report range bound to a UTC-naive instant.

    A bare date ("2026-10-01") covers the whole local day: as a start it means
    local midnight, as an end it means the following local midnight (exclusive).
    A datetime is taken literally; naive values are read as local time.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return local_midnight_utc(value + timedelta(days=1) if end else value, zone)
    else:
        s = str(value).strip()
        if len(s) == 10:
            day = date.fromisoformat(s)
            return local_midnight_utc(day + timedelta(days=1) if end else day, zone)
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=zone)
    utc = to_utc_naive(dt)
    # Literal end instants are inclusive; shift by one tick to keep windows half-open
    return utc + timedelta(microseconds=1) if end else utc
