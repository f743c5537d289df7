from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


PERIODS = ("today", "week", "month", "quarter", "year", "custom", "all")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" and "YYYY-MM-DDTHH:MM" (naive) are interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC. Microseconds are kept so that
    timestamps written in the same second still sort in write order.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc)
    return dt_utc.isoformat().replace("+00:00", "Z")


def _months_back(day: datetime, months: int) -> datetime:
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    # Clamp to the last valid day of the target month
    for candidate in (day.day, 30, 29, 28):
        try:
            return day.replace(year=year, month=month, day=candidate)
        except ValueError:
            continue
    raise ValueError(f"Cannot shift {day} back {months} months")


def is_in_period(
    value: Optional[str],
    period: Optional[str],
    custom_from: Optional[str] = None,
    custom_to: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> bool:
    """
    Whether an ISO timestamp falls within a reporting period.

    - today/week/month/quarter/year: on or after the start of today minus the span
    - custom: between custom_from and the end of custom_to (inclusive); a missing
      bound matches everything
    - all / None / unknown: always True
    """
    if not period or period == "all":
        return True

    dt = parse_iso_datetime(value)
    if dt is None:
        return False

    now = now or utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if period == "today":
        return dt >= today
    if period == "week":
        return dt >= today - timedelta(days=7)
    if period == "month":
        return dt >= _months_back(today, 1)
    if period == "quarter":
        return dt >= _months_back(today, 3)
    if period == "year":
        return dt >= _months_back(today, 12)
    if period == "custom":
        if not custom_from or not custom_to:
            return True
        start = parse_iso_datetime(custom_from)
        end = parse_iso_datetime(custom_to)
        end = end.replace(hour=23, minute=59, second=59, microsecond=999999)
        return start <= dt <= end
    return True
